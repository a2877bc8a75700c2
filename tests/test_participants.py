from models.ban_list import MemberBanList
from models.participants import Member, Participants


def test_member_equality_uses_id_only():
    assert Member(1, "Alice") == Member(1, "Alice B.", mention="@alice")
    assert Member(1, "Alice") != Member(2, "Alice")


def test_ping_falls_back_to_escaped_name():
    assert Member(1, "A<b>", mention='<a href="tg://user?id=1">A</a>').ping.startswith("<a ")
    assert Member(1, "A<b>").ping == "A&lt;b&gt;"


def test_empty_lists():
    participants = Participants()
    assert participants.participant_list() == "No one yet"
    assert participants.working_on_list() == "Nothing submitted"
    assert participants.mention_list() == []


def test_lists_in_join_order():
    participants = Participants()
    participants.add(Member(1, "Alice"))
    participants.add(Member(2, "Bob"), wants_ping=False, status_text="maths")
    participants.add(Member(3, "Carol"), status_text="essay")

    assert participants.participant_list() == "Alice\nBob 🤐\nCarol"
    assert participants.working_on_list() == "Bob: maths\nCarol: essay"
    assert participants.mention_list() == ["Alice", "Carol"]


def test_rejoin_replaces_details_and_keeps_position():
    participants = Participants()
    alice = Member(1, "Alice")
    participants.add(alice, status_text="physics")
    participants.add(Member(2, "Bob"))
    participants.add(alice, wants_ping=False)

    assert len(participants) == 2
    assert participants.participant_list() == "Alice 🤐\nBob"
    assert participants.working_on_list() == "Nothing submitted"
    assert participants.mention_list() == ["Bob"]


def test_remove():
    participants = Participants()
    alice = Member(1, "Alice")
    participants.add(alice)
    assert alice in participants
    assert participants.remove(alice) is True
    assert alice not in participants
    assert participants.remove(alice) is False


def test_ban_list_per_chat():
    bans = MemberBanList()
    assert bans.ban(10, 1) is True
    assert bans.ban(10, 1) is False
    assert bans.is_banned(10, 1)
    assert not bans.is_banned(20, 1)

    assert bans.unban(20, 1) is False
    assert bans.unban(10, 1) is True
    assert not bans.is_banned(10, 1)
    assert bans.unban(10, 1) is False
