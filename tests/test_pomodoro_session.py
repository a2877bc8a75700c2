from datetime import datetime, timedelta, timezone

import pytest

from models.errors import InvalidArgument
from models.participants import Member
from models.pomodoro_settings import PomodoroSettings
from models.session_state import STATE_IMAGES, BooleanSetting, SessionState
from services.pomodoro_session import PomodoroSession

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
AUTHOR = Member(1, "MemberName")


def minutes(n):
    return START + timedelta(minutes=n)


def new_session(args=""):
    return PomodoroSession(100, AUTHOR, args)


def field_value(view, name):
    return {status_field.name: status_field.value for status_field in view.fields}[name]


def stats(view):
    return field_value(view, "Completed Stats")


def settings_text(view):
    return field_value(view, "Session Settings")


def test_new_session_defaults():
    session = new_session()
    assert session.state is SessionState.NOT_STARTED
    assert session.next_transition_due is None
    assert session.resume_state is None
    assert AUTHOR in session.participants
    assert session.participants.mention_list() == ["MemberName"]
    assert session.settings.state_duration(SessionState.WORK) == 25


def test_new_session_full_numbers():
    session = new_session("10 11 12 13")
    assert session.settings.state_duration(SessionState.WORK) == 10
    assert session.settings.state_duration(SessionState.BREAK) == 11
    assert session.settings.state_duration(SessionState.LONG_BREAK) == 12
    assert session.settings.work_sessions_before_long_break == 13


@pytest.mark.parametrize("args", ["10 10 10", "cheesepie:on", "10080", "w0bble"])
def test_new_session_invalid_arguments(args):
    with pytest.raises(InvalidArgument):
        new_session(args)


def test_template_is_copied():
    template = PomodoroSettings()
    template.set_from_args("40 pings:off")
    session = PomodoroSession(100, AUTHOR, "15", settings=template)
    assert session.settings.state_duration(SessionState.WORK) == 15
    assert not session.settings.is_enabled(BooleanSetting.PINGS)
    assert template.state_duration(SessionState.WORK) == 40


def test_status_view_walkthrough():
    session = new_session("25 10 30 2 images:on")

    view = session.build_status_view(START)
    assert view.title == "Pomodoro Timer - NOT STARTED"
    assert view.description == "Timer not started"
    assert stats(view) == "Started: --:--\nCompleted work sessions: 0\nTotal study time: 0 mins"
    assert settings_text(view) == (
        "Work: 25 mins, Break: 10 mins\n"
        "Work sessions before long break: 2, Long break: 30 mins\n"
        "Session created by: MemberName"
    )
    assert field_value(view, "Ping party") == "MemberName"
    assert field_value(view, "People are working on") == "Nothing submitted"
    assert view.image == STATE_IMAGES[SessionState.NOT_STARTED]

    session.start(START)
    view = session.build_status_view(START)
    assert view.title == "Pomodoro Timer - WORKING"
    assert view.colour == "#0000FF"
    assert view.description == (
        "25 mins until break\n1 work session until long break (not including this one)"
    )
    assert stats(view) == "Started: 12:00 UTC\nCompleted work sessions: 0\nTotal study time: 0 mins"

    session.update(minutes(25), True)
    view = session.build_status_view(minutes(25))
    assert session.state is SessionState.BREAK
    assert view.description == "10 mins until work\n1 work session until long break"
    assert stats(view) == "Started: 12:00 UTC\nCompleted work sessions: 1\nTotal study time: 25 mins"

    session.update(minutes(35), True)
    view = session.build_status_view(minutes(35))
    assert session.state is SessionState.WORK
    assert view.description == "25 mins until long break"
    assert stats(view) == "Started: 12:00 UTC\nCompleted work sessions: 1\nTotal study time: 25 mins"

    session.update(minutes(60), True)
    view = session.build_status_view(minutes(60))
    assert session.state is SessionState.LONG_BREAK
    assert session.history.work_sessions_since_last_long_break() == 2
    assert view.title == "Pomodoro Timer - LONG BREAK"
    assert view.description == "30 mins until work"
    assert stats(view) == "Started: 12:00 UTC\nCompleted work sessions: 2\nTotal study time: 50 mins"

    session.pause(minutes(60))
    view = session.build_status_view(minutes(60))
    assert view.title == "Pomodoro Timer - PAUSED"
    assert view.description == "Session is paused. Resume to continue long break"

    session.stop(minutes(60))
    view = session.build_status_view(minutes(60))
    assert view.title == "Pomodoro Timer - FINISHED"
    assert view.description == "Session completed"
    assert view.colour is None


def test_images_off_by_default():
    session = new_session()
    assert session.build_status_view(START).image is None


def test_status_timings():
    session = new_session("25 20 30 2")
    session.start(START)

    view = session.build_status_view(START)
    assert view.description.startswith("25 mins until break")
    assert stats(view).endswith("Total study time: 0 mins")

    view = session.build_status_view(minutes(2))
    assert view.description.startswith("23 mins until break")
    assert stats(view).endswith("Total study time: 2 mins")

    view = session.build_status_view(minutes(10))
    assert view.description.startswith("15 mins until break")
    assert stats(view).endswith("Total study time: 10 mins")

    session.update(minutes(10), True)
    view = session.build_status_view(minutes(10))
    assert view.description == "20 mins until work\n1 work session until long break"
    assert stats(view).endswith("Total study time: 10 mins")

    view = session.build_status_view(minutes(12))
    assert view.description == "18 mins until work\n1 work session until long break"
    assert stats(view).endswith("Total study time: 10 mins")


def test_date_setting_shows_full_start_date():
    session = new_session("date:on")
    session.start(START)
    assert stats(session.build_status_view(START)).startswith("Started: 01/01/2024 12:00 UTC")


def test_state_transitions_with_long_breaks():
    session = new_session("25 10 30 3")
    session.start(START)
    now = START

    # Straight through, then with a pause in every state
    for with_pauses in (False, True):
        for i in range(3):
            assert session.state is SessionState.WORK
            if with_pauses:
                with pytest.raises(InvalidArgument):
                    session.resume(now)
                session.pause(now)
                assert session.state is SessionState.PAUSED
                with pytest.raises(InvalidArgument):
                    session.update(now, True)
                session.resume(now)
                assert session.state is SessionState.WORK

            session.update(now, True)
            if i == 2:
                assert session.state is SessionState.LONG_BREAK
            else:
                assert session.state is SessionState.BREAK

            if with_pauses:
                session.pause(now)
                session.resume(now)
                assert session.state is (SessionState.LONG_BREAK if i == 2 else SessionState.BREAK)
            session.update(now, True)

    assert session.state is SessionState.WORK
    session.stop(now)
    assert session.state is SessionState.FINISHED
    with pytest.raises(InvalidArgument):
        session.update(now, True)
    with pytest.raises(InvalidArgument):
        session.pause(now)
    with pytest.raises(InvalidArgument):
        session.resume(now)


def _drive_to(session, state):
    if state is SessionState.NOT_STARTED:
        return
    session.start(START)
    if state is SessionState.BREAK:
        session.update(START, True)
    elif state is SessionState.LONG_BREAK:
        session.update(START, True)
    elif state is SessionState.PAUSED:
        session.pause(START)


@pytest.mark.parametrize(
    "state",
    [
        SessionState.NOT_STARTED,
        SessionState.WORK,
        SessionState.BREAK,
        SessionState.LONG_BREAK,
        SessionState.PAUSED,
    ],
)
def test_stop_from_every_state(state):
    args = "25 10 30 1" if state is SessionState.LONG_BREAK else "25 10"
    session = new_session(args)
    _drive_to(session, state)
    assert session.state is state

    session.stop(START)
    assert session.state is SessionState.FINISHED
    assert session.next_transition_due is None
    with pytest.raises(InvalidArgument, match="already stopped"):
        session.stop(START)


def test_start_twice_fails():
    session = new_session()
    session.start(START)
    with pytest.raises(InvalidArgument, match="already started"):
        session.start(START)


def test_pause_errors():
    session = new_session()
    with pytest.raises(InvalidArgument, match="not started"):
        session.pause(START)
    session.start(START)
    session.pause(START)
    with pytest.raises(InvalidArgument, match="already suspended"):
        session.pause(START)


def test_skip_before_start_fails():
    session = new_session()
    with pytest.raises(InvalidArgument, match="suspended"):
        session.update(START, True)


def test_not_started_never_times_out():
    session = new_session()
    session.update(START + timedelta(days=2))
    assert session.state is SessionState.NOT_STARTED


def test_update_before_due_does_nothing():
    session = new_session("25 10")
    session.start(START)
    session.update(minutes(24))
    assert session.state is SessionState.WORK


def test_update_when_due_moves_on():
    session = new_session("25 10")
    session.start(START)
    session.update(minutes(25))
    assert session.state is SessionState.BREAK
    assert session.next_transition_due == minutes(35)
    session.update(minutes(36))
    assert session.state is SessionState.WORK
    assert session.next_transition_due == minutes(61)


def test_resume_continues_remaining_time():
    session = new_session("25 10")
    session.start(START)
    session.pause(minutes(10))
    assert session.resume_state is SessionState.WORK
    assert session.next_transition_due == minutes(70)

    session.resume(minutes(30))
    assert session.state is SessionState.WORK
    assert session.next_transition_due == minutes(45)
    assert session.time_left_string(minutes(30)) == "15 mins until break"

    # The paused work interval is still one work session
    session.update(minutes(45))
    assert session.history.count_work_sessions() == 1
    assert session.history.completed_stats(0, SessionState.BREAK) == (1, 25)


def test_paused_session_times_out():
    session = new_session("25 10")
    session.start(START)
    session.pause(minutes(5))
    session.update(minutes(64))
    assert session.state is SessionState.PAUSED
    session.update(minutes(65))
    assert session.state is SessionState.FINISHED


def test_auto_off_waits_for_resume():
    session = new_session("25 10 auto:off")
    session.start(START)
    session.update(minutes(25))

    assert session.state is SessionState.PAUSED
    assert session.resume_state is SessionState.BREAK
    view = session.build_status_view(minutes(25))
    assert view.description == "Session is paused. Resume to continue break"

    session.resume(minutes(27))
    assert session.state is SessionState.BREAK
    assert session.next_transition_due == minutes(37)


def test_auto_off_still_skips_when_forced():
    session = new_session("25 10 auto:off")
    session.start(START)
    session.update(minutes(3), True)
    assert session.state is SessionState.BREAK


def test_add_time():
    session = new_session("25 10")
    with pytest.raises(InvalidArgument, match="suspended"):
        session.add_time(5, START)

    session.start(START)
    session.add_time(10, START)
    assert session.time_left_string(START) == "35 mins until break"

    with pytest.raises(InvalidArgument, match="greater than 0"):
        session.add_time(0, START)
    with pytest.raises(InvalidArgument, match="less than 265"):
        session.add_time(265, START)
    session.add_time(264, START)
    assert session.time_left_string(START) == "4 hours 59 mins until break"


def test_remove_time():
    session = new_session("25 10")
    session.start(START)
    with pytest.raises(InvalidArgument, match="There's only 25 mins left! Can lower it by a maximum of 24 mins"):
        session.remove_time(25, START)
    with pytest.raises(InvalidArgument, match="greater than 0"):
        session.remove_time(-3, START)

    session.remove_time(24, START)
    assert session.time_left_string(START) == "1 min until break"


def test_reset_current_interval():
    session = new_session("25 10")
    session.start(START)
    session.reset_current_interval(minutes(20))
    assert session.next_transition_due == minutes(45)

    session.pause(minutes(21))
    with pytest.raises(InvalidArgument):
        session.reset_current_interval(minutes(21))


def test_time_left_errors():
    session = new_session()
    with pytest.raises(InvalidArgument, match="Session not started"):
        session.time_left_string(START)
    session.start(START)
    session.pause(START)
    with pytest.raises(InvalidArgument, match="suspended"):
        session.time_left_string(START)


def test_edit_settings_keeps_due_time():
    session = new_session("25 10")
    session.start(START)
    session.edit_settings("50 20 pings:off", minutes(5))
    assert session.next_transition_due == minutes(25)
    assert session.settings.state_duration(SessionState.WORK) == 50
    with pytest.raises(InvalidArgument):
        session.edit_settings("cheesepie:on", minutes(5))


def test_join_and_leave():
    session = new_session()
    bob = Member(2, "Bob")
    session.join(bob, START, wants_ping=False, status_text="chemistry")
    view = session.build_status_view(START)
    assert field_value(view, "Ping party") == "MemberName\nBob 🤐"
    assert field_value(view, "People are working on") == "Bob: chemistry"

    session.leave(bob, START)
    assert bob not in session.participants
    with pytest.raises(InvalidArgument, match="not part of this session"):
        session.leave(bob, START)


def test_ping_text():
    session = new_session()
    session.join(Member(2, "Bob", mention='<a href="tg://user?id=2">Bob</a>'), START)
    session.join(Member(3, "Quiet"), START, wants_ping=False)
    assert session.ping_text(SessionState.BREAK) == (
        '👏 <b>Bangs Pots</b> 👏\nMemberName <a href="tg://user?id=2">Bob</a>\nIt\'s break time!'
    )

    session.edit_settings("pings:off", START)
    assert session.ping_text(SessionState.LONG_BREAK) == "👏 <b>Bangs Pots</b> 👏\nIt's long break time!"
    assert field_value(session.build_status_view(START), "Ping party (off)") == "MemberName\nBob\nQuiet 🤐"


def test_settings_summary_long():
    session = new_session()
    assert session.settings_summary(short=False) == (
        "Work: 25 mins, Break: 10 mins\n"
        "Long break not set\n"
        "Session created by: MemberName\n"
        "(Pings)・(Auto) Continue・(Delete) old messages・~~(Images)~~・~~Show full (date)~~"
    )


def test_state_changes_are_logged(caplog):
    session = new_session()
    with caplog.at_level("INFO"):
        session.start(START)
    records = [r for r in caplog.records if r.getMessage() == "Pomodoro state changed"]
    assert records
    assert records[-1].from_state == "not_started"
    assert records[-1].to_state == "work"
