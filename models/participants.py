"""Members taking part in a pomodoro session."""
import html
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Member:
    """Chat member as seen by a session. Only the id takes part in equality."""
    id: int
    display_name: str = field(compare=False)
    mention: Optional[str] = field(default=None, compare=False)

    @property
    def ping(self) -> str:
        return self.mention or html.escape(self.display_name)


@dataclass
class ParticipantDetail:
    wants_ping: bool = True
    status_text: Optional[str] = None


class Participants:
    """Members of a session in the order they joined."""

    def __init__(self):
        self._members: Dict[Member, ParticipantDetail] = {}

    def add(self, member: Member, wants_ping: bool = True, status_text: Optional[str] = None) -> None:
        # Joining again replaces ping preference and status, keeping the position
        self._members[member] = ParticipantDetail(wants_ping=wants_ping, status_text=status_text)

    def remove(self, member: Member) -> bool:
        return self._members.pop(member, None) is not None

    def __contains__(self, member: Member) -> bool:
        return member in self._members

    def __len__(self) -> int:
        return len(self._members)

    def participant_list(self) -> str:
        if not self._members:
            return "No one yet"
        lines = []
        for member, detail in self._members.items():
            name = member.display_name
            lines.append(name if detail.wants_ping else name + " 🤐")
        return "\n".join(lines)

    def working_on_list(self) -> str:
        lines = [
            f"{member.display_name}: {detail.status_text}"
            for member, detail in self._members.items()
            if detail.status_text
        ]
        return "\n".join(lines) if lines else "Nothing submitted"

    def mention_list(self) -> List[str]:
        return [member.ping for member, detail in self._members.items() if detail.wants_ping]
