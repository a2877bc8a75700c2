"""
Status message of a pomodoro session, independent of the chat platform.

Texts are plain; ~~text~~ marks strikethrough. render_html turns a view into
Telegram HTML.
"""
import html
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from models.session_state import SessionState

_STRIKE_RE = re.compile(r"~~(.+?)~~")


def markup_to_html(text: str) -> str:
    """Escape plain text for Telegram HTML, keeping ~~strikethrough~~."""
    return _STRIKE_RE.sub(r"<s>\1</s>", html.escape(text, quote=False))


@dataclass(frozen=True)
class StatusField:
    name: str
    value: str


@dataclass(frozen=True)
class StatusView:
    state: SessionState
    title: str
    description: str
    fields: Tuple[StatusField, ...] = ()
    colour: Optional[str] = None
    image: Optional[str] = None

    def render_html(self) -> str:
        parts = [f"<b>{markup_to_html(self.title)}</b>", markup_to_html(self.description)]
        for status_field in self.fields:
            parts.append(f"\n<b>{markup_to_html(status_field.name)}</b>\n{markup_to_html(status_field.value)}")
        if self.image:
            parts.append(f'<a href="{html.escape(self.image)}">&#8203;</a>')
        return "\n".join(parts)
