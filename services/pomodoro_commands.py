"""
Подкоманды /pomodoro

Static command table: name, help text, optional emoji button and the handler.
Text commands and button presses both end up in the same handlers.
"""
import dataclasses
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from database.pomodoro_templates_db import PomodoroTemplateStore
from models.ban_list import MemberBanList
from models.errors import InternalError, InvalidArgument
from models.participants import Member
from models.session_state import SessionState, is_active
from services.pomodoro_session import PomodoroSession
from services.scheduler import SessionScheduler
from services.session_display import SessionDisplay

POMODORO_COMMAND = "pomodoro"

PLAY = "▶"
PAUSE = "⏸"
STOP = "⏹"
SKIP = "⏩"
RESET = "🔄"
UP = "🔼"
DOWN = "🔽"
DOUBLE_UP = "⏫"
DOUBLE_DOWN = "⏬"
RAISED_HAND = "🙋"
NO_GOOD = "🙅"

SHORT_BUMP = 5
BIG_BUMP = 20
NO_PING = "noping"

SETTINGS_ARGUMENTS = (
    "[work time] [break time] [{long break time} {work sessions before long break}] "
    "[pings:on] [auto:on] [delete:on] [images:on] [date:on]"
)

_INT_RE = re.compile(r"^[+-]?\d+$")


@dataclass(frozen=True)
class CommandContext:
    """Everything a subcommand may need; built per update by the handler."""
    chat_id: int
    member: Member
    now: datetime
    scheduler: SessionScheduler
    ban_list: MemberBanList
    templates: PomodoroTemplateStore
    args: str = ""
    from_emoji: bool = False
    reply_target: Optional[Member] = None
    display_factory: Optional[Callable[[int], SessionDisplay]] = None
    is_admin: Optional[Callable[[], Awaitable[bool]]] = None

    def session(self) -> PomodoroSession:
        return self.scheduler.get(self.chat_id)


Handler = Callable[[CommandContext], Awaitable[Optional[str]]]


@dataclass(frozen=True)
class PomodoroCommand:
    name: str
    description: str
    handler: Handler
    arguments: str = ""
    emoji: Optional[str] = None
    emoji_priority: int = 0
    # Answer the button press silently instead of showing the description
    remove_after_use: bool = False
    admin_only: bool = False


# === Обработчики ===

async def _new(ctx: CommandContext) -> Optional[str]:
    template = await ctx.templates.get(ctx.chat_id)
    display = ctx.display_factory(ctx.chat_id) if ctx.display_factory else None
    session = PomodoroSession(ctx.chat_id, ctx.member, ctx.args, settings=template, display=display)
    ctx.scheduler.register(ctx.chat_id, session)
    session.publish(ctx.now)
    return None


async def _join(ctx: CommandContext) -> Optional[str]:
    session = ctx.session()
    if ctx.from_emoji:
        session.join(ctx.member, ctx.now)
        return None

    wants_ping = True
    status = ctx.args.strip()
    first, _, rest = status.partition(" ")
    if first.lower() == NO_PING:
        wants_ping = False
        status = rest.strip()

    reply = None
    if status and ctx.ban_list.is_banned(ctx.chat_id, ctx.member.id):
        status = ""
        reply = f"{ctx.member.display_name}, you've been banned from posting a status."
    session.join(ctx.member, ctx.now, wants_ping=wants_ping, status_text=status or None)
    return reply


async def _leave(ctx: CommandContext) -> Optional[str]:
    ctx.session().leave(ctx.member, ctx.now)
    return None


async def _edit(ctx: CommandContext) -> Optional[str]:
    ctx.session().edit_settings(ctx.args, ctx.now)
    return "Settings updated"


async def _time(ctx: CommandContext) -> Optional[str]:
    return ctx.session().time_left_string(ctx.now)


async def _start(ctx: CommandContext) -> Optional[str]:
    ctx.session().start(ctx.now)
    return None


async def _pause(ctx: CommandContext) -> Optional[str]:
    ctx.session().pause(ctx.now)
    return None


async def _resume(ctx: CommandContext) -> Optional[str]:
    ctx.session().resume(ctx.now)
    return None


async def _skip(ctx: CommandContext) -> Optional[str]:
    ctx.session().update(ctx.now, True)
    return None


async def _reset(ctx: CommandContext) -> Optional[str]:
    ctx.session().reset_current_interval(ctx.now)
    return None


def _minutes_argument(ctx: CommandContext, default: int) -> int:
    args = ctx.args.strip()
    if ctx.from_emoji or not args:
        return default
    if not _INT_RE.match(args):
        raise InvalidArgument("Argument must be a number")
    return int(args)


def _add_time(default: int) -> Handler:
    async def handler(ctx: CommandContext) -> Optional[str]:
        ctx.session().add_time(_minutes_argument(ctx, default), ctx.now)
        return None
    return handler


def _remove_time(default: int) -> Handler:
    async def handler(ctx: CommandContext) -> Optional[str]:
        ctx.session().remove_time(_minutes_argument(ctx, default), ctx.now)
        return None
    return handler


async def _stop(ctx: CommandContext) -> Optional[str]:
    session = ctx.session()
    session.stop(ctx.now)
    ctx.scheduler.remove(ctx.chat_id)
    return None


async def _settings(ctx: CommandContext) -> Optional[str]:
    return ctx.session().settings_summary(short=False)


async def _save(ctx: CommandContext) -> Optional[str]:
    session = ctx.session()
    await ctx.templates.save(ctx.chat_id, session.settings.copy())
    return "Settings saved, new sessions in this chat will start with them"


async def _forget(ctx: CommandContext) -> Optional[str]:
    if not await ctx.templates.delete(ctx.chat_id):
        raise InvalidArgument("This chat has no saved settings")
    return "Saved settings removed"


def _target(ctx: CommandContext) -> Member:
    if ctx.reply_target is None:
        raise InvalidArgument("No member mentioned, reply to one of their messages")
    return ctx.reply_target


async def _ban(ctx: CommandContext) -> Optional[str]:
    target = _target(ctx)
    if not ctx.ban_list.ban(ctx.chat_id, target.id):
        return f"{target.display_name} is already banned from posting statuses"
    return f"{target.display_name} banned from posting statuses"


async def _unban(ctx: CommandContext) -> Optional[str]:
    target = _target(ctx)
    if not ctx.ban_list.unban(ctx.chat_id, target.id):
        return f"{target.display_name} isn't banned"
    return f"{target.display_name} unbanned from posting statuses"


async def _help(ctx: CommandContext) -> Optional[str]:
    return help_text()


# === Таблица команд ===

COMMANDS: Tuple[PomodoroCommand, ...] = (
    PomodoroCommand("new", "Create a new pomodoro session", _new, arguments=SETTINGS_ARGUMENTS),
    PomodoroCommand(
        "join",
        "Join the ping party and let everyone know what you're working on.",
        _join,
        arguments="[noPing] [currently working on]",
        emoji=RAISED_HAND,
        emoji_priority=10,
        remove_after_use=True,
    ),
    PomodoroCommand(
        "leave",
        "Leave the ping party, also removes your 'working on' text from the list",
        _leave,
        emoji=NO_GOOD,
        emoji_priority=12,
        remove_after_use=True,
    ),
    PomodoroCommand("edit", "Update session settings", _edit, arguments=SETTINGS_ARGUMENTS),
    PomodoroCommand("time", "Gives the time left in the current state", _time),
    PomodoroCommand("start", "Start the timer", _start, emoji=PLAY, emoji_priority=0, remove_after_use=True),
    PomodoroCommand("pause", "Pause the session", _pause, emoji=PAUSE, emoji_priority=5, remove_after_use=True),
    PomodoroCommand("resume", "Resume a paused session", _resume, emoji=PLAY, emoji_priority=5, remove_after_use=True),
    PomodoroCommand("skip", "Skip to the next state", _skip, emoji=SKIP, emoji_priority=3, remove_after_use=True),
    PomodoroCommand(
        "reset",
        "Restart the timer for the current state (e.g. restart the work timer if working)",
        _reset,
        emoji=RESET,
        emoji_priority=19,
        remove_after_use=True,
    ),
    PomodoroCommand(
        "bump",
        f"Increase the length of the current timer (default {SHORT_BUMP})",
        _add_time(SHORT_BUMP),
        arguments="[minutes]",
        emoji=UP,
        emoji_priority=12,
        remove_after_use=True,
    ),
    PomodoroCommand(
        "big bump",
        f"Increase the length of the current timer (default {BIG_BUMP})",
        _add_time(BIG_BUMP),
        arguments="[minutes]",
        emoji=DOUBLE_UP,
        emoji_priority=13,
        remove_after_use=True,
    ),
    PomodoroCommand(
        "lower",
        f"Decrease the length of the current timer (default {SHORT_BUMP})",
        _remove_time(SHORT_BUMP),
        arguments="[minutes]",
        emoji=DOWN,
        emoji_priority=14,
        remove_after_use=True,
    ),
    PomodoroCommand(
        "big lower",
        f"Decrease the length of the current timer (default {BIG_BUMP})",
        _remove_time(BIG_BUMP),
        arguments="[minutes]",
        emoji=DOUBLE_DOWN,
        emoji_priority=15,
        remove_after_use=True,
    ),
    PomodoroCommand("stop", "Ends the session", _stop, emoji=STOP, emoji_priority=20),
    PomodoroCommand("settings", "Get the current session settings", _settings),
    PomodoroCommand("save", "Use this session's settings for new sessions in this chat", _save),
    PomodoroCommand("forget", "Go back to the default settings for new sessions in this chat", _forget),
    PomodoroCommand(
        "ban",
        "Ban members from posting statuses",
        _ban,
        arguments="(reply to the member's message)",
        admin_only=True,
    ),
    PomodoroCommand(
        "unban",
        "Unban members from posting statuses",
        _unban,
        arguments="(reply to the member's message)",
        admin_only=True,
    ),
    PomodoroCommand("help", "Show this list", _help),
)

COMMANDS_BY_NAME: Dict[str, PomodoroCommand] = {command.name: command for command in COMMANDS}

EMOJI_COMMANDS: Dict[str, List[PomodoroCommand]] = {}
for _command in COMMANDS:
    if _command.emoji is not None:
        EMOJI_COMMANDS.setdefault(_command.emoji, []).append(_command)


def available_actions(state: SessionState) -> List[PomodoroCommand]:
    if state is SessionState.FINISHED:
        return []
    names = ["join", "leave", "stop"]
    if is_active(state):
        names += ["pause", "skip", "bump", "big bump", "lower", "big lower"]
    elif state is SessionState.NOT_STARTED:
        names.append("start")
    elif state is SessionState.PAUSED:
        names.append("resume")
    return [COMMANDS_BY_NAME[name] for name in names]


def available_emojis(state: SessionState) -> List[str]:
    """Buttons to show on the status message, by priority."""
    emojis: List[str] = []
    for command in sorted(available_actions(state), key=lambda c: c.emoji_priority):
        if command.emoji is None:
            raise InternalError("Specified command doesn't have an emoji")
        if command.emoji in emojis:
            raise InternalError("Ambiguous emoji")
        emojis.append(command.emoji)
    return emojis


def help_text() -> str:
    lines = []
    for command in COMMANDS:
        usage = f"/{POMODORO_COMMAND} {command.name}"
        if command.arguments:
            usage += f" {command.arguments}"
        lines.append(f"{usage} - {command.description}")
    return "\n".join(lines)


def resolve_command(text: str) -> Tuple[PomodoroCommand, str]:
    """
    Split "big bump 10" into the command and its arguments.

    Raises:
        InvalidArgument: if no command matches
    """
    words = text.split()
    if not words:
        return COMMANDS_BY_NAME["help"], ""
    # Longest name first: "big bump" before "big"
    for size in (2, 1):
        if len(words) < size:
            continue
        name = " ".join(words[:size]).lower()
        command = COMMANDS_BY_NAME.get(name)
        if command is not None:
            parts = text.split(maxsplit=size)
            args = parts[size] if len(parts) > size else ""
            return command, args
    names = ", ".join(command.name for command in COMMANDS)
    raise InvalidArgument(f"I don't understand that argument. Use one of: {names}")


def command_for_emoji(symbol: str, state: SessionState) -> Optional[PomodoroCommand]:
    """
    Command bound to a button; shared emoji are resolved by the session state.

    Raises:
        InvalidArgument: if the button does nothing in this state
    """
    commands = EMOJI_COMMANDS.get(symbol)
    if not commands:
        return None
    if len(commands) == 1:
        return commands[0]
    for command in available_actions(state):
        if command.emoji == symbol:
            return command
    raise InvalidArgument("That button doesn't do anything right now")


async def run_command(command: PomodoroCommand, ctx: CommandContext) -> Optional[str]:
    """
    Returns:
        reply text for the chat, None when the status message says it all
    """
    if command.admin_only:
        if ctx.is_admin is None or not await ctx.is_admin():
            raise InvalidArgument("Only chat admins can do that")
    return await command.handler(ctx)


async def execute_text(text: str, ctx: CommandContext) -> Optional[str]:
    command, args = resolve_command(text)
    return await run_command(command, dataclasses.replace(ctx, args=args))


async def execute_emoji(symbol: str, ctx: CommandContext) -> Tuple[Optional[PomodoroCommand], Optional[str]]:
    session = ctx.session()
    command = command_for_emoji(symbol, session.state)
    if command is None:
        return None, None
    reply = await run_command(command, dataclasses.replace(ctx, from_emoji=True, args=""))
    return command, reply
