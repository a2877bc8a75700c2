"""
Обработчики /pomodoro

Text subcommands and status message buttons. Shared objects (scheduler,
ban_list, templates) come from the dispatcher's workflow data.
"""
from aiogram import Bot, F, Router
from aiogram.enums import ChatMemberStatus
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message, User

from database.pomodoro_templates_db import PomodoroTemplateStore
from keyboards.pomodoro import CALLBACK_PREFIX, emoji_from_callback_data
from models.ban_list import MemberBanList
from models.errors import InternalError, InvalidArgument
from models.participants import Member
from services.pomodoro_commands import (
    POMODORO_COMMAND,
    CommandContext,
    available_emojis,
    execute_emoji,
    execute_text,
)
from services.scheduler import SessionScheduler
from services.session_display import SessionDisplay
from services.status_view import markup_to_html
from utils.logging import get_logger
from utils.messaging import TelegramMessagingSurface
from utils.timing import utc_now

logger = get_logger(__name__)
router = Router()

INTERNAL_ERROR_REPLY = "Uh oh, something went wrong on my side. Sorry!"
ADMIN_STATUSES = (ChatMemberStatus.ADMINISTRATOR, ChatMemberStatus.CREATOR)


def member_from_user(user: User) -> Member:
    return Member(id=user.id, display_name=user.full_name, mention=user.mention_html())


def make_display_factory(bot: Bot):
    def display_for(chat_id: int) -> SessionDisplay:
        return SessionDisplay(
            TelegramMessagingSurface(bot, chat_id),
            reactions=available_emojis,
            chat_id=chat_id,
        )
    return display_for


def _admin_check(bot: Bot, chat_id: int, user_id: int):
    async def is_admin() -> bool:
        chat_member = await bot.get_chat_member(chat_id=chat_id, user_id=user_id)
        return chat_member.status in ADMIN_STATUSES
    return is_admin


def _context(
    bot: Bot,
    chat_id: int,
    user: User,
    scheduler: SessionScheduler,
    ban_list: MemberBanList,
    templates: PomodoroTemplateStore,
    reply_to: Message | None = None,
) -> CommandContext:
    reply_target = None
    if reply_to is not None and reply_to.from_user is not None:
        reply_target = member_from_user(reply_to.from_user)
    return CommandContext(
        chat_id=chat_id,
        member=member_from_user(user),
        now=utc_now(),
        scheduler=scheduler,
        ban_list=ban_list,
        templates=templates,
        reply_target=reply_target,
        display_factory=make_display_factory(bot),
        is_admin=_admin_check(bot, chat_id, user.id),
    )


@router.message(Command(POMODORO_COMMAND, "pomo"))
async def handle_pomodoro(
    message: Message,
    command: CommandObject,
    bot: Bot,
    scheduler: SessionScheduler,
    ban_list: MemberBanList,
    templates: PomodoroTemplateStore,
):
    """Обработчик /pomodoro <подкоманда> [аргументы]"""
    if message.from_user is None:
        return

    ctx = _context(
        bot, message.chat.id, message.from_user, scheduler, ban_list, templates,
        reply_to=message.reply_to_message,
    )
    try:
        reply = await execute_text(command.args or "", ctx)
    except InvalidArgument as e:
        reply = str(e)
    except InternalError as e:
        logger.error(
            "Pomodoro command failed",
            exc_info=True,
            extra={"chat_id": message.chat.id, "command_args": command.args, "error": str(e)},
        )
        reply = INTERNAL_ERROR_REPLY

    if reply:
        await message.answer(markup_to_html(reply))


@router.callback_query(F.data.startswith(CALLBACK_PREFIX))
async def handle_pomodoro_button(
    callback: CallbackQuery,
    bot: Bot,
    scheduler: SessionScheduler,
    ban_list: MemberBanList,
    templates: PomodoroTemplateStore,
):
    """Кнопки под статусом сессии"""
    symbol = emoji_from_callback_data(callback.data)
    if symbol is None or callback.message is None:
        await callback.answer()
        return

    chat_id = callback.message.chat.id
    ctx = _context(bot, chat_id, callback.from_user, scheduler, ban_list, templates)
    try:
        command, reply = await execute_emoji(symbol, ctx)
    except InvalidArgument as e:
        await callback.answer(str(e))
        return
    except InternalError as e:
        logger.error(
            "Pomodoro button failed",
            exc_info=True,
            extra={"chat_id": chat_id, "emoji": symbol, "error": str(e)},
        )
        await callback.answer(INTERNAL_ERROR_REPLY)
        return

    if command is None:
        await callback.answer()
        return
    if reply:
        await bot.send_message(chat_id=chat_id, text=markup_to_html(reply))
    if command.remove_after_use:
        await callback.answer()
    else:
        await callback.answer(command.description)
