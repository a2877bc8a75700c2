"""
Messaging surface used by pomodoro sessions and its Telegram implementation.

Strings are sent as Telegram HTML as-is; status views are rendered first.
"""
import asyncio
from typing import Any, Dict, List, Protocol, Set, Union

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest

from keyboards.pomodoro import get_session_keyboard
from services.status_view import StatusView
from utils.logging import get_logger

logger = get_logger(__name__)

StatusContent = Union[StatusView, str]


class MessagingSurface(Protocol):
    async def post_status(self, content: StatusContent) -> Any: ...

    async def edit_status(self, handle: Any, content: StatusContent) -> None: ...

    async def delete_message(self, handle: Any) -> None: ...

    async def clear_reactions(self, handle: Any) -> None: ...

    async def add_reaction(self, handle: Any, symbol: str) -> None: ...


def render(content: StatusContent) -> str:
    if isinstance(content, StatusView):
        return content.render_html()
    return content


def _not_modified(error: TelegramBadRequest) -> bool:
    return "message is not modified" in str(error)


class TelegramMessagingSurface:
    """
    Handles are message ids. Reactions live in the message's inline keyboard;
    several reaction changes in a row are sent as one keyboard update.
    """

    def __init__(self, bot: Bot, chat_id: int):
        self.bot = bot
        self.chat_id = chat_id
        self._buttons: Dict[int, List[str]] = {}
        # Handles with a keyboard update that has not been sent yet
        self._queued: Set[int] = set()
        self._flushes: Set[asyncio.Task] = set()

    async def post_status(self, content: StatusContent) -> int:
        message = await self.bot.send_message(chat_id=self.chat_id, text=render(content))
        self._buttons[message.message_id] = []
        return message.message_id

    async def edit_status(self, handle: int, content: StatusContent) -> None:
        try:
            await self.bot.edit_message_text(
                text=render(content),
                chat_id=self.chat_id,
                message_id=handle,
                reply_markup=get_session_keyboard(self._buttons.get(handle, [])),
            )
        except TelegramBadRequest as e:
            if not _not_modified(e):
                raise

    async def delete_message(self, handle: int) -> None:
        self._buttons.pop(handle, None)
        self._queued.discard(handle)
        try:
            await self.bot.delete_message(chat_id=self.chat_id, message_id=handle)
        except TelegramAPIError as e:
            # Already deleted by someone else
            logger.warning(
                "Status message delete failed",
                extra={"chat_id": self.chat_id, "message_id": handle, "error": str(e)},
            )

    async def clear_reactions(self, handle: int) -> None:
        self._buttons[handle] = []
        self._schedule_flush(handle)

    async def add_reaction(self, handle: int, symbol: str) -> None:
        buttons = self._buttons.setdefault(handle, [])
        if symbol not in buttons:
            buttons.append(symbol)
        self._schedule_flush(handle)

    def _schedule_flush(self, handle: int) -> None:
        if handle in self._queued:
            return
        self._queued.add(handle)
        task = asyncio.get_running_loop().create_task(self._flush(handle))
        self._flushes.add(task)
        task.add_done_callback(self._flushes.discard)

    async def _flush(self, handle: int) -> None:
        # Let the rest of the reaction changes queue up first
        await asyncio.sleep(0)
        self._queued.discard(handle)
        if handle not in self._buttons:
            return
        try:
            await self.bot.edit_message_reply_markup(
                chat_id=self.chat_id,
                message_id=handle,
                reply_markup=get_session_keyboard(self._buttons[handle]),
            )
        except TelegramBadRequest as e:
            if not _not_modified(e):
                logger.error(
                    "Keyboard update failed",
                    extra={"chat_id": self.chat_id, "message_id": handle, "error": str(e)},
                )

    async def drain(self) -> None:
        """Wait for pending keyboard updates."""
        while self._flushes:
            await asyncio.gather(*list(self._flushes), return_exceptions=True)
