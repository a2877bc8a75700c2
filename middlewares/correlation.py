# middlewares/correlation.py
from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

from utils.logging import clear_request_context, get_logger, set_request_context

logger = get_logger(__name__)


class CorrelationMiddleware(BaseMiddleware):
    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        request_id = str(uuid.uuid4())
        user_id: str | None = None
        chat_id: str | None = None
        update_type = type(event).__name__
        if isinstance(event, Message):
            update_type = "message"
            if event.from_user:
                user_id = str(event.from_user.id)
            if getattr(event, "chat", None):
                chat_id = str(event.chat.id)
        elif isinstance(event, CallbackQuery):
            update_type = "callback_query"
            if event.from_user:
                user_id = str(event.from_user.id)
            if getattr(event, "message", None):
                chat_id = str(event.message.chat.id)
        elif getattr(event, "message", None) and event.message.from_user:
            user_id = str(event.message.from_user.id)
            chat_id = str(event.message.chat.id)
            update_type = "message"
        elif getattr(event, "callback_query", None) and event.callback_query.from_user:
            user_id = str(event.callback_query.from_user.id)
            update_type = "callback_query"

        set_request_context(request_id=request_id, user_id=user_id, chat_id=chat_id)
        data["request_id"] = request_id

        logger.info(
            "update received",
            extra={
                "request_id": request_id,
                "user_id": user_id,
                "chat_id": chat_id,
                "update_type": update_type,
            },
        )
        try:
            return await handler(event, data)
        finally:
            # очистим контекст, чтобы значения не «протекали» в следующий апдейт
            clear_request_context()
