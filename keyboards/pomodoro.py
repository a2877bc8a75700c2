"""
Клавиатуры для pomodoro-сессий чата

Inline buttons stand in for message reactions: one button per emoji,
pressing it runs the command bound to that emoji.
"""
from typing import Iterable, Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

CALLBACK_PREFIX = "pomodoro:"
BUTTONS_PER_ROW = 5


def emoji_callback_data(symbol: str) -> str:
    return CALLBACK_PREFIX + symbol


def emoji_from_callback_data(data: Optional[str]) -> Optional[str]:
    if not data or not data.startswith(CALLBACK_PREFIX):
        return None
    return data[len(CALLBACK_PREFIX):] or None


def get_session_keyboard(symbols: Iterable[str]) -> Optional[InlineKeyboardMarkup]:
    """Кнопки управления сессией; None when there is nothing to press"""
    symbols = list(symbols)
    if not symbols:
        return None

    builder = InlineKeyboardBuilder()
    for symbol in symbols:
        builder.add(InlineKeyboardButton(text=symbol, callback_data=emoji_callback_data(symbol)))
    builder.adjust(BUTTONS_PER_ROW)
    return builder.as_markup()
