"""
Главный файл для запуска телеграм-бота
"""
import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from config import BotConfig, ConfigError, load_config
from database.pomodoro_templates_db import PomodoroTemplateDB, PomodoroTemplateDBMemory, PomodoroTemplateStore
from handlers import pomodoro
from middlewares.correlation import CorrelationMiddleware
from models.ban_list import MemberBanList
from services.scheduler import SessionScheduler
from utils.firestore_client import create_firestore_client
from utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_template_store(config: BotConfig) -> PomodoroTemplateStore:
    """Firestore when enabled and reachable, memory otherwise."""
    if config.firestore_enabled:
        db = create_firestore_client(config.google_application_credentials)
        if db is not None:
            logger.info("Pomodoro templates stored in Firestore")
            return PomodoroTemplateDB(db)
        logger.warning("Firestore unavailable, pomodoro templates kept in memory")
    return PomodoroTemplateDBMemory()


def create_dispatcher(config: BotConfig) -> Dispatcher:
    dp = Dispatcher()
    dp.message.middleware(CorrelationMiddleware())
    dp.callback_query.middleware(CorrelationMiddleware())
    dp.include_router(pomodoro.router)

    dp["scheduler"] = SessionScheduler(
        poll_interval=config.poll_interval_sec,
        sweep_interval=config.sweep_interval_sec,
    )
    dp["ban_list"] = MemberBanList()
    dp["templates"] = create_template_store(config)
    return dp


async def main() -> None:
    """Основная точка входа приложения."""
    config = load_config()
    setup_logging(level=config.log_level)
    logger.info("Starting pomodoro bot")

    bot = Bot(
        token=config.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dp = create_dispatcher(config)

    # Удаляем вебхуки (если были установлены)
    await bot.delete_webhook(drop_pending_updates=True)

    try:
        await dp.start_polling(bot)
    finally:
        logger.info("Shutting down...")
        await dp["scheduler"].stop()
        await bot.session.close()
        logger.info("Bot stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except ConfigError as e:
        logging.basicConfig()
        logging.error("Configuration error: %s", e)
        raise SystemExit(1)
    except KeyboardInterrupt:
        logging.info("Бот остановлен пользователем")
