from unittest.mock import AsyncMock, MagicMock

import pytest

from config import BotConfig
from database.pomodoro_templates_db import PomodoroTemplateDB, PomodoroTemplateDBMemory
from models.ban_list import MemberBanList
from services.scheduler import SessionScheduler


def test_dispatcher_has_shared_objects():
    import main

    dp = main.create_dispatcher(BotConfig(bot_token="TEST:TOKEN", poll_interval_sec=3, sweep_interval_sec=9))
    assert isinstance(dp["scheduler"], SessionScheduler)
    assert dp["scheduler"].poll_interval == 3
    assert dp["scheduler"].sweep_interval.total_seconds() == 9
    assert isinstance(dp["ban_list"], MemberBanList)
    assert isinstance(dp["templates"], PomodoroTemplateDBMemory)


def test_template_store_falls_back_to_memory(monkeypatch):
    import main

    monkeypatch.setattr(main, "create_firestore_client", lambda creds_path: None)
    store = main.create_template_store(BotConfig(bot_token="x", firestore_enabled=True))
    assert isinstance(store, PomodoroTemplateDBMemory)

    monkeypatch.setattr(main, "create_firestore_client", lambda creds_path: MagicMock())
    store = main.create_template_store(BotConfig(bot_token="x", firestore_enabled=True))
    assert isinstance(store, PomodoroTemplateDB)


@pytest.mark.asyncio
async def test_app_boot_without_firestore(monkeypatch):
    import main

    monkeypatch.setattr(main, "load_config", lambda: BotConfig(bot_token="TEST:TOKEN"))
    monkeypatch.setattr(main, "setup_logging", lambda level: None)

    dummy_bot = AsyncMock()
    dummy_bot.delete_webhook = AsyncMock()
    dummy_bot.session = AsyncMock()
    monkeypatch.setattr(main, "Bot", lambda *args, **kwargs: dummy_bot)

    scheduler = SessionScheduler()
    dummy_dp = MagicMock()
    dummy_dp.start_polling = AsyncMock()
    dummy_dp.__getitem__.return_value = scheduler
    monkeypatch.setattr(main, "create_dispatcher", lambda config: dummy_dp)

    await main.main()

    assert dummy_dp.start_polling.called
    assert dummy_bot.delete_webhook.called
    dummy_bot.session.close.assert_awaited_once()
