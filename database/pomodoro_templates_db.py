"""
Шаблоны настроек pomodoro по чатам

A chat can save the settings of a session; new sessions in that chat start
from them. Live sessions are never stored.
"""
import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from google.cloud import firestore

from models.errors import InvalidArgument
from models.pomodoro_settings import PomodoroSettings
from utils.logging import get_logger

logger = get_logger(__name__)

COLLECTION_NAME = "pomodoro_templates"


class PomodoroTemplateStore(Protocol):
    async def get(self, chat_id: int) -> Optional[PomodoroSettings]: ...

    async def save(self, chat_id: int, settings: PomodoroSettings) -> None: ...

    async def delete(self, chat_id: int) -> bool: ...


def _settings_from_document(chat_id: int, data: Optional[Dict[str, Any]]) -> Optional[PomodoroSettings]:
    if data is None:
        return None
    try:
        return PomodoroSettings.from_dict(data.get("settings", {}))
    except InvalidArgument as e:
        # Stored before a limit changed; behave as if there was no template
        logger.warning(
            "Invalid pomodoro template ignored",
            extra={"chat_id": chat_id, "error": str(e)},
        )
        return None


class PomodoroTemplateDB:
    """Templates in Firestore, one document per chat."""

    def __init__(self, db: firestore.Client):
        """
        Args:
            db: Firestore client
        """
        self.db = db
        self.collection_name = COLLECTION_NAME

    def _document(self, chat_id: int):
        return self.db.collection(self.collection_name).document(str(chat_id))

    async def get(self, chat_id: int) -> Optional[PomodoroSettings]:
        doc = await asyncio.to_thread(self._document(chat_id).get)
        if not doc.exists:
            return None
        return _settings_from_document(chat_id, doc.to_dict())

    async def save(self, chat_id: int, settings: PomodoroSettings) -> None:
        await asyncio.to_thread(
            self._document(chat_id).set,
            {
                "settings": settings.to_dict(),
                "updated_at": datetime.now(timezone.utc),
            },
        )
        logger.info("Pomodoro template saved", extra={"chat_id": chat_id})

    async def delete(self, chat_id: int) -> bool:
        """
        Returns:
            False if the chat had no template
        """
        doc_ref = self._document(chat_id)
        doc = await asyncio.to_thread(doc_ref.get)
        if not doc.exists:
            return False
        await asyncio.to_thread(doc_ref.delete)
        logger.info("Pomodoro template deleted", extra={"chat_id": chat_id})
        return True


class PomodoroTemplateDBMemory:
    """
    In-memory реализация PomodoroTemplateDB для работы без Firestore

    Stores the serialised form so reads go through the same validation.
    """

    def __init__(self):
        self.templates: Dict[int, Dict[str, Any]] = {}
        logger.info("PomodoroTemplateDBMemory initialised (templates kept in memory)")

    async def get(self, chat_id: int) -> Optional[PomodoroSettings]:
        return _settings_from_document(chat_id, self.templates.get(chat_id))

    async def save(self, chat_id: int, settings: PomodoroSettings) -> None:
        self.templates[chat_id] = {"settings": settings.to_dict()}
        logger.debug("Pomodoro template saved in memory", extra={"chat_id": chat_id})

    async def delete(self, chat_id: int) -> bool:
        return self.templates.pop(chat_id, None) is not None
