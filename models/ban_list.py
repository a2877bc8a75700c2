"""Members who may join sessions but not post a status, per chat."""
import threading
from typing import Dict, Set


class MemberBanList:
    def __init__(self):
        self._lock = threading.Lock()
        self._banned: Dict[int, Set[int]] = {}

    def ban(self, chat_id: int, member_id: int) -> bool:
        """Returns False when the member was already banned."""
        with self._lock:
            banned = self._banned.setdefault(chat_id, set())
            if member_id in banned:
                return False
            banned.add(member_id)
            return True

    def unban(self, chat_id: int, member_id: int) -> bool:
        with self._lock:
            banned = self._banned.get(chat_id)
            if not banned or member_id not in banned:
                return False
            banned.discard(member_id)
            if not banned:
                del self._banned[chat_id]
            return True

    def is_banned(self, chat_id: int, member_id: int) -> bool:
        with self._lock:
            return member_id in self._banned.get(chat_id, ())
