"""
Keeps the status and ping messages of one session in sync with its state.

Every call returns immediately; the messaging work runs as asyncio tasks.
Message handles are only known once those tasks finish, so later edits and
deletes wait for the task that created the message.
"""
import asyncio
from typing import Any, Callable, Coroutine, List, Optional, Set

from models.session_state import SessionState
from services.status_view import StatusView
from utils.logging import get_logger
from utils.messaging import MessagingSurface

logger = get_logger(__name__)


class SessionDisplay:
    def __init__(
        self,
        surface: MessagingSurface,
        reactions: Callable[[SessionState], List[str]],
        chat_id: Optional[int] = None,
    ):
        self.surface = surface
        self.chat_id = chat_id
        self._reactions = reactions
        self._status_task: Optional[asyncio.Task] = None
        self._ping_task: Optional[asyncio.Task] = None
        self._edit_task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def has_status(self) -> bool:
        return self._status_task is not None

    def post_status(self, view: StatusView) -> None:
        """Send a new status message; later refreshes edit this one."""
        self._status_task = self._spawn(self._post_status(view))

    def refresh(self, view: StatusView, reset_reactions: bool = False) -> None:
        if not self.has_status:
            return
        self._edit_task = self._spawn(
            self._edit_status(self._status_task, self._edit_task, view, reset_reactions)
        )

    def announce(self, view: StatusView, ping_text: str, delete_old: bool) -> None:
        """Ping participants and move the status message below the ping."""
        old_status, old_ping = self._status_task, self._ping_task
        self._ping_task = self._spawn(self.surface.post_status(ping_text))
        self._status_task = self._spawn(self._post_status(view))
        self._edit_task = None
        if delete_old:
            for old in (old_status, old_ping):
                if old is not None:
                    self._spawn(self._delete(old))

    async def drain(self) -> None:
        """Wait for every scheduled message operation to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop, e.g. sessions driven synchronously
            coro.close()
            return None
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Session message update failed",
                exc_info=exc,
                extra={"chat_id": self.chat_id, "error": str(exc)},
            )

    async def _handle(self, task: Optional[asyncio.Task]) -> Any:
        if task is None:
            return None
        await asyncio.wait([task])
        if task.cancelled() or task.exception() is not None:
            return None
        return task.result()

    async def _post_status(self, view: StatusView) -> Any:
        handle = await self.surface.post_status(view)
        for symbol in self._reactions(view.state):
            await self.surface.add_reaction(handle, symbol)
        return handle

    async def _edit_status(
        self,
        status_task: asyncio.Task,
        previous_edit: Optional[asyncio.Task],
        view: StatusView,
        reset_reactions: bool,
    ) -> None:
        # Edits land in the order they were requested
        if previous_edit is not None:
            await asyncio.wait([previous_edit])
        handle = await self._handle(status_task)
        if handle is None:
            return
        await self.surface.edit_status(handle, view)
        if reset_reactions:
            await self.surface.clear_reactions(handle)
            for symbol in self._reactions(view.state):
                await self.surface.add_reaction(handle, symbol)

    async def _delete(self, task: asyncio.Task) -> None:
        handle = await self._handle(task)
        if handle is not None:
            await self.surface.delete_message(handle)
