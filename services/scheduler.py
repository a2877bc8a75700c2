"""
Планировщик pomodoro-сессий.

Owns the chat -> session registry and one background asyncio task that
sweeps it. The task starts with the first registration and ends once the
registry is empty.
"""
import asyncio
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from models.errors import InvalidArgument
from models.session_state import SessionState
from services.pomodoro_session import PomodoroSession
from utils.logging import get_logger, set_request_context
from utils.timing import utc_now

logger = get_logger(__name__)


class SessionScheduler:
    def __init__(
        self,
        poll_interval: float = 10,
        sweep_interval: float = 20,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            poll_interval: seconds between wake ups of the background task
            sweep_interval: seconds between sweeps (checked on each wake up)
            clock: current time, replaced in tests
        """
        self.poll_interval = poll_interval
        self.sweep_interval = timedelta(seconds=sweep_interval)
        self._clock = clock
        self._sessions: Dict[int, PomodoroSession] = {}
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None
        self._last_sweep: Optional[datetime] = None

    def register(self, chat_id: int, session: PomodoroSession) -> None:
        """
        Raises:
            InvalidArgument: if the chat already has a session going on
        """
        with self._lock:
            existing = self._sessions.get(chat_id)
            if existing is not None and existing.state is not SessionState.FINISHED:
                raise InvalidArgument("This channel already has a pomodoro session going on")
            self._sessions[chat_id] = session
            self._ensure_running()
        logger.info("Pomodoro session registered", extra={"chat_id": chat_id})

    def get(self, chat_id: int) -> PomodoroSession:
        """
        Raises:
            InvalidArgument: if the chat has no session
        """
        with self._lock:
            session = self._sessions.get(chat_id)
        if session is None:
            raise InvalidArgument("There's no session in this channel, try /pomodoro new")
        return session

    def remove(self, chat_id: int) -> Optional[PomodoroSession]:
        with self._lock:
            session = self._sessions.pop(chat_id, None)
        if session is not None:
            logger.info("Pomodoro session removed", extra={"chat_id": chat_id})
        return session

    def __contains__(self, chat_id: int) -> bool:
        with self._lock:
            return chat_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep(self, now: datetime) -> int:
        """
        Update every registered session and drop the finished ones.

        Returns:
            number of sessions still registered
        """
        with self._lock:
            sessions = list(self._sessions.items())

        for chat_id, session in sessions:
            set_request_context(chat_id=str(chat_id))
            try:
                if session.state is not SessionState.FINISHED:
                    session.update(now, False)
            except Exception as e:
                # Keep the session so the stall stays visible
                logger.error(
                    "Pomodoro session update failed",
                    exc_info=True,
                    extra={"chat_id": chat_id, "state": session.state.value, "error": str(e)},
                )
                continue
            finally:
                set_request_context(chat_id=None)

            if session.state is SessionState.FINISHED:
                with self._lock:
                    # A new session may have replaced it meanwhile
                    if self._sessions.get(chat_id) is session:
                        del self._sessions[chat_id]
                logger.info("Finished pomodoro session dropped", extra={"chat_id": chat_id})

        with self._lock:
            remaining = len(self._sessions)
        logger.debug("Pomodoro sweep completed", extra={"checked": len(sessions), "remaining": remaining})
        return remaining

    async def stop(self) -> None:
        """Cancel the background task, e.g. on shutdown."""
        with self._lock:
            task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Pomodoro scheduler stopped")

    def _ensure_running(self) -> None:
        # Called with the registry lock held
        if self._task is not None and not self._task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, pomodoro scheduler not started")
            return
        self._last_sweep = None
        self._task = loop.create_task(self._run())
        logger.info(
            "Pomodoro scheduler started",
            extra={
                "poll_interval_sec": self.poll_interval,
                "sweep_interval_sec": self.sweep_interval.total_seconds(),
            },
        )

    async def _run(self) -> None:
        set_request_context(request_id="pomodoro-scheduler")
        while True:
            await asyncio.sleep(self.poll_interval)

            now = self._clock()
            if self._last_sweep is None or now - self._last_sweep >= self.sweep_interval:
                self._last_sweep = now
                try:
                    self.sweep(now)
                except Exception as e:
                    logger.error("Pomodoro sweep failed", exc_info=True, extra={"error": str(e)})

            with self._lock:
                if not self._sessions:
                    self._task = None
                    logger.info("No pomodoro sessions left, scheduler exiting")
                    return
