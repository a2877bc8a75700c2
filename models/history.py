"""
Append-only log of the intervals a pomodoro session has completed.

Statistics (work sessions, study time) and the remaining time of a resumed
interval are all derived from this log.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from models.session_state import SessionState, is_active


@dataclass(frozen=True)
class CompletedInterval:
    minutes: int
    state: SessionState


class HistoricStateLog:
    """Stores the states a session has been through and how long each lasted."""

    def __init__(self):
        self._items: List[CompletedInterval] = []

    @property
    def items(self) -> Tuple[CompletedInterval, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def record_completed(self, minutes: int, state: SessionState) -> None:
        # Not started and finished never count towards anything
        if state in (SessionState.NOT_STARTED, SessionState.FINISHED):
            minutes = 0
        self._items.append(CompletedInterval(minutes=minutes, state=state))

    def last_active_state(self) -> Optional[SessionState]:
        for item in reversed(self._items):
            if is_active(item.state):
                return item.state
        return None

    def count_work_sessions(self, since_long_break: bool = False) -> int:
        """
        Number of work sessions in the log, newest to oldest.

        Consecutive WORK records separated only by suspended states are one
        work session that was paused and resumed.
        """
        count = 0
        # State seen just after the current record when walking backwards
        later_active: Optional[SessionState] = None
        for item in reversed(self._items):
            if item.state is SessionState.LONG_BREAK and since_long_break:
                break
            if not is_active(item.state):
                continue
            if item.state is SessionState.WORK and later_active is not SessionState.WORK:
                count += 1
            later_active = item.state
        return count

    def work_sessions_since_last_long_break(self) -> int:
        return self.count_work_sessions(since_long_break=True)

    def completed_stats(
        self, minutes_in_current: int, current_state: SessionState
    ) -> Tuple[int, int]:
        """
        Returns:
            (completed work sessions, total study minutes); the live part of the
            current interval counts when the session is working
        """
        count = self.count_work_sessions()
        study_minutes = sum(
            item.minutes for item in self._items if item.state is SessionState.WORK
        )
        if current_state is SessionState.WORK:
            study_minutes += minutes_in_current
        return count, study_minutes

    def next_state_duration(self, next_state: SessionState, settings) -> int:
        """
        Minutes the next state should last.

        A state entered again after a pause only gets the time it still owes.
        """
        if not is_active(next_state):
            return settings.timeout_duration

        duration = settings.state_duration(next_state)
        if duration is None:
            # Long break support was turned off while it was pending
            duration = settings.state_duration(SessionState.BREAK)

        for item in reversed(self._items):
            if item.state is next_state:
                duration -= item.minutes
            elif is_active(item.state):
                break
        return max(duration, 0)
