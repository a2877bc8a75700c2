"""
Pomodoro session of a chat: the work/break state machine.

Both user commands and the scheduler sweep end up in update(); every state
change happens while holding the session lock so the two never interleave.
Messages are handed to an optional SessionDisplay and never awaited here.
"""
import threading
from datetime import datetime, timedelta
from typing import Optional

from models.errors import InternalError, InvalidArgument
from models.history import HistoricStateLog
from models.participants import Member, Participants
from models.pomodoro_settings import MAX_DURATION, PomodoroSettings
from models.session_state import (
    BOOLEAN_SETTING_LABELS,
    STATE_COLOURS,
    STATE_DISPLAY_NAMES,
    STATE_IMAGES,
    STATE_TITLES,
    BooleanSetting,
    SessionState,
    is_active,
)
from services.session_display import SessionDisplay
from services.status_view import StatusField, StatusView
from utils.logging import get_logger
from utils.timing import minutes_between, minutes_to_display_string

logger = get_logger(__name__)

TOGGLE_SEPARATOR = "・"


class PomodoroSession:
    def __init__(
        self,
        chat_id: int,
        author: Member,
        args: str = "",
        *,
        settings: Optional[PomodoroSettings] = None,
        display: Optional[SessionDisplay] = None,
    ):
        """
        Args:
            chat_id: chat owning the session
            author: member who created the session, joins with pings on
            args: settings arguments applied on top of ``settings``
            settings: template to start from (copied), defaults otherwise
            display: where status and ping messages go, None to stay silent

        Raises:
            InvalidArgument: if args is invalid
        """
        session_settings = settings.copy() if settings is not None else PomodoroSettings()
        session_settings.set_from_args(args)

        self.chat_id = chat_id
        self.author = author
        self.settings = session_settings
        self.history = HistoricStateLog()
        self.participants = Participants()
        self.participants.add(author, wants_ping=True)
        self.display = display

        self.state = SessionState.NOT_STARTED
        # Active state the session enters when resumed
        self.resume_state: Optional[SessionState] = None
        self.session_started_at: Optional[datetime] = None
        self.current_state_started_at: Optional[datetime] = None
        self.next_transition_due: Optional[datetime] = None

        self._lock = threading.RLock()

    # === Переходы ===

    def start(self, now: datetime) -> None:
        with self._lock:
            if self.state is not SessionState.NOT_STARTED:
                raise InvalidArgument("Session is already started")
            self.session_started_at = now
            self._transition(SessionState.WORK, now)

    def pause(self, now: datetime) -> None:
        with self._lock:
            if self.state is SessionState.NOT_STARTED:
                raise InvalidArgument("Session not started")
            if not is_active(self.state):
                raise InvalidArgument("Session is already suspended")
            self._transition(SessionState.PAUSED, now)

    def resume(self, now: datetime) -> None:
        with self._lock:
            if self.state is not SessionState.PAUSED:
                raise InvalidArgument("Session isn't paused so cannot resume")
            if self.resume_state is None:
                raise InternalError("Uh oh, I don't remember what we were doing... Sorry")
            self._transition(self.resume_state, now)

    def stop(self, now: datetime) -> None:
        with self._lock:
            if self.state is SessionState.FINISHED:
                raise InvalidArgument("Session is already stopped")
            self._transition(SessionState.FINISHED, now)

    def update(self, now: datetime, force_next: bool = False) -> None:
        """
        Move to the next state if it is due (or forced), otherwise refresh the status message.

        Raises:
            InvalidArgument: if forced while the session is suspended
        """
        with self._lock:
            due = self.next_transition_due
            if not force_next and not (due is not None and now >= due):
                self._refresh(now)
                return

            if force_next and not is_active(self.state):
                raise InvalidArgument("Session is currently suspended, try starting it first")

            if is_active(self.state):
                candidate = self._next_state()
            else:
                # Suspended for too long
                candidate = SessionState.FINISHED

            if not force_next and is_active(candidate) and not self.settings.is_enabled(BooleanSetting.AUTO):
                # Wait for someone to confirm the next interval
                self._transition(SessionState.PAUSED, now, resume_state=candidate, redirected=True)
            else:
                self._transition(candidate, now)

    def _transition(
        self,
        target: SessionState,
        now: datetime,
        resume_state: Optional[SessionState] = None,
        redirected: bool = False,
    ) -> None:
        leaving = self.state
        if self.current_state_started_at is not None:
            self.history.record_completed(minutes_between(self.current_state_started_at, now), leaving)

        if target is SessionState.FINISHED:
            self.next_transition_due = None
        else:
            self.next_transition_due = now + timedelta(
                minutes=self.history.next_state_duration(target, self.settings)
            )

        if resume_state is not None:
            self.resume_state = resume_state
        elif is_active(leaving):
            self.resume_state = leaving
        self.state = target
        self.current_state_started_at = now

        logger.info(
            "Pomodoro state changed",
            extra={
                "chat_id": self.chat_id,
                "from_state": leaving.value,
                "to_state": target.value,
                "resume_state": self.resume_state.value if self.resume_state else None,
            },
        )

        if self.display is None:
            return
        view = self.build_status_view(now)
        if is_active(target) or redirected:
            self.display.announce(
                view,
                self.ping_text(self.resume_state if redirected else target),
                delete_old=self.settings.is_enabled(BooleanSetting.DELETE),
            )
        else:
            self.display.refresh(view, reset_reactions=True)

    def _next_state(self) -> SessionState:
        """Only valid in an active state: work, break or long break."""
        if self.state is not SessionState.WORK:
            return SessionState.WORK
        cadence = self.settings.work_sessions_before_long_break
        if cadence is not None and self._work_sessions_including_current() >= cadence:
            return SessionState.LONG_BREAK
        return SessionState.BREAK

    def _work_sessions_including_current(self) -> int:
        count = self.history.work_sessions_since_last_long_break()
        # A work interval resumed after a pause is already counted
        if self.state is SessionState.WORK and self.history.last_active_state() is not SessionState.WORK:
            count += 1
        return count

    # === Ручная корректировка времени ===

    def add_time(self, minutes: int, now: datetime) -> None:
        with self._lock:
            if not is_active(self.state):
                raise InvalidArgument("Session is currently suspended")
            if minutes <= 0:
                raise InvalidArgument("Please enter a number of minutes greater than 0")
            remaining = self._remaining_minutes(now)
            if remaining + minutes >= MAX_DURATION:
                raise InvalidArgument(
                    f"Please enter a number of minutes less than {MAX_DURATION - remaining}"
                )
            self.next_transition_due += timedelta(minutes=minutes)
            self.update(now, False)

    def remove_time(self, minutes: int, now: datetime) -> None:
        with self._lock:
            if not is_active(self.state):
                raise InvalidArgument("Session is currently suspended")
            if minutes <= 0:
                raise InvalidArgument("Please enter a number of minutes greater than 0")
            remaining = self._remaining_minutes(now)
            if remaining < minutes + 1:
                raise InvalidArgument(
                    f"There's only {minutes_to_display_string(remaining)} left! "
                    f"Can lower it by a maximum of {minutes_to_display_string(max(remaining - 1, 0))}"
                )
            self.next_transition_due -= timedelta(minutes=minutes)
            self.update(now, False)

    def reset_current_interval(self, now: datetime) -> None:
        """Restart the current interval with its full configured duration."""
        with self._lock:
            if not is_active(self.state):
                raise InvalidArgument("Session is currently suspended")
            duration = self.settings.state_duration(self.state)
            if duration is None:
                duration = self.settings.state_duration(SessionState.BREAK)
            self.next_transition_due = now + timedelta(minutes=duration)
            self._refresh(now)

    def _remaining_minutes(self, now: datetime) -> int:
        due = self.next_transition_due
        if due is None:
            raise InternalError("Uh oh, someone forgot to set the timer")
        if due <= now:
            return 0
        return minutes_between(now, due)

    def edit_settings(self, args: str, now: datetime) -> None:
        """
        Apply settings arguments to the running session; the current interval keeps its due time.

        Raises:
            InvalidArgument: if args is invalid, nothing is changed then
        """
        with self._lock:
            self.settings.set_from_args(args)
            self._refresh(now)

    # === Участники ===

    def join(
        self,
        member: Member,
        now: datetime,
        wants_ping: bool = True,
        status_text: Optional[str] = None,
    ) -> None:
        with self._lock:
            self.participants.add(member, wants_ping=wants_ping, status_text=status_text)
            self._refresh(now)

    def leave(self, member: Member, now: datetime) -> None:
        with self._lock:
            if not self.participants.remove(member):
                raise InvalidArgument("You're not part of this session")
            self._refresh(now)

    # === Отображение ===

    def publish(self, now: datetime) -> None:
        """Post a fresh status message, e.g. right after the session is created."""
        with self._lock:
            if self.display is not None:
                self.display.post_status(self.build_status_view(now))

    def _refresh(self, now: datetime) -> None:
        if self.display is not None:
            self.display.refresh(self.build_status_view(now))

    def time_left_string(self, now: datetime) -> str:
        """E.g. "23 mins until break"."""
        with self._lock:
            if self.next_transition_due is None or not is_active(self.state):
                if self.state is SessionState.NOT_STARTED:
                    raise InvalidArgument("Session not started")
                if is_active(self.state):
                    raise InternalError("Uh oh, someone forgot to set the timer")
                raise InvalidArgument("Session is currently suspended")
            return self._time_left(now)

    def _time_left(self, now: datetime) -> str:
        return (
            f"{minutes_to_display_string(self._remaining_minutes(now))} until "
            f"{STATE_DISPLAY_NAMES[self._next_state()]}"
        )

    def ping_text(self, state: Optional[SessionState] = None) -> str:
        state = state or self.state
        lines = ["👏 <b>Bangs Pots</b> 👏"]
        if self.settings.is_enabled(BooleanSetting.PINGS):
            mentions = self.participants.mention_list()
            if mentions:
                lines.append(" ".join(mentions))
        lines.append(f"It's {STATE_DISPLAY_NAMES[state]} time!")
        return "\n".join(lines)

    def settings_summary(self, short: bool = True) -> str:
        """Timings and author; the long version also lists toggles, disabled ones struck through."""
        with self._lock:
            settings = self.settings
            lines = [
                f"Work: {minutes_to_display_string(settings.state_duration(SessionState.WORK))}, "
                f"Break: {minutes_to_display_string(settings.state_duration(SessionState.BREAK))}"
            ]
            cadence = settings.work_sessions_before_long_break
            if cadence is not None:
                lines.append(
                    f"Work sessions before long break: {cadence}, "
                    f"Long break: {minutes_to_display_string(settings.state_duration(SessionState.LONG_BREAK))}"
                )
            else:
                lines.append("Long break not set")
            lines.append(f"Session created by: {self.author.display_name}")

            if not short:
                toggles = []
                for setting in BooleanSetting:
                    label = BOOLEAN_SETTING_LABELS[setting]
                    toggles.append(label if settings.is_enabled(setting) else f"~~{label}~~")
                lines.append(TOGGLE_SEPARATOR.join(toggles))
            return "\n".join(lines)

    def build_status_view(self, now: datetime) -> StatusView:
        with self._lock:
            pings_on = self.settings.is_enabled(BooleanSetting.PINGS)
            fields = (
                StatusField(
                    "Ping party" + ("" if pings_on else " (off)"),
                    self.participants.participant_list(),
                ),
                StatusField("People are working on", self.participants.working_on_list()),
                StatusField("Completed Stats", self._completed_stats(now)),
                StatusField("Session Settings", self.settings_summary(short=True)),
            )
            image = None
            if self.settings.is_enabled(BooleanSetting.IMAGES):
                image = self.settings.state_image(self.state, STATE_IMAGES[self.state])
            return StatusView(
                state=self.state,
                title=f"Pomodoro Timer - {STATE_TITLES[self.state]}",
                description=self._description(now),
                fields=fields,
                colour=self.settings.state_colour(self.state, STATE_COLOURS[self.state]),
                image=image,
            )

    def _description(self, now: datetime) -> str:
        if self.state is SessionState.PAUSED:
            return "Session is paused. Resume to continue " + STATE_DISPLAY_NAMES[self.resume_state]
        if self.state is SessionState.FINISHED:
            return "Session completed"
        if self.state is SessionState.NOT_STARTED:
            return "Timer not started"

        description = self._time_left(now)
        cadence = self.settings.work_sessions_before_long_break
        if (
            cadence is not None
            and self.state in (SessionState.WORK, SessionState.BREAK)
            and self._next_state() is not SessionState.LONG_BREAK
        ):
            if self.state is SessionState.WORK:
                left = cadence - self._work_sessions_including_current()
                suffix = " (not including this one)"
            else:
                left = cadence - self.history.work_sessions_since_last_long_break()
                suffix = ""
            noun = "work session" if left == 1 else "work sessions"
            description += f"\n{left} {noun} until long break{suffix}"
        return description

    def _completed_stats(self, now: datetime) -> str:
        if self.session_started_at is None:
            started = "--:--"
        else:
            started = self.session_started_at.strftime(self.settings.datetime_format()).strip()

        minutes_in_current = 0
        if self.current_state_started_at is not None:
            minutes_in_current = minutes_between(self.current_state_started_at, now)
        count, study_minutes = self.history.completed_stats(minutes_in_current, self.state)
        return (
            f"Started: {started}\n"
            f"Completed work sessions: {count}\n"
            f"Total study time: {minutes_to_display_string(study_minutes)}"
        )
