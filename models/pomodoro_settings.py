"""
Settings of a single pomodoro session (durations, toggles, long break cadence).

Also serialises itself to a plain dict so a chat can keep it as a template.
"""
import copy
import re
from typing import Any, Dict, List, Optional, Set

from models.errors import InvalidArgument
from models.session_state import BooleanSetting, SessionState, is_active
from utils.timing import minutes_to_display_string

# Maximum allowed time input in minutes
MAX_DURATION = 60 * 5
# Minimum allowed time input in minutes
MIN_DURATION = 5
MAX_WORK_SESSIONS_BEFORE_LONG_BREAK = 30
MIN_WORK_SESSIONS_BEFORE_LONG_BREAK = 1

BOOL_SETTING_DELIMITER = ":"
BOOL_SETTING_ON = "on"
BOOL_SETTING_OFF = "off"

DEFAULT_DURATIONS: Dict[SessionState, Optional[int]] = {
    SessionState.WORK: 25,
    SessionState.BREAK: 10,
    SessionState.LONG_BREAK: None,
}
DEFAULT_BOOLEAN_SETTINGS = frozenset({
    BooleanSetting.PINGS,
    BooleanSetting.AUTO,
    BooleanSetting.DELETE,
})
DEFAULT_TIMEOUT_DURATION = 60
DEFAULT_DATE_FORMAT = "%d/%m/%Y"
DEFAULT_TIME_FORMAT = "%H:%M"

_INT_RE = re.compile(r"^[+-]?\d+$")


def check_duration(duration: Optional[int]) -> None:
    """
    Check that a non-null duration lies between MIN_DURATION and MAX_DURATION.

    Raises:
        InvalidArgument: if outside of bounds
    """
    if duration is None:
        return
    if duration > MAX_DURATION:
        raise InvalidArgument("Maximum duration: " + minutes_to_display_string(MAX_DURATION))
    if duration < MIN_DURATION:
        raise InvalidArgument("Minimum duration: " + minutes_to_display_string(MIN_DURATION))


def _parse_int(token: str) -> Optional[int]:
    if not _INT_RE.match(token):
        return None
    return int(token)


def _parse_boolean_setting(token: str) -> tuple:
    name, delimiter, value = token.partition(BOOL_SETTING_DELIMITER)
    if (
        not delimiter
        or value.lower() not in (BOOL_SETTING_ON, BOOL_SETTING_OFF)
    ):
        raise InvalidArgument(
            f"Non-numerical arguments must be in the format "
            f"'pings{BOOL_SETTING_DELIMITER}{BOOL_SETTING_ON}' or "
            f"'pings{BOOL_SETTING_DELIMITER}{BOOL_SETTING_OFF}'"
        )
    try:
        setting = BooleanSetting[name.upper()]
    except KeyError:
        raise InvalidArgument("Unknown setting: " + name) from None
    return setting, value.lower() == BOOL_SETTING_ON


class PomodoroSettings:
    """Settings such as the work/break split for a particular pomodoro session"""

    def __init__(self):
        self._durations: Dict[SessionState, Optional[int]] = dict(DEFAULT_DURATIONS)
        self._colours: Dict[SessionState, str] = {}
        self._images: Dict[SessionState, str] = {}
        # Presence in the set indicates the setting is on
        self.boolean_settings: Set[BooleanSetting] = set(DEFAULT_BOOLEAN_SETTINGS)
        # Also dictates whether long breaks are used at all
        self.work_sessions_before_long_break: Optional[int] = None
        # Suspended sessions are cancelled after this many minutes of inactivity
        self.timeout_duration: int = DEFAULT_TIMEOUT_DURATION
        self.date_format: str = DEFAULT_DATE_FORMAT
        self.time_format: str = DEFAULT_TIME_FORMAT

    def set_from_args(self, args: str) -> None:
        """
        Parse "[work] [break] [long break] [work sessions before long break] [name:on|off ...]".

        Nothing is changed unless the whole argument string is valid.

        Raises:
            InvalidArgument: if args is invalid
        """
        tokens = args.split()
        if not tokens:
            return

        numeric_arguments: List[int] = []
        boolean_settings: Dict[BooleanSetting, bool] = {}
        int_args_ended = False
        for token in tokens:
            # Numerical arguments come first
            if not int_args_ended:
                parsed = _parse_int(token)
                if parsed is None:
                    int_args_ended = True
                else:
                    # First 3 arguments are durations
                    if len(numeric_arguments) < 3:
                        check_duration(parsed)
                    elif len(numeric_arguments) >= 4:
                        raise InvalidArgument("Arguments incorrect - too many numerical arguments")
                    numeric_arguments.append(parsed)
                    continue

            setting, enabled = _parse_boolean_setting(token)
            boolean_settings[setting] = enabled

        # Long break first as this validates the pair, everything else is already validated
        if len(numeric_arguments) > 2:
            cadence = numeric_arguments[3] if len(numeric_arguments) > 3 else None
            self.set_long_break(cadence, numeric_arguments[2])
        if len(numeric_arguments) > 1:
            self.set_state_duration(SessionState.BREAK, numeric_arguments[1])
        if numeric_arguments:
            self.set_state_duration(SessionState.WORK, numeric_arguments[0])
        for setting, enabled in boolean_settings.items():
            if enabled:
                self.boolean_settings.add(setting)
            else:
                self.boolean_settings.discard(setting)

    def set_long_break(
        self,
        work_sessions_before_long_break: Optional[int],
        long_break_duration: Optional[int],
    ) -> None:
        """Set both values or neither; neither turns long breaks off."""
        if work_sessions_before_long_break is None and long_break_duration is None:
            self.work_sessions_before_long_break = None
            self._durations[SessionState.LONG_BREAK] = None
            return

        if work_sessions_before_long_break is None or long_break_duration is None:
            raise InvalidArgument(
                "Must provide long break duration AND work sessions until long break (or neither)"
            )
        if work_sessions_before_long_break < MIN_WORK_SESSIONS_BEFORE_LONG_BREAK:
            raise InvalidArgument(
                f"Minimum {MIN_WORK_SESSIONS_BEFORE_LONG_BREAK} work session before long break"
            )
        if work_sessions_before_long_break > MAX_WORK_SESSIONS_BEFORE_LONG_BREAK:
            raise InvalidArgument(
                f"Maximum {MAX_WORK_SESSIONS_BEFORE_LONG_BREAK} work sessions before long break"
            )
        check_duration(long_break_duration)
        self.work_sessions_before_long_break = work_sessions_before_long_break
        self._durations[SessionState.LONG_BREAK] = long_break_duration

    def set_state_duration(self, state: SessionState, duration: Optional[int]) -> None:
        if not is_active(state):
            raise InvalidArgument("Suspended states cannot have a duration")
        if duration is None and state in (SessionState.WORK, SessionState.BREAK):
            raise InvalidArgument("Cannot have a null duration on work or break")
        check_duration(duration)
        self._durations[state] = duration

    def set_timeout_duration(self, duration: int) -> None:
        check_duration(duration)
        self.timeout_duration = duration

    def state_duration(self, state: SessionState) -> Optional[int]:
        """Configured minutes for an active state, the timeout for suspended ones."""
        if not is_active(state):
            return self.timeout_duration
        return self._durations[state]

    def is_enabled(self, setting: BooleanSetting) -> bool:
        return setting in self.boolean_settings

    def state_colour(self, state: SessionState, default: Optional[str] = None) -> Optional[str]:
        return self._colours.get(state, default)

    def state_image(self, state: SessionState, default: Optional[str] = None) -> Optional[str]:
        return self._images.get(state, default)

    def datetime_format(self) -> str:
        date_part = self.date_format + " " if self.is_enabled(BooleanSetting.DATE) else ""
        return f"{date_part}{self.time_format} %Z"

    def copy(self) -> "PomodoroSettings":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Only values that differ from the defaults are written."""
        data: Dict[str, Any] = {}

        states = []
        for state in SessionState:
            entry: Dict[str, Any] = {}
            duration = self._durations.get(state)
            if is_active(state) and duration != DEFAULT_DURATIONS[state]:
                entry["duration"] = duration
            if state in self._colours:
                entry["colour"] = self._colours[state]
            if state in self._images:
                entry["image"] = self._images[state]
            if entry:
                entry["state"] = state.name
                states.append(entry)
        if states:
            data["states"] = states

        if self.boolean_settings != DEFAULT_BOOLEAN_SETTINGS:
            data["booleanSettings"] = sorted(setting.name for setting in self.boolean_settings)
        if self.timeout_duration != DEFAULT_TIMEOUT_DURATION:
            data["timeoutDuration"] = self.timeout_duration
        if self.work_sessions_before_long_break is not None:
            data["workSessionsBeforeLongBreak"] = self.work_sessions_before_long_break
        if self.date_format != DEFAULT_DATE_FORMAT:
            data["dateFormat"] = self.date_format
        if self.time_format != DEFAULT_TIME_FORMAT:
            data["timeFormat"] = self.time_format
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PomodoroSettings":
        """
        Rebuild settings written by to_dict, validating every value.

        Raises:
            InvalidArgument: if a value is unknown or out of bounds
        """
        settings = cls()
        long_break_duration = None

        for entry in data.get("states", []):
            state_name = str(entry.get("state", ""))
            try:
                state = SessionState[state_name.upper()]
            except KeyError:
                raise InvalidArgument("Unknown session state: " + state_name) from None
            if "colour" in entry:
                settings._colours[state] = entry["colour"]
            if "image" in entry:
                settings._images[state] = entry["image"]
            if "duration" in entry:
                if state is SessionState.LONG_BREAK:
                    long_break_duration = entry["duration"]
                else:
                    settings.set_state_duration(state, entry["duration"])

        if "booleanSettings" in data:
            enabled = set()
            for name in data["booleanSettings"]:
                try:
                    enabled.add(BooleanSetting[str(name).upper()])
                except KeyError:
                    raise InvalidArgument("Unknown setting: " + str(name)) from None
            settings.boolean_settings = enabled
        if "timeoutDuration" in data:
            settings.set_timeout_duration(data["timeoutDuration"])
        if "dateFormat" in data:
            settings.date_format = data["dateFormat"]
        if "timeFormat" in data:
            settings.time_format = data["timeFormat"]

        settings.set_long_break(data.get("workSessionsBeforeLongBreak"), long_break_duration)
        return settings
