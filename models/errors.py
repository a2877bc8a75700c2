"""Exceptions raised by pomodoro sessions and their collaborators."""


class PomodoroError(Exception):
    """Base exception for pomodoro sessions."""


class InvalidArgument(PomodoroError):
    """Raised for user mistakes. The message is shown to the user as-is."""


class InternalError(PomodoroError):
    """Raised when session data is corrupt or a should-never-happen branch is hit."""
