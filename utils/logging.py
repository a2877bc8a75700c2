import json
import logging
import re
import sys
from contextvars import ContextVar

# Контекстные переменные для correlation
_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
_user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
_chat_id_var: ContextVar[str | None] = ContextVar("chat_id", default=None)

# Marks an argument of set_request_context that should be left as is
_UNSET = object()

_RESERVED = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "taskName",
}

_SECRET_RE = re.compile(r"(token|password|secret|api_key)=([^\s]+)", re.IGNORECASE)
_SECRET_KEY_RE = re.compile(r"token|password|secret|api_key", re.IGNORECASE)


class JSONFormatter(logging.Formatter):
    """JSON formatter для структурированных логов."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": _redact_secrets(record.getMessage()),
            "request_id": _request_id_var.get(),
            "user_id": _user_id_var.get(),
            "chat_id": _chat_id_var.get(),
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED or key.startswith("_"):
                continue
            if _SECRET_KEY_RE.search(key):
                value = "***"
            # extra wins over the context
            log_obj[key] = value

        # Убираем None значения
        log_obj = {k: v for k, v in log_obj.items() if v is not None}

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Настройка системы логирования."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Удаляем существующие handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Создаём handler с JSON форматированием
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    # Убираем лишнее логирование от библиотек
    logging.getLogger("aiogram").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Получить logger для модуля."""
    return logging.getLogger(name)


def set_request_context(request_id=_UNSET, user_id=_UNSET, chat_id=_UNSET) -> None:
    """
    Устанавливает контекст для текущего request.

    Only the given values change; passing None clears one.
    """
    if request_id is not _UNSET:
        _request_id_var.set(request_id)
    if user_id is not _UNSET:
        _user_id_var.set(user_id)
    if chat_id is not _UNSET:
        _chat_id_var.set(chat_id)


def clear_request_context() -> None:
    set_request_context(request_id=None, user_id=None, chat_id=None)


def get_request_id() -> str | None:
    """Получает текущий request_id из контекста."""
    return _request_id_var.get()


def get_user_id() -> str | None:
    """Получает текущий user_id из контекста."""
    return _user_id_var.get()


def get_chat_id() -> str | None:
    return _chat_id_var.get()


def _redact_secrets(message: str) -> str:
    return _SECRET_RE.sub(lambda m: f"{m.group(1)}=***", message)
