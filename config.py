"""Конфигурация бота"""
import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from utils.env_loader import load_env


class ConfigError(Exception):
    """Missing or invalid configuration."""


class BotConfig(BaseModel):
    bot_token: str = Field(..., min_length=1)
    log_level: str = "INFO"
    # Scheduler wake up / sweep cadence
    poll_interval_sec: int = Field(default=10, ge=1, le=60)
    sweep_interval_sec: int = Field(default=20, ge=1, le=300)
    firestore_enabled: bool = False
    google_application_credentials: Optional[str] = None

    @field_validator("log_level")
    @classmethod
    def known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


def load_config(environ: Optional[Mapping[str, str]] = None) -> BotConfig:
    """
    Read the configuration from the environment (after loading .env).

    Raises:
        ConfigError: if BOT_TOKEN is missing or a value is invalid
    """
    if environ is None:
        load_env()
        environ = os.environ

    if not environ.get("BOT_TOKEN"):
        raise ConfigError("BOT_TOKEN не найден в переменных окружения!")

    values = {"bot_token": environ["BOT_TOKEN"]}
    for field_name in ("log_level", "poll_interval_sec", "sweep_interval_sec", "firestore_enabled", "google_application_credentials"):
        value = environ.get(field_name.upper())
        if value:
            values[field_name] = value

    try:
        return BotConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
