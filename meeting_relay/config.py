from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Optional

from dotenv import load_dotenv


class ConfigurationError(RuntimeError):
    """Raised when an operation needs a setting that was never provided."""


_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_float(name: str, default: float) -> float:
    value = _env_str(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from exc


def _env_bool(name: str, default: bool = False) -> bool:
    value = _env_str(name)
    if value is None:
        return default
    return value.lower() in _TRUE_VALUES


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read from the environment (and ``.env``)."""

    host: str = "0.0.0.0"
    port: int = 5005
    attendee_api_key: Optional[str] = None
    attendee_base_url: Optional[str] = None
    zoom_webhook_secret_token: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com"
    openai_model: str = "gpt-4o-mini"
    cors_origin: Optional[str] = None
    data_dir: str = "data"
    logs_dir: str = "logs"
    log_level: str = "INFO"
    upstream_timeout: float = 15.0
    heartbeat_interval: float = 15.0
    persist_transcripts: bool = False

    # Settings without which some webhook path cannot work at all.
    REQUIRED = ("attendee_api_key", "attendee_base_url", "zoom_webhook_secret_token")

    @classmethod
    def from_env(cls, *, load_env_file: bool = True) -> "Settings":
        if load_env_file:
            load_dotenv()
        cwd = os.getcwd()
        port = _env_str("PORT", "5005")
        try:
            port_number = int(port)
        except ValueError as exc:
            raise ConfigurationError(f"PORT must be an integer, got {port!r}") from exc
        return cls(
            host=_env_str("HOST", "0.0.0.0"),
            port=port_number,
            attendee_api_key=_env_str("ATTENDEE_API_KEY"),
            attendee_base_url=_env_str("ATTENDEE_BASE_URL"),
            zoom_webhook_secret_token=_env_str("ZOOM_WEBHOOK_SECRET_TOKEN"),
            openai_api_key=_env_str("OPENAI_API_KEY"),
            openai_base_url=_env_str("OPENAI_BASE_URL", "https://api.openai.com"),
            openai_model=_env_str("OPENAI_MODEL", "gpt-4o-mini"),
            cors_origin=_env_str("CORS_ORIGIN"),
            data_dir=_env_str("DATA_DIR", os.path.join(cwd, "data")),
            logs_dir=_env_str("LOGS_DIR", os.path.join(cwd, "logs")),
            log_level=_env_str("LOG_LEVEL", "INFO"),
            upstream_timeout=_env_float("UPSTREAM_TIMEOUT", 15.0),
            heartbeat_interval=_env_float("HEARTBEAT_INTERVAL", 15.0),
            persist_transcripts=_env_bool("PERSIST_TRANSCRIPTS"),
        )

    def require(self, name: str) -> str:
        """Return a setting's value or fail loudly if it was never configured."""
        if name not in {f.name for f in fields(self)}:
            raise KeyError(name)
        value = getattr(self, name)
        if not value:
            raise ConfigurationError(f"Missing required setting: {name.upper()}")
        return value

    def missing(self) -> list[str]:
        return [name.upper() for name in self.REQUIRED if not getattr(self, name)]
