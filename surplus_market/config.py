from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 5.0
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(message)s"


@dataclass(slots=True)
class Settings:
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT


def _get_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using default %s", key, raw, default)
        return default
    if value <= 0:
        logger.warning("%s must be positive, got %s; using default %s", key, value, default)
        return default
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Настройки из переменных окружения MARKET_*, при отсутствии — значения по умолчанию."""
    env = os.environ if environ is None else environ
    return Settings(
        lock_timeout=_get_float(env, "MARKET_LOCK_TIMEOUT", DEFAULT_LOCK_TIMEOUT),
        log_level=(env.get("MARKET_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        log_format=env.get("MARKET_LOG_FORMAT") or DEFAULT_LOG_FORMAT,
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format=settings.log_format)
