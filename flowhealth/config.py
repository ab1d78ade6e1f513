"""Runtime settings, read from the environment (and a .env file if present)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollConfig:
    max_attempts: int = 30
    initial_delay_seconds: float = 0.5
    backoff_multiplier: float = 1.5
    max_delay_seconds: float = 3.0
    settle_delay_seconds: float = 1.0

    def next_delay(self, delay: float) -> float:
        return min(delay * self.backoff_multiplier, self.max_delay_seconds)


@dataclass(frozen=True)
class CacheConfig:
    ttl_seconds: float = 300.0
    path: str | None = None


@dataclass(frozen=True)
class ViewConfig:
    # How long the summary view waits on ANALYZE_TAB before falling back to cache.
    response_timeout_seconds: float = 2.0


def _read_float_env(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        logger.warning("Invalid float value for %s=%r; using default=%s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("Value for %s=%r below %s; using default=%s", name, raw, minimum, default)
        return default
    return value


def _read_int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("Invalid integer value for %s=%r; using default=%s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("Value for %s=%r below %s; using default=%s", name, raw, minimum, default)
        return default
    return value


def load_poll_config() -> PollConfig:
    return PollConfig(
        max_attempts=_read_int_env("FLOWHEALTH_MAX_ATTEMPTS", 30, minimum=1),
        initial_delay_seconds=_read_float_env("FLOWHEALTH_INITIAL_DELAY_SECONDS", 0.5),
        backoff_multiplier=_read_float_env("FLOWHEALTH_BACKOFF_MULTIPLIER", 1.5, minimum=1.0),
        max_delay_seconds=_read_float_env("FLOWHEALTH_MAX_DELAY_SECONDS", 3.0),
        settle_delay_seconds=_read_float_env("FLOWHEALTH_SETTLE_DELAY_SECONDS", 1.0),
    )


def load_cache_config() -> CacheConfig:
    path = os.environ.get("FLOWHEALTH_CACHE_PATH", "").strip() or None
    return CacheConfig(
        ttl_seconds=_read_float_env("FLOWHEALTH_CACHE_TTL_SECONDS", 300.0),
        path=path,
    )


def load_view_config() -> ViewConfig:
    return ViewConfig(
        response_timeout_seconds=_read_float_env("FLOWHEALTH_VIEW_TIMEOUT_SECONDS", 2.0),
    )
