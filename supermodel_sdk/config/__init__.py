"""Configuration module for the SuperModel SDK."""

import os
from typing import Optional

# Import all constants
from .constants import *
from .constants import (
    DEFAULT_ROUTER_MODEL,
    DEFAULT_SCRIPT_TIMEOUT,
    DEFAULT_STREAM_IDLE_TIMEOUT,
    ENV_ROUTER_MODEL,
    ENV_SCRIPT_TIMEOUT,
    ENV_STREAM_IDLE_TIMEOUT,
)


def _float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_stream_idle_timeout() -> Optional[float]:
    """Idle-stream timeout in seconds, or None when disabled (0)."""
    value = _float_from_env(ENV_STREAM_IDLE_TIMEOUT, DEFAULT_STREAM_IDLE_TIMEOUT)
    return value if value > 0 else None


def get_script_timeout() -> float:
    """Wall-clock budget for a single skill script run."""
    value = _float_from_env(ENV_SCRIPT_TIMEOUT, DEFAULT_SCRIPT_TIMEOUT)
    return value if value > 0 else DEFAULT_SCRIPT_TIMEOUT


def get_router_model() -> str:
    """Model used by the recommendation router."""
    return os.getenv(ENV_ROUTER_MODEL) or DEFAULT_ROUTER_MODEL


__all__ = [
    "get_stream_idle_timeout",
    "get_script_timeout",
    "get_router_model",
]
