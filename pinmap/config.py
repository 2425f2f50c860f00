"""Session configuration for pinmap."""

import dataclasses
import logging
import os
from typing import Any, Optional, Tuple

from .exceptions import SessionConfigError
from .models import CURRENT_USER_ID

# Kahramanmaraş city center, the region the map opens on
DEFAULT_CENTER = (37.5753, 36.9228)
DEFAULT_SPAN = 0.01


def _env_optional_int(value: str) -> Optional[int]:
    if value.strip().lower() in {"", "none", "unbounded"}:
        return None
    return int(value)


def _env_optional_float(value: str) -> Optional[float]:
    if value.strip().lower() in {"", "none"}:
        return None
    return float(value)


@dataclasses.dataclass(frozen=True)
class SessionConfig:
    """Session configuration.

    Parameters
    ----------
    current_user_id : str
        Identity of the local user. The current-user store only accepts
        records carrying this id.
    max_cascade_depth : int or None
        Number of notifications that may already be running when a store is
        set. The default of ``1`` allows exactly one hop: a current-user change
        updating the pins. ``None`` allows unbounded nesting.
    fetch_timeout : float or None
        Seconds to wait for an async pins fetch before it is treated as stale.
    default_center : tuple of float
        ``(lat, long)`` the map opens on.
    default_span : float
        Latitude/longitude span of the initial region, in degrees.
    log_level : str
        Level name passed to ``logging.basicConfig`` by the command line demo.
    """

    current_user_id: str = CURRENT_USER_ID
    max_cascade_depth: Optional[int] = 1
    fetch_timeout: Optional[float] = 10.0
    default_center: Tuple[float, float] = DEFAULT_CENTER
    default_span: float = DEFAULT_SPAN
    log_level: str = "WARNING"

    def __post_init__(self):
        if not str(self.current_user_id).strip():
            raise SessionConfigError("current_user_id must be non-empty")
        if self.max_cascade_depth is not None and self.max_cascade_depth < 0:
            raise SessionConfigError("max_cascade_depth must be >= 0 or None")
        if self.fetch_timeout is not None and self.fetch_timeout <= 0:
            raise SessionConfigError("fetch_timeout must be positive or None")
        if self.default_span <= 0:
            raise SessionConfigError("default_span must be positive")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise SessionConfigError(f"unknown log level {self.log_level!r}")

    @classmethod
    def from_env(cls, **overrides: Any) -> "SessionConfig":
        """Create configuration from ``PINMAP_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict = {}

        if "PINMAP_CURRENT_USER_ID" in env:
            config_kwargs["current_user_id"] = env["PINMAP_CURRENT_USER_ID"]
        if "PINMAP_LOG_LEVEL" in env:
            config_kwargs["log_level"] = env["PINMAP_LOG_LEVEL"]

        try:
            if "PINMAP_MAX_CASCADE_DEPTH" in env:
                config_kwargs["max_cascade_depth"] = _env_optional_int(
                    env["PINMAP_MAX_CASCADE_DEPTH"]
                )
            if "PINMAP_FETCH_TIMEOUT" in env:
                config_kwargs["fetch_timeout"] = _env_optional_float(
                    env["PINMAP_FETCH_TIMEOUT"]
                )
        except ValueError as exc:
            raise SessionConfigError(f"invalid PINMAP_* value: {exc}") from exc

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
