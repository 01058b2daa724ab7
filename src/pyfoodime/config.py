"""Client configuration for pyfoodime."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from pyfoodime import _constants as C
from pyfoodime.exceptions import FoodimeConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _default_session_file() -> Path:
    return Path.home() / ".config" / "pyfoodime" / "session.json"


@dataclasses.dataclass(frozen=True)
class FoodimeConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        REST root of the delivery API (``.../wp-json/foodime/v1``).
    websocket_url : str
        Realtime push endpoint.
    username : str or None
        Partner username or email, used by :meth:`FoodimeClient.login`
        when no explicit credentials are passed.
    password : str or None
        Partner password.
    session_file : Path or None
        File holding the persisted session record. ``None`` disables
        persistence (the session lives in memory only).
    realtime_enabled : bool
        Open the websocket channel on :meth:`FoodimeClient.start`.
    location_enabled : bool
        Start the location reporter on :meth:`FoodimeClient.start`.
    location_interval : float
        Seconds between location reports.
    location_timeout : float
        Upper bound in seconds for acquiring one position sample.
    backoff_initial : float
        First reconnect delay in seconds.
    backoff_max : float
        Reconnect delay cap in seconds.
    backoff_jitter : float
        Proportional jitter in ``[0, 1]`` added to each reconnect delay.
    backoff_stable_period : float
        Seconds a connection must stay up before the backoff resets.
    degraded_after_failures : int
        Consecutive reconnect failures before connectivity is reported as
        degraded and snapshot polling takes over.
    fallback_poll_interval : float
        Seconds between snapshot fetches while the channel is degraded.
    """

    base_url: str = C.BASE_URL
    websocket_url: str = C.WEBSOCKET_URL
    username: str | None = None
    password: str | None = None
    session_file: Path | None = dataclasses.field(default_factory=_default_session_file)
    realtime_enabled: bool = True
    location_enabled: bool = True
    location_interval: float = C.LOCATION_INTERVAL
    location_timeout: float = C.LOCATION_TIMEOUT
    backoff_initial: float = C.BACKOFF_INITIAL
    backoff_max: float = C.BACKOFF_MAX
    backoff_jitter: float = C.BACKOFF_JITTER
    backoff_stable_period: float = C.BACKOFF_STABLE_PERIOD
    degraded_after_failures: int = C.DEGRADED_AFTER_FAILURES
    fallback_poll_interval: float = C.FALLBACK_POLL_INTERVAL

    def __post_init__(self) -> None:
        if not self.base_url:
            raise FoodimeConfigError("base_url must be set")
        for name in (
            "location_interval",
            "location_timeout",
            "backoff_initial",
            "backoff_max",
            "fallback_poll_interval",
        ):
            if getattr(self, name) <= 0:
                raise FoodimeConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.backoff_max < self.backoff_initial:
            raise FoodimeConfigError("backoff_max must not be lower than backoff_initial")
        if not 0.0 <= self.backoff_jitter <= 1.0:
            raise FoodimeConfigError(f"backoff_jitter must be within [0, 1], got {self.backoff_jitter}")
        if self.backoff_stable_period < 0:
            raise FoodimeConfigError("backoff_stable_period must not be negative")
        if self.degraded_after_failures < 1:
            raise FoodimeConfigError("degraded_after_failures must be at least 1")
        # Normalise so endpoint constants can be appended directly.
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> FoodimeConfig:
        """Create configuration from ``FOODIME_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "FOODIME_BASE_URL": "base_url",
            "FOODIME_WEBSOCKET_URL": "websocket_url",
            "FOODIME_USERNAME": "username",
            "FOODIME_PASSWORD": "password",
        }
        _ENV_FLOAT_MAP = {
            "FOODIME_LOCATION_INTERVAL": "location_interval",
            "FOODIME_LOCATION_TIMEOUT": "location_timeout",
            "FOODIME_BACKOFF_INITIAL": "backoff_initial",
            "FOODIME_BACKOFF_MAX": "backoff_max",
            "FOODIME_BACKOFF_JITTER": "backoff_jitter",
            "FOODIME_BACKOFF_STABLE_PERIOD": "backoff_stable_period",
            "FOODIME_FALLBACK_POLL_INTERVAL": "fallback_poll_interval",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise FoodimeConfigError(f"{env_key} is not a number: {val!r}") from exc

        failures_env = env.get("FOODIME_DEGRADED_AFTER_FAILURES")
        if failures_env is not None and "degraded_after_failures" not in overrides:
            try:
                config_kwargs["degraded_after_failures"] = int(failures_env)
            except ValueError as exc:
                raise FoodimeConfigError(f"FOODIME_DEGRADED_AFTER_FAILURES is not an integer: {failures_env!r}") from exc

        session_env = env.get("FOODIME_SESSION_FILE")
        if session_env is not None and "session_file" not in overrides:
            # An empty value turns persistence off.
            config_kwargs["session_file"] = Path(session_env).expanduser() if session_env.strip() else None

        if "realtime_enabled" not in overrides:
            config_kwargs["realtime_enabled"] = _env_bool(env.get("FOODIME_REALTIME_ENABLED"), True)
        if "location_enabled" not in overrides:
            config_kwargs["location_enabled"] = _env_bool(env.get("FOODIME_LOCATION_ENABLED"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
