"""Runtime configuration for pyfoxhole."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyfoxhole._constants import BASE_URL, SHARD_URLS
from pyfoxhole.exceptions import FoxholeConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value)
    except ValueError as exc:
        raise FoxholeConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class FoxholeConfig:
    """Service configuration.

    Parameters
    ----------
    base_url : str
        War API base URL. Defaults to the ``live`` shard.
    request_timeout : float
        Total timeout in seconds for a single War API request.  Must be
        finite so a hung request cannot stall the poll loop.
    poll_interval : float
        Seconds between primary sync cycles.
    fallback_interval : float
        Seconds between unconditional re-renders.  Keeps time-dependent
        display content (war duration, timestamps) fresh.
    database_path : str
        SQLite file holding the last known territory state.
    output_path : str
        PNG written by the e-paper renderer.
    max_concurrent_fetches : int
        Upper bound on region fetches in flight during one cycle.
    reset_on_new_war : bool
        Drop all territory records when the war number changes.
    display_width : int
        Output image width in pixels.
    display_height : int
        Output image height in pixels.
    gray_levels : int
        Number of gray levels in the dithered output (16 = 4-bit).
    """

    base_url: str = BASE_URL
    request_timeout: float = 10.0
    poll_interval: float = 5.0
    fallback_interval: float = 5 * 60.0
    database_path: str = "territory.db"
    output_path: str = "output/latest.png"
    max_concurrent_fetches: int = 8
    reset_on_new_war: bool = True
    display_width: int = 800
    display_height: int = 480
    gray_levels: int = 16

    def __post_init__(self) -> None:
        if not self.request_timeout > 0 or self.request_timeout == float("inf"):
            raise FoxholeConfigError("request_timeout must be a positive, finite number of seconds")
        if self.poll_interval <= 0:
            raise FoxholeConfigError("poll_interval must be positive")
        if self.fallback_interval <= 0:
            raise FoxholeConfigError("fallback_interval must be positive")
        if self.max_concurrent_fetches < 1:
            raise FoxholeConfigError("max_concurrent_fetches must be at least 1")
        if not 2 <= self.gray_levels <= 256:
            raise FoxholeConfigError("gray_levels must be between 2 and 256")
        if self.display_width <= 0 or self.display_height <= 0:
            raise FoxholeConfigError("display size must be positive")

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for :attr:`database_path` (``:memory:`` → in-memory)."""
        if self.database_path in ("", ":memory:"):
            return "sqlite://"
        return f"sqlite:///{self.database_path}"

    @classmethod
    def from_env(cls, **overrides: Any) -> FoxholeConfig:
        """Create configuration from environment variables.

        Reads optional ``FOXHOLE_*`` variables.  ``FOXHOLE_SHARD`` selects
        one of the known shards when ``FOXHOLE_BASE_URL`` is not set.
        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        FoxholeConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        shard = env.get("FOXHOLE_SHARD")
        if shard is not None:
            try:
                config_kwargs["base_url"] = SHARD_URLS[shard.strip().lower()]
            except KeyError as exc:
                known = ", ".join(sorted(SHARD_URLS))
                raise FoxholeConfigError(f"Unknown FOXHOLE_SHARD {shard!r} (known: {known})") from exc

        _ENV_STR_MAP = {
            "FOXHOLE_BASE_URL": "base_url",
            "FOXHOLE_DATABASE_PATH": "database_path",
            "FOXHOLE_OUTPUT_PATH": "output_path",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMBER_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "FOXHOLE_REQUEST_TIMEOUT": ("request_timeout", float),
            "FOXHOLE_POLL_INTERVAL": ("poll_interval", float),
            "FOXHOLE_FALLBACK_INTERVAL": ("fallback_interval", float),
            "FOXHOLE_MAX_CONCURRENT_FETCHES": ("max_concurrent_fetches", int),
            "FOXHOLE_DISPLAY_WIDTH": ("display_width", int),
            "FOXHOLE_DISPLAY_HEIGHT": ("display_height", int),
            "FOXHOLE_GRAY_LEVELS": ("gray_levels", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMBER_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, cast)

        if "reset_on_new_war" not in overrides:
            config_kwargs["reset_on_new_war"] = _env_bool(env.get("FOXHOLE_RESET_ON_NEW_WAR"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
