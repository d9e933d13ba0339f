"""Hub configuration for pyhuesync."""

from __future__ import annotations

import dataclasses
import math
import os
from typing import Any

from pyhuesync._constants import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SUPPRESS_MARGIN,
    MIN_POLL_INTERVAL,
)
from pyhuesync.exceptions import ConfigurationError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _is_real_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclasses.dataclass(frozen=True)
class HueConfig:
    """Hub configuration.

    Parameters
    ----------
    address : str
        Bridge host name or IP address, optionally with a port.
    username : str
        Whitelisted bridge username (the "key" created when pairing).
    interval : float
        Poll interval in seconds. Must be at least
        :data:`~pyhuesync._constants.MIN_POLL_INTERVAL`.
    request_timeout : float
        Total timeout in seconds for a single bridge request.
    suppress_margin : float
        Seconds a locally written field is masked against poll results.
        Transition durations are added on top.
    use_https : bool
        Talk to the bridge over HTTPS instead of HTTP.
    name : str
        Free-form label, used in log messages only.
    """

    address: str
    username: str
    interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    suppress_margin: float = DEFAULT_SUPPRESS_MARGIN
    use_https: bool = False
    name: str = ""

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_https else "http"
        return f"{scheme}://{self.address.strip().rstrip('/')}"

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` for values the hub must not run with."""
        if not isinstance(self.address, str) or not self.address.strip():
            raise ConfigurationError("address must be a non-empty string")
        if not isinstance(self.username, str) or not self.username.strip():
            raise ConfigurationError("username must be a non-empty string")
        if not _is_real_number(self.interval) or self.interval <= 0:
            raise ConfigurationError(f"interval must be a positive number, got {self.interval!r}")
        if self.interval < MIN_POLL_INTERVAL:
            raise ConfigurationError(f"interval must be at least {MIN_POLL_INTERVAL}s, got {self.interval!r}")
        if not _is_real_number(self.request_timeout) or self.request_timeout <= 0:
            raise ConfigurationError(f"request_timeout must be a positive number, got {self.request_timeout!r}")
        if not _is_real_number(self.suppress_margin) or self.suppress_margin < 0:
            raise ConfigurationError(f"suppress_margin must be a non-negative number, got {self.suppress_margin!r}")

    @classmethod
    def from_env(cls, **overrides: Any) -> HueConfig:
        """Create configuration from environment variables.

        Reads ``HUE_ADDRESS`` and ``HUE_USERNAME`` plus the optional
        ``HUE_*`` variables below. Explicit keyword arguments override
        environment values.

        Numeric variables that do not parse raise :class:`ConfigurationError`.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "HUE_ADDRESS": "address",
            "HUE_USERNAME": "username",
            "HUE_NAME": "name",
        }
        config_kwargs: dict[str, Any] = {"address": "", "username": ""}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "HUE_POLL_INTERVAL": "interval",
            "HUE_REQUEST_TIMEOUT": "request_timeout",
            "HUE_SUPPRESS_MARGIN": "suppress_margin",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise ConfigurationError(f"{env_key} is not a number: {val!r}") from exc

        if "use_https" not in overrides:
            config_kwargs["use_https"] = _env_bool(env.get("HUE_USE_HTTPS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
