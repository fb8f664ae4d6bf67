"""Runtime settings for text-relay, read from environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
DEFAULT_UPSTREAM_URL = "https://api.thinq.com"
DEFAULT_RELAYS_PATH = "relays.csv"
DEFAULT_DELIVERY_TIMEOUT = 30.0


class ConfigError(ValueError):
    """Raised when an environment value cannot be parsed."""


@dataclass(frozen=True)
class RelaySettings:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    token: str = ""
    account_id: str = ""
    relays_path: str = DEFAULT_RELAYS_PATH
    upstream_url: str = DEFAULT_UPSTREAM_URL
    delivery_timeout: float = DEFAULT_DELIVERY_TIMEOUT
    log_level: str = "INFO"

    @property
    def log_only(self) -> bool:
        """True when deliveries can only be logged, never sent."""
        return not self.token or not self.account_id

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelaySettings:
        env = os.environ if environ is None else environ

        port_raw = env.get("PORT") or str(DEFAULT_PORT)
        try:
            port = int(port_raw)
        except ValueError:
            raise ConfigError(f"Invalid PORT={port_raw!r}, must be an integer") from None
        if not 0 < port < 65536:
            raise ConfigError(f"Invalid PORT={port}, must be between 1 and 65535")

        timeout_raw = env.get("DELIVERY_TIMEOUT") or str(DEFAULT_DELIVERY_TIMEOUT)
        try:
            timeout = float(timeout_raw)
        except ValueError:
            raise ConfigError(
                f"Invalid DELIVERY_TIMEOUT={timeout_raw!r}, must be a number of seconds",
            ) from None
        if timeout <= 0:
            raise ConfigError(f"Invalid DELIVERY_TIMEOUT={timeout}, must be positive")

        return cls(
            host=env.get("HOST") or "0.0.0.0",
            port=port,
            token=env.get("TOKEN", ""),
            account_id=env.get("ACCOUNT_ID", ""),
            relays_path=env.get("RELAYS_PATH") or DEFAULT_RELAYS_PATH,
            upstream_url=env.get("UPSTREAM_URL") or DEFAULT_UPSTREAM_URL,
            delivery_timeout=timeout,
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )

    def with_overrides(self, **overrides: object) -> RelaySettings:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    def warn_if_degraded(self) -> None:
        if not self.token:
            logger.warning("TOKEN is missing, running in log-only mode")
        if not self.account_id:
            logger.warning("ACCOUNT_ID is missing, running in log-only mode")
