"""Client configuration from the environment.

Environment variables:
    MARIA2_URL      RPC endpoint (default http://localhost:6800/jsonrpc)
    MARIA2_SECRET   RPC secret
    MARIA2_TIMEOUT  Default request timeout in seconds (default 5)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any

DEFAULT_URL = "http://localhost:6800/jsonrpc"
DEFAULT_TIMEOUT = 5.0


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for ``connect()`` and the CLI."""

    url: str = DEFAULT_URL
    secret: str | None = None
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Read settings from MARIA2_* environment variables.

        Raises:
            ValueError: If MARIA2_TIMEOUT is not a number
        """
        timeout = DEFAULT_TIMEOUT
        if env_timeout := os.getenv("MARIA2_TIMEOUT"):
            try:
                timeout = float(env_timeout)
            except ValueError as e:
                raise ValueError(f"Invalid MARIA2_TIMEOUT: {env_timeout!r}") from e

        return cls(
            url=os.getenv("MARIA2_URL", DEFAULT_URL),
            secret=os.getenv("MARIA2_SECRET") or None,
            timeout=timeout,
        )

    def merged(self, **overrides: Any) -> ClientConfig:
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def is_websocket(self) -> bool:
        return self.url.startswith(("ws://", "wss://"))
