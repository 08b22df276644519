"""Client configuration.

The endpoint defaults to the scene server's standard socket and can be
overridden through the environment:

- ``IP``: server host (default ``localhost``)
- ``PORT``: server port (default ``8342``)
- ``DEBUG``: ``"true"`` enables frame-level debug logging
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8342
DEFAULT_PATH = "/ws"


@dataclass
class ClientConfig:
    """Connection settings for a scene server socket."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    path: str = DEFAULT_PATH
    debug: bool = False

    # Keep-alive (passed to websockets.connect)
    ping_interval: float | None = 30.0
    ping_timeout: float | None = 10.0

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}{self.path}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """Build a config from ``IP``, ``PORT`` and ``DEBUG``."""
        env = os.environ if environ is None else environ
        port = env.get("PORT")
        return cls(
            host=env.get("IP") or DEFAULT_HOST,
            port=int(port) if port else DEFAULT_PORT,
            debug=env.get("DEBUG", "").lower() == "true",
        )
