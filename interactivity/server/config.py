"""
Server settings, read from the environment.

A `.env` file in the working directory (or the project root) is loaded first,
so local overrides do not need a manual `export`.
"""
from __future__ import annotations

import os
from typing import List, Optional

from dotenv import load_dotenv


LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _env_flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Expected a boolean flag, got {value!r}")


class ServerConfig:
    """
    Settings for the HTTP / Socket.IO shell around the graph engine.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 3001,
        log_level: str = "INFO",
        reload: bool = False,
        graph_file: Optional[str] = None,   # saved graph to load on startup
        cors_origins: Optional[List[str]] = None,
    ):
        self.host = host
        self.port = port
        self.log_level = log_level.upper()
        self.reload = reload
        self.graph_file = graph_file or None
        self.cors_origins = cors_origins if cors_origins is not None else ["*"]

        self._validate()

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "ServerConfig":
        load_dotenv(dotenv_path)

        port = os.getenv("INTERACTIVITY_PORT", "3001")
        try:
            port_number = int(port)
        except ValueError:
            raise ValueError(f"INTERACTIVITY_PORT must be an integer, got {port!r}")

        origins = os.getenv("INTERACTIVITY_CORS_ORIGINS", "*")

        return cls(
            host=os.getenv("INTERACTIVITY_HOST", "127.0.0.1"),
            port=port_number,
            log_level=os.getenv("INTERACTIVITY_LOG_LEVEL", "INFO"),
            reload=_env_flag(os.getenv("INTERACTIVITY_RELOAD"), False),
            graph_file=os.getenv("INTERACTIVITY_GRAPH_FILE"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )

    def _validate(self):
        if not self.host:
            raise ValueError("host must not be empty")

        if not 0 < self.port < 65536:
            raise ValueError(f"Unsupported port: {self.port}")

        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Unsupported log_level: {self.log_level}")

        if not self.cors_origins:
            raise ValueError("cors_origins needs at least one origin (use '*' for any)")

    def __repr__(self):
        return (f"ServerConfig(host={self.host!r}, port={self.port}, log_level={self.log_level!r}, "
                f"reload={self.reload}, graph_file={self.graph_file!r})")
