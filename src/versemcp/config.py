# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Runtime settings.

Every knob has a default that works out of the box; environment variables
override them so deployments behind a reverse proxy can advertise their public
URLs without code changes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from importlib import metadata
import os
from pathlib import Path
from typing import Final


DATA_DIR: Final[Path] = Path(__file__).resolve().parent / "data"

DISTRIBUTION_NAME: Final[str] = "verse-mcp"
SERVER_ID: Final[str] = "verse-mcp"
SERVER_DESCRIPTION: Final[str] = (
    "Verse (UEFN) guidance, sample devices, and reference links exposed as MCP resources."
)
GITHUB_REPO_URL: Final[str] = "https://github.com/dedalus-labs/verse-mcp"

ENV_GUIDES_DIR: Final[str] = "VERSEMCP_GUIDES_DIR"
ENV_SAMPLES_DIR: Final[str] = "VERSEMCP_SAMPLES_DIR"
ENV_PUBLIC_BASE_URL: Final[str] = "VERSEMCP_PUBLIC_BASE_URL"
ENV_PUBLIC_PATH: Final[str] = "VERSEMCP_PUBLIC_PATH"
ENV_CACHE_TTL: Final[str] = "VERSEMCP_CACHE_TTL"
ENV_FETCH_TIMEOUT: Final[str] = "VERSEMCP_FETCH_TIMEOUT"
ENV_KEEPALIVE_INTERVAL: Final[str] = "VERSEMCP_KEEPALIVE_INTERVAL"
ENV_HOST: Final[str] = "VERSEMCP_HOST"


class ConfigurationError(ValueError):
    """Raised when a setting cannot be parsed or is out of range."""


@dataclass(slots=True)
class Settings:
    """Process-wide configuration for the server and its HTTP surface."""

    guides_dir: Path = field(default_factory=lambda: DATA_DIR / "guides")
    samples_dir: Path = field(default_factory=lambda: DATA_DIR / "versebase")
    public_base_url: str | None = None
    public_path: str | None = None
    page_cache_ttl: float = 600.0
    fetch_timeout: float = 12.0
    keepalive_interval: float = 30.0
    host: str = "127.0.0.1"
    mcp_path: str = "/mcp"
    server_id: str = SERVER_ID

    def __post_init__(self) -> None:
        for name in ("page_cache_ttl", "fetch_timeout", "keepalive_interval"):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive (got {value!r})")
        if self.public_path is not None:
            self.public_path = "/" + self.public_path.strip("/") if self.public_path.strip("/") else None
        if self.public_base_url is not None:
            self.public_base_url = self.public_base_url.rstrip("/") or None

    @property
    def internal_messages_path(self) -> str:
        """Side-channel path served under the MCP endpoint."""
        return f"{self.mcp_path}/messages"

    @property
    def messages_path(self) -> str:
        """Side-channel path advertised to event-stream clients."""
        if self.public_path:
            return f"{self.public_path}/messages"
        return self.internal_messages_path

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}

        if env.get(ENV_GUIDES_DIR):
            kwargs["guides_dir"] = Path(env[ENV_GUIDES_DIR]).expanduser()
        if env.get(ENV_SAMPLES_DIR):
            kwargs["samples_dir"] = Path(env[ENV_SAMPLES_DIR]).expanduser()
        if env.get(ENV_PUBLIC_BASE_URL):
            kwargs["public_base_url"] = env[ENV_PUBLIC_BASE_URL]
        if env.get(ENV_PUBLIC_PATH):
            kwargs["public_path"] = env[ENV_PUBLIC_PATH]
        if env.get(ENV_HOST):
            kwargs["host"] = env[ENV_HOST]

        for key, name in (
            (ENV_CACHE_TTL, "page_cache_ttl"),
            (ENV_FETCH_TIMEOUT, "fetch_timeout"),
            (ENV_KEEPALIVE_INTERVAL, "keepalive_interval"),
        ):
            raw = env.get(key)
            if raw:
                kwargs[name] = _parse_seconds(key, raw)

        return cls(**kwargs)  # type: ignore[arg-type]


def _parse_seconds(key: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be a number of seconds (got {raw!r})") from exc
    if value <= 0:
        raise ConfigurationError(f"{key} must be positive (got {raw!r})")
    return value


def package_version() -> str:
    """Installed distribution version, or ``0.0.0`` when running from a bare checkout."""
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = ["ConfigurationError", "DATA_DIR", "SERVER_ID", "Settings", "package_version"]
