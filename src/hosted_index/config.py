"""Credentials, endpoints, and client defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigurationError

_LOGGER = logging.getLogger(__name__)


def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


ENV_FILE_TEMPLATE = """\
# hix reads this file on every run. Lines are KEY=value; values may be quoted.
# Variables already exported in your shell take precedence over these.
# Created with owner-only permissions: the admin API key can rewrite indices.

# Application id and admin API key from the dashboard
# HIX_APP_ID=YourApplicationID
# HIX_API_KEY=YourAdminAPIKey

# API host, when not https://<app id>.algolia.net
# HIX_BASE_URL=https://example.invalid

# Read attempts per request, and status fetches per wait-task
# HIX_READ_RETRIES=3
# HIX_WAIT_TASK_RETRY=100
"""


def _parse_env_line(line: str) -> tuple[str, str] | None:
    """Split ``KEY=value`` (optionally ``export KEY=value``); None for blanks and comments."""
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    if line.startswith("export "):
        line = line[len("export ") :].lstrip()
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
        return None
    return key, value.strip().strip("'\"")


@dataclass
class Config:
    """Runtime configuration, resolved from env vars and defaults."""

    # Credentials
    app_id: str | None = field(default_factory=lambda: os.environ.get("HIX_APP_ID"))
    api_key: str | None = field(default_factory=lambda: os.environ.get("HIX_API_KEY"))

    # Endpoint; derived from app_id when unset
    base_url: str | None = field(default_factory=lambda: os.environ.get("HIX_BASE_URL"))

    # Env file for credentials
    env_file: Path = field(default_factory=lambda: _xdg_config_home() / "hosted-index" / "env")

    # Transport settings (seconds)
    connect_timeout: float = 2.0
    read_timeout: float = 5.0
    write_timeout: float = 30.0
    read_retries: int = field(default_factory=lambda: _env_int("HIX_READ_RETRIES", 3))
    retry_backoff: float = 0.2

    # Task polling: default max attempts for wait_task
    wait_task_retry: int = field(default_factory=lambda: _env_int("HIX_WAIT_TASK_RETRY", 100))

    # hitsPerPage when browsing rules and synonyms
    browse_page_size: int = 1000

    @property
    def resolved_base_url(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        if not self.app_id:
            raise ConfigurationError("Cannot derive the API host without an application id.")
        return f"https://{self.app_id}.algolia.net"

    def load_env_file(self) -> list[str]:
        """Export the env file's variables, skipping any already in os.environ.

        Returns the names that were set. A missing file sets nothing.
        """
        if not self.env_file.exists():
            return []
        loaded = []
        for line in self.env_file.read_text().splitlines():
            parsed = _parse_env_line(line)
            if parsed is None:
                continue
            key, value = parsed
            if key in os.environ:
                continue
            os.environ[key] = value
            loaded.append(key)
        _LOGGER.debug("Loaded %s from %s", ", ".join(loaded) or "nothing", self.env_file)
        return loaded

    def ensure_env_file(self) -> bool:
        """Write the credentials template, mode 0600, unless the file exists.

        Returns True when the file was created by this call.
        """
        if self.env_file.exists():
            return False
        self.env_file.parent.mkdir(parents=True, exist_ok=True)
        self.env_file.touch(mode=0o600)
        self.env_file.chmod(0o600)
        self.env_file.write_text(ENV_FILE_TEMPLATE)
        return True

    def require_credentials(self) -> None:
        """Raise ConfigurationError unless both the app id and API key are known."""
        if self.app_id and self.api_key:
            return
        raise ConfigurationError(
            "No credentials found. Add HIX_APP_ID and HIX_API_KEY to "
            f"{self.env_file} or set them in the environment."
        )
