"""Configuration management for the ShipKit CLI."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv


DEFAULT_BASE_URL = "https://shipkit.app/api"
DEFAULT_OUTPUT_DIR = "."
DEFAULT_CREDENTIAL_SERVICE = "shipkit"
DEFAULT_DOWNLOAD_TIMEOUT = 120.0

BUILD_PATH = "/download"
TOKEN_CHECK_PATH = "/token/check"


def load_env_file() -> None:
    """Load a ``.env`` file from the working directory, if there is one.

    Values already present in the environment win.
    """
    load_dotenv(find_dotenv(usecwd=True))


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the environment."""

    base_url: str = DEFAULT_BASE_URL
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    credential_service: str = DEFAULT_CREDENTIAL_SERVICE
    download_timeout: Optional[float] = DEFAULT_DOWNLOAD_TIMEOUT

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            env: Mapping to read from (defaults to ``os.environ``)

        Returns:
            Settings with defaults for anything unset or empty
        """
        if env is None:
            env = os.environ

        base_url = env.get("SHIPKIT_BASE_URL") or DEFAULT_BASE_URL
        output_dir = env.get("SHIPKIT_OUTPUT_DIR") or DEFAULT_OUTPUT_DIR
        service = env.get("SHIPKIT_CREDENTIAL_SERVICE") or DEFAULT_CREDENTIAL_SERVICE

        return cls(
            base_url=base_url.rstrip("/"),
            output_dir=Path(output_dir),
            credential_service=service,
            download_timeout=parse_timeout(env.get("SHIPKIT_DOWNLOAD_TIMEOUT")),
        )

    def api_url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    @property
    def build_url(self) -> str:
        return self.api_url(BUILD_PATH)

    @property
    def token_check_url(self) -> str:
        return self.api_url(TOKEN_CHECK_PATH)


def parse_timeout(value: Optional[str]) -> Optional[float]:
    """Parse a timeout in seconds; ``0`` or a negative value disables it."""
    if value is None or not value.strip():
        return DEFAULT_DOWNLOAD_TIMEOUT
    try:
        seconds = float(value)
    except ValueError:
        raise ValueError(f"Invalid SHIPKIT_DOWNLOAD_TIMEOUT value: {value!r}")
    return seconds if seconds > 0 else None
