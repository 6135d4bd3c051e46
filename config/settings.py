"""
Configuration settings with environment variable loading.

Session IDs and cookies MUST be provided via environment variables.
Never log or expose them in any output.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class SteamConfig:
    """Steam Web API and community configuration."""
    api_base_url: str = "https://api.steampowered.com"
    community_base_url: str = "https://steamcommunity.com"
    session_id: str = ""
    cookies: str = ""
    request_timeout: float = 30.0

    def __post_init__(self):
        for name in ("api_base_url", "community_base_url"):
            url = getattr(self, name)
            if not url:
                raise ConfigurationError(f"{name} is required")
            if not url.startswith("https://"):
                raise ConfigurationError(f"{name} must use HTTPS")
        if self.request_timeout <= 0:
            raise ConfigurationError("STEAM_REQUEST_TIMEOUT must be positive")

    def __repr__(self) -> str:
        """Never expose session data in repr."""
        return (
            f"SteamConfig(api_base_url='{self.api_base_url}', "
            f"community_base_url='{self.community_base_url}', "
            f"session_id='***REDACTED***', cookies='***REDACTED***', "
            f"request_timeout={self.request_timeout})"
        )


@dataclass(frozen=True)
class SyncConfig:
    """Sync engine configuration."""
    target_collection: Optional[str] = None
    source_collections: tuple = field(default_factory=tuple)
    dry_run: bool = False
    max_workers: int = 8

    def __post_init__(self):
        if self.max_workers < 1:
            raise ConfigurationError("SYNC_MAX_WORKERS must be at least 1")


@dataclass(frozen=True)
class Settings:
    """
    Application settings container.

    All configuration is loaded from environment variables.
    Secrets are never logged or exposed.
    """
    steam: SteamConfig
    sync: SyncConfig
    log_level: str = "INFO"

    def __repr__(self) -> str:
        return (
            f"Settings(\n"
            f"  steam={self.steam},\n"
            f"  sync={self.sync}\n"
            f")"
        )


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Load settings from environment variables.

    Optionally loads from a .env file first.

    Args:
        env_file: Optional path to .env file

    Returns:
        Configured Settings instance

    Raises:
        ConfigurationError: If required configuration is missing
    """
    if env_file and env_file.exists():
        _load_env_file(env_file)
    elif Path(".env").exists():
        _load_env_file(Path(".env"))

    try:
        steam = SteamConfig(
            api_base_url=os.getenv("STEAM_API_BASE_URL", "https://api.steampowered.com").rstrip("/"),
            community_base_url=os.getenv("STEAM_COMMUNITY_BASE_URL", "https://steamcommunity.com").rstrip("/"),
            session_id=os.getenv("STEAM_SESSION_ID", ""),
            cookies=os.getenv("STEAM_COOKIES", ""),
            request_timeout=float(os.getenv("STEAM_REQUEST_TIMEOUT", "30")),
        )

        sources = os.getenv("SYNC_SOURCE_COLLECTIONS", "")
        sync = SyncConfig(
            target_collection=os.getenv("SYNC_TARGET_COLLECTION") or None,
            source_collections=tuple(s.strip() for s in sources.split(",") if s.strip()),
            dry_run=os.getenv("SYNC_DRY_RUN", "false").lower() == "true",
            max_workers=int(os.getenv("SYNC_MAX_WORKERS", "8")),
        )

        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        settings = Settings(
            steam=steam,
            sync=sync,
            log_level=log_level,
        )

        logger.info("Configuration loaded successfully")
        logger.debug(f"Settings: {settings}")

        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e


def _load_env_file(path: Path) -> None:
    """
    Load environment variables from a file.

    Simple .env parser that handles:
    - KEY=value
    - KEY="quoted value"
    - # comments
    - Empty lines
    """
    logger.debug(f"Loading environment from {path}")

    with open(path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                logger.warning(f"Invalid line {line_num} in {path}: no '=' found")
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            if value.startswith('"') and value.endswith('"'):
                value = value[1:-1]
            elif value.startswith("'") and value.endswith("'"):
                value = value[1:-1]

            # Environment variables take precedence
            if key not in os.environ:
                os.environ[key] = value
