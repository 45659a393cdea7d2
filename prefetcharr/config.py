"""Configuration management for prefetcharr."""

import os
from pathlib import Path
from typing import List, Optional

import yaml

LOG_LEVELS = ("debug", "info", "warning", "error")
MEDIA_SERVER_TYPES = ("jellyfin", "emby")


class ConfigError(Exception):
    """Configuration error."""

    pass


class Config:
    """Manages prefetcharr configuration."""

    def __init__(self, config_path: Path):
        """Initialize config with the path of its YAML file."""
        self.config_path = Path(config_path)

        # Media server connection
        self.media_server_type: str = "jellyfin"
        self.media_server_url: Optional[str] = None
        self.media_server_api_key: Optional[str] = None
        self.users: List[str] = []
        self.libraries: List[str] = []

        # Sonarr connection
        self.sonarr_url: Optional[str] = None
        self.sonarr_api_key: Optional[str] = None

        # Behaviour
        self.interval: int = 900
        self.prefetch_num: int = 2
        self.request_seasons: bool = True
        self.exclude_tag: Optional[str] = None
        self.connection_retries: int = 0

        # Logging
        self.log_dir: Optional[Path] = None
        self.log_level: Optional[str] = None

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def load(self) -> None:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise ConfigError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Config file is empty: {self.config_path}")

        media_server = data.get("media_server") or {}
        self.media_server_type = str(media_server.get("type", "jellyfin")).lower()
        self.media_server_url = media_server.get("url")
        self.media_server_api_key = media_server.get("api_key") or os.environ.get(
            "MEDIA_SERVER_API_KEY"
        )
        self.users = [str(u) for u in media_server.get("users") or []]
        self.libraries = [str(lib) for lib in media_server.get("libraries") or []]

        sonarr = data.get("sonarr") or {}
        self.sonarr_url = sonarr.get("url")
        self.sonarr_api_key = sonarr.get("api_key") or os.environ.get(
            "SONARR_API_KEY"
        )

        self.interval = data.get("interval", 900)
        self.prefetch_num = data.get("prefetch_num", 2)
        self.request_seasons = data.get("request_seasons", True)
        self.exclude_tag = data.get("exclude_tag")
        self.connection_retries = data.get("connection_retries", 0)

        log_dir = data.get("log_dir")
        self.log_dir = Path(log_dir) if log_dir else None
        self.log_level = data.get("log_level")

        self.validate()

    def validate(self) -> None:
        """Check that all settings are present and in range."""
        if self.media_server_type not in MEDIA_SERVER_TYPES:
            raise ConfigError(
                f"Invalid media server type: {self.media_server_type}"
            )
        for key, value in (
            ("media_server.url", self.media_server_url),
            ("media_server.api_key", self.media_server_api_key),
            ("sonarr.url", self.sonarr_url),
            ("sonarr.api_key", self.sonarr_api_key),
        ):
            if not value:
                raise ConfigError(f"Missing setting: {key}")

        for key, value, minimum in (
            ("interval", self.interval, 1),
            ("prefetch_num", self.prefetch_num, 1),
            ("connection_retries", self.connection_retries, 0),
        ):
            if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
                raise ConfigError(f"Invalid {key}: {value!r}")

        if not isinstance(self.request_seasons, bool):
            raise ConfigError(f"Invalid request_seasons: {self.request_seasons!r}")
        if self.exclude_tag is not None and not isinstance(self.exclude_tag, str):
            raise ConfigError(f"Invalid exclude_tag: {self.exclude_tag!r}")
        if self.log_level is not None and str(self.log_level).lower() not in LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {self.log_level!r}")
