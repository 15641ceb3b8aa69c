"""Configuration management for the PDF stamp service."""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class StampConfig:
    """Configuration for stamping text onto pages."""
    font_size: float = field(
        default_factory=lambda: float(os.environ.get("STAMP_FONT_SIZE", "12"))
    )
    font_name: str = field(
        default_factory=lambda: os.environ.get("STAMP_FONT_NAME", "helv")
    )
    margin_x: float = field(
        default_factory=lambda: float(os.environ.get("STAMP_MARGIN_X", "20"))
    )
    margin_y: float = field(
        default_factory=lambda: float(os.environ.get("STAMP_MARGIN_Y", "20"))
    )
    # "bottom" measures margin_y up from the bottom edge, "top" down from the top edge
    anchor: str = field(
        default_factory=lambda: os.environ.get("STAMP_ANCHOR", "bottom")
    )
    max_text_length: int = field(
        default_factory=lambda: int(os.environ.get("STAMP_MAX_TEXT_LENGTH", "500"))
    )
    max_file_size_mb: int = field(
        default_factory=lambda: int(os.environ.get("MAX_FILE_SIZE_MB", "100"))
    )
    # Page expressions naming a higher page are rejected before ranges are expanded
    max_page_number: int = field(
        default_factory=lambda: int(os.environ.get("STAMP_MAX_PAGE_NUMBER", "10000"))
    )

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


@dataclass
class FetchConfig:
    """Configuration for downloading source documents."""
    timeout_seconds: float = field(
        default_factory=lambda: float(os.environ.get("FETCH_TIMEOUT_SECONDS", "60"))
    )


@dataclass
class StorageConfig:
    """Configuration for the cloud storage upload sink."""
    upload_url: str = field(
        default_factory=lambda: os.environ.get("STORAGE_UPLOAD_URL", "")
    )
    api_key: str = field(
        default_factory=lambda: os.environ.get("STORAGE_API_KEY", "")
    )
    key_prefix: str = field(
        default_factory=lambda: os.environ.get("STORAGE_KEY_PREFIX", "stamped/")
    )
    timeout_seconds: float = field(
        default_factory=lambda: float(os.environ.get("STORAGE_TIMEOUT_SECONDS", "60"))
    )

    @property
    def enabled(self) -> bool:
        return bool(self.upload_url)


@dataclass
class ServerConfig:
    """Configuration for HTTP server."""
    host: str = field(
        default_factory=lambda: os.environ.get("HTTP_HOST", "0.0.0.0")
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("HTTP_PORT", "8089"))
    )
    default_sink: str = field(
        default_factory=lambda: os.environ.get("DEFAULT_SINK", "inline")
    )


@dataclass
class Config:
    """Main configuration container."""
    stamp: StampConfig = field(default_factory=StampConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Force reload of configuration from environment."""
    global _config
    _config = Config()
    return _config
