# src/filestore_api/config/settings.py
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Optional, Tuple

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

MEBIBYTE = 1024 * 1024
QUEUE_MODES = ("thread", "inline")


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables prefixed with ``FILESTORE_`` (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from filestore_api.config.settings import get_settings
        settings = get_settings()
        store_dir = settings.store_dir
    """

    # Application Settings
    app_name: str = Field(
        default="filestore-api",
        description="Application name"
    )

    # Storage Configuration
    store_dir: Path = Field(
        default=Path("./uploads"),
        description="Directory holding uploaded files, shared by HTTP and FTP"
    )

    thumbnail_dir: Path = Field(
        default=Path("./thumbnails"),
        description="Directory holding generated thumbnails"
    )

    public_dir: Optional[Path] = Field(
        default=None,
        description="Optional directory of static client assets served at /"
    )

    # HTTP Configuration
    http_host: str = Field(default="0.0.0.0")
    http_port: int = Field(default=8080)

    max_upload_bytes: int = Field(
        default=10 * MEBIBYTE,
        gt=0,
        description="Largest accepted upload body"
    )

    # FTP Configuration
    ftp_enabled: bool = Field(
        default=True,
        description="Start the FTP gateway alongside the HTTP API"
    )
    ftp_host: str = Field(default="0.0.0.0")
    ftp_port: int = Field(default=2121)
    ftp_username: str = Field(default="admin")
    ftp_password: SecretStr = Field(default=SecretStr("admin"))
    ftp_passive_ports: Optional[str] = Field(
        default=None,
        description="Passive port range, e.g. '60000-60100'"
    )

    # Thumbnail Configuration
    thumbnails_enabled: bool = Field(
        default=True,
        description="Generate thumbnails for uploaded images"
    )
    thumbnail_size: int = Field(
        default=100,
        gt=0,
        description="Bounding box edge for thumbnails"
    )
    image_extensions: Annotated[List[str], NoDecode] = Field(
        default=[".jpg", ".jpeg", ".png", ".gif"],
        description="Extensions that trigger thumbnail generation"
    )
    thumbnail_queue_mode: str = Field(
        default="thread",
        description="How thumbnail jobs run: thread or inline"
    )
    thumbnail_url_prefix: str = Field(
        default="/thumbnails",
        description="URL prefix thumbnails are served under"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator("image_extensions", mode="before")
    @classmethod
    def split_extensions(cls, v):
        """Accept a comma separated string as well as a list."""
        if isinstance(v, str):
            return [part for part in v.split(",") if part.strip()]
        return v

    @field_validator("image_extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        """Lowercase every extension and make sure it starts with a dot."""
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext.startswith("."):
                ext = f".{ext}"
            normalized.append(ext)
        return normalized

    @field_validator("thumbnail_queue_mode")
    @classmethod
    def validate_queue_mode(cls, v: str) -> str:
        if v not in QUEUE_MODES:
            raise ValueError(f"Invalid thumbnail_queue_mode: {v}. Must be one of {list(QUEUE_MODES)}")
        return v

    @field_validator("ftp_passive_ports")
    @classmethod
    def validate_passive_ports(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        start, sep, end = v.partition("-")
        if not sep or not start.strip().isdigit() or not end.strip().isdigit():
            raise ValueError(f"Invalid ftp_passive_ports: {v}. Expected 'start-end'")
        if int(start) > int(end):
            raise ValueError(f"Invalid ftp_passive_ports: {v}. Start is after end")
        return v

    @field_validator("thumbnail_url_prefix")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return "/" + v.strip("/")

    @property
    def passive_port_range(self) -> Optional[Tuple[int, int]]:
        """Inclusive (start, end) of the FTP passive range, if configured."""
        if not self.ftp_passive_ports:
            return None
        start, _, end = self.ftp_passive_ports.partition("-")
        return int(start), int(end)

    def get_environment_dict(self) -> dict:
        """Get configuration as a dictionary suitable for display or a subprocess.

        The FTP password is masked.
        """
        return {
            "FILESTORE_STORE_DIR": str(self.store_dir),
            "FILESTORE_THUMBNAIL_DIR": str(self.thumbnail_dir),
            "FILESTORE_HTTP_PORT": str(self.http_port),
            "FILESTORE_FTP_ENABLED": str(self.ftp_enabled).lower(),
            "FILESTORE_FTP_PORT": str(self.ftp_port),
            "FILESTORE_FTP_USERNAME": self.ftp_username,
            "FILESTORE_FTP_PASSWORD": "********",
            "FILESTORE_MAX_UPLOAD_BYTES": str(self.max_upload_bytes),
            "FILESTORE_THUMBNAILS_ENABLED": str(self.thumbnails_enabled).lower(),
            "FILESTORE_THUMBNAIL_SIZE": str(self.thumbnail_size),
            "FILESTORE_IMAGE_EXTENSIONS": ",".join(self.image_extensions),
            "FILESTORE_THUMBNAIL_QUEUE_MODE": self.thumbnail_queue_mode,
            "FILESTORE_LOG_LEVEL": self.log_level,
        }

    model_config = SettingsConfigDict(
        env_prefix="FILESTORE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
