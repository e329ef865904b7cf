"""
UserFeed Configuration System
=============================

Simple configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.

Static service settings live here. The per-feed settings an administrator edits
at runtime (interval, post status, default media) are persisted in the options
store and modelled by ``userfeed.database.models.FeedSettings``.
"""

from pathlib import Path
from typing import List, Optional
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..database.models import PostStatus
from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SiteSettings(BaseModel):
    """Host site properties."""
    name: str = Field(default="UserFeed", description="Site name used in the User-Agent")
    timezone: str = Field(default="UTC", description="IANA timezone content dates are rendered in")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        """Ensure the timezone is known to the zoneinfo database."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v


class SchedulerSettings(BaseModel):
    """Recurring import scheduling."""
    default_interval_hours: int = Field(default=4, ge=1, le=24 * 30, description="Hours between imports")
    activation_delay_minutes: int = Field(default=20, ge=0, le=24 * 60, description="Delay of the first run after service start")
    grace_delay_seconds: int = Field(default=60, ge=0, le=3600, description="Delay of the first run for a newly created feed")
    recovery_delay_minutes: int = Field(default=20, ge=1, le=24 * 60, description="Delay before retrying a failed import")
    misfire_grace_seconds: int = Field(default=300, ge=1, description="How late a missed run may still start")


class ImporterSettings(BaseModel):
    """Defaults for imported content."""
    post_status: PostStatus = Field(default=PostStatus.DRAFT, description="Status of imported content")
    default_media_id: Optional[int] = Field(default=None, ge=1, description="Attachment used when an item has no image")
    read_more_text: str = Field(default="Read Full Article", min_length=1, description="Text of the fallback body link")
    default_tags: List[str] = Field(default_factory=lambda: ["import"], description="Tags assigned to every imported item")


class LimitsSettings(BaseModel):
    """Network limits."""
    request_timeout: int = Field(default=30, ge=1, le=300, description="Feed fetch timeout in seconds")
    media_timeout: int = Field(default=30, ge=1, le=300, description="Image download timeout in seconds")
    max_feed_bytes: int = Field(default=10 * 1024 * 1024, ge=1024, description="Largest feed body accepted")


class MediaSettings(BaseModel):
    """Attachment storage."""
    upload_dir: str = Field(default="data/uploads", description="Directory registered attachments are copied to")


class SecuritySettings(BaseModel):
    """Access control for owner and admin actions."""
    secret_key: str = Field(default="change-me", min_length=8, description="Key used to sign admin action tokens")
    authorized_roles: List[str] = Field(
        default_factory=lambda: ["administrator", "editor", "author", "contributor"],
        description="Roles allowed to register a feed",
    )
    admin_roles: List[str] = Field(
        default_factory=lambda: ["administrator"],
        description="Roles allowed to run manual imports",
    )


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/userfeed.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/userfeed.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class UserFeedSettings(BaseSettings):
    """Main application settings."""

    site: SiteSettings = Field(default_factory=SiteSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    importer: ImporterSettings = Field(default_factory=ImporterSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)
    media: MediaSettings = Field(default_factory=MediaSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="UserFeed", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "USERFEED_",
    }

    def validate_configuration(self) -> None:
        """Validate paths the service writes to."""
        errors = []

        for label, raw_path in (
            ("database path", self.database.path),
            ("upload directory", self.media.upload_dir),
        ):
            try:
                path = Path(raw_path)
                target = path if label == "upload directory" else path.parent
                target.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid {label}: {e}")

        if self.logging.file_path:
            try:
                Path(self.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID,
            )

    @property
    def site_tz(self) -> ZoneInfo:
        return ZoneInfo(self.site.timezone)

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> UserFeedSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = UserFeedSettings()
        settings.validate_configuration()
        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID,
        ) from e


_settings: Optional[UserFeedSettings] = None


def get_settings(reload: bool = False) -> UserFeedSettings:
    """Get global settings instance.

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
