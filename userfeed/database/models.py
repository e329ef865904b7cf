"""
UserFeed Data Models
====================

Pydantic data models for type safety and validation throughout the importer.
Scheduling and per-run values are immutable so a change made while a run is
in flight can never alter that run.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple
from dataclasses import dataclass, field

from pydantic import BaseModel, Field, field_validator, model_validator


class PostStatus(str, Enum):
    """Statuses an imported content record may be created with."""
    DRAFT = "draft"
    PENDING = "pending"
    PRIVATE = "private"
    PUBLISH = "publish"

    @classmethod
    def coerce(cls, value) -> "PostStatus":
        """Map any stored value onto the allow-list, falling back to draft."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.DRAFT


class FeedSettings(BaseModel):
    """Per-feed settings persisted in the options store."""
    interval_seconds: int = Field(default=4 * 3600, gt=0, description="Seconds between imports")
    post_status: PostStatus = Field(default=PostStatus.DRAFT, description="Status of imported content")
    default_media_id: Optional[int] = Field(default=None, description="Fallback featured image attachment")
    intro_text: str = Field(default="Enter your RSS feed.", description="Instructions shown to feed owners")

    model_config = {"frozen": True}

    @field_validator("post_status", mode="before")
    @classmethod
    def validate_post_status(cls, v):
        """Unknown or missing statuses fall back to draft."""
        if v is None:
            return PostStatus.DRAFT
        return PostStatus.coerce(v)

    @field_validator("default_media_id", mode="before")
    @classmethod
    def validate_default_media(cls, v):
        """Treat empty or non-positive values as unset."""
        if v in (None, "", 0, "0"):
            return None
        v = abs(int(v))
        return v or None


class ImportConfig(BaseModel):
    """Immutable configuration threaded into one import run."""
    timezone: str = Field(default="UTC")
    post_status: PostStatus = Field(default=PostStatus.DRAFT)
    default_media_id: Optional[int] = Field(default=None)
    read_more_text: str = Field(default="Read Full Article")
    default_tags: Tuple[str, ...] = Field(default=("import",))
    media_timeout: int = Field(default=30, gt=0)

    model_config = {"frozen": True}

    @classmethod
    def build(cls, settings, feed_settings: Optional[FeedSettings] = None) -> "ImportConfig":
        """Merge static service settings with the stored per-feed settings."""
        feed_settings = feed_settings or FeedSettings(
            post_status=settings.importer.post_status,
            default_media_id=settings.importer.default_media_id,
        )
        return cls(
            timezone=settings.site.timezone,
            post_status=feed_settings.post_status,
            default_media_id=feed_settings.default_media_id,
            read_more_text=settings.importer.read_more_text,
            default_tags=tuple(settings.importer.default_tags),
            media_timeout=settings.limits.media_timeout,
        )


class FeedJob(BaseModel):
    """One scheduled recurring import, bound to a single owner."""
    owner_id: int = Field(..., description="Owner of the feed")
    feed_url: str = Field(..., min_length=1, description="Feed URL imported on every fire")
    interval_seconds: int = Field(..., gt=0, description="Seconds between imports")
    next_fire_at: Optional[datetime] = Field(default=None, description="Next scheduled occurrence")

    model_config = {"frozen": True}

    @property
    def job_id(self) -> str:
        return job_id_for(self.owner_id)


def job_id_for(owner_id: int) -> str:
    """Registry key for an owner's job; one key per owner keeps a single live occurrence."""
    return f"user_feed_import:{owner_id}"


@dataclass
class RawFeedEntry:
    """One <item> of a source feed, with only the fields the importer reads."""

    title: str = ""
    description: str = ""
    encoded_content: str = ""
    link: str = ""
    pub_date: str = ""
    guid: str = ""
    featured_image: Optional[str] = None
    published: Optional[datetime] = None
    categories: List[str] = field(default_factory=list)


class ContentDraft(BaseModel):
    """Normalized representation of one feed entry, before insertion."""
    title: str = Field(default="", description="Plain-text title")
    excerpt: str = Field(default="", description="Plain-text excerpt")
    body: str = Field(default="", description="Sanitized HTML body")
    author_id: int = Field(..., description="Feed owner")
    publish_at: Optional[datetime] = Field(default=None, description="Publish date in the site timezone")
    external_guid: str = Field(default="", description="Sanitized source guid")
    status: PostStatus = Field(default=PostStatus.DRAFT)

    model_config = {"frozen": True}

    @property
    def publish_at_local(self) -> Optional[str]:
        """Wall-clock publish date as stored by the content store."""
        if self.publish_at is None:
            return None
        return self.publish_at.strftime("%Y-%m-%d %H:%M:%S")


class ImportResult(BaseModel):
    """Outcome of one import run."""
    feed_url: str = Field(default="")
    owner_id: Optional[int] = Field(default=None)
    inserted_ids: List[int] = Field(default_factory=list)
    succeeded: bool = Field(default=False)
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    entries_seen: int = Field(default=0)
    error: Optional[str] = Field(default=None)

    @model_validator(mode="after")
    def check_failed_runs_insert_nothing(self):
        if not self.succeeded and self.inserted_ids:
            raise ValueError("a failed import run cannot report inserted items")
        return self

    @property
    def inserted_count(self) -> int:
        return len(self.inserted_ids)


class AttachmentStatus(str, Enum):
    """Outcome kinds of a featured image attempt."""
    NOT_ATTEMPTED = "not_attempted"
    ATTACHED = "attached"
    FAILED = "failed"


@dataclass
class AttachmentOutcome:
    """Result of resolving a feed-provided image for a content record."""

    status: AttachmentStatus
    attachment_id: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def attached(self) -> bool:
        return self.status == AttachmentStatus.ATTACHED and bool(self.attachment_id)

    @classmethod
    def not_attempted(cls) -> "AttachmentOutcome":
        return cls(status=AttachmentStatus.NOT_ATTEMPTED)


class Owner(BaseModel):
    """A site user who may own an imported feed."""
    id: int = Field(..., description="Owner identifier")
    display_name: str = Field(..., min_length=1, max_length=255)
    roles: List[str] = Field(default_factory=list)
    feed_url: Optional[str] = Field(default=None)

    def has_any_role(self, roles) -> bool:
        return bool(set(self.roles) & set(roles))


@dataclass
class FeedStatusRow:
    """One line of the administrator status view."""

    owner_id: int
    display_name: str
    feed_url: str
    next_run: Optional[datetime]
    next_run_display: str
