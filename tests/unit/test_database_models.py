"""
Unit tests for UserFeed data models.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError as PydanticValidationError

from userfeed.database.models import (
    AttachmentOutcome,
    AttachmentStatus,
    ContentDraft,
    FeedJob,
    FeedSettings,
    ImportConfig,
    ImportResult,
    Owner,
    PostStatus,
    job_id_for,
)


class TestPostStatus:

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("publish", PostStatus.PUBLISH),
            (" Pending ", PostStatus.PENDING),
            (PostStatus.PRIVATE, PostStatus.PRIVATE),
            ("scheduled", PostStatus.DRAFT),
            (None, PostStatus.DRAFT),
        ],
    )
    def test_coerce(self, value, expected):
        assert PostStatus.coerce(value) == expected


class TestFeedSettings:

    def test_defaults(self):
        settings = FeedSettings()

        assert settings.interval_seconds == 4 * 3600
        assert settings.post_status == PostStatus.DRAFT
        assert settings.default_media_id is None

    def test_unknown_status_falls_back_to_draft(self):
        assert FeedSettings(post_status="bogus").post_status == PostStatus.DRAFT

    @pytest.mark.parametrize("value", [None, "", 0, "0"])
    def test_empty_default_media_is_unset(self, value):
        assert FeedSettings(default_media_id=value).default_media_id is None

    def test_interval_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            FeedSettings(interval_seconds=0)

    def test_is_immutable(self):
        settings = FeedSettings()
        with pytest.raises(PydanticValidationError):
            settings.interval_seconds = 60


class TestImportConfig:

    def test_build_merges_feed_settings(self, test_settings):
        feed_settings = FeedSettings(post_status="publish", default_media_id=42)

        config = ImportConfig.build(test_settings, feed_settings)

        assert config.post_status == PostStatus.PUBLISH
        assert config.default_media_id == 42
        assert config.timezone == test_settings.site.timezone
        assert config.default_tags == ("import",)

    def test_build_without_feed_settings_uses_importer_defaults(self, test_settings):
        config = ImportConfig.build(test_settings)

        assert config.post_status == test_settings.importer.post_status
        assert config.read_more_text == "Read Full Article"


class TestFeedJob:

    def test_job_id_is_keyed_by_owner(self):
        job = FeedJob(owner_id=7, feed_url="https://x/feed", interval_seconds=3600)

        assert job.job_id == job_id_for(7) == "user_feed_import:7"

    def test_interval_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            FeedJob(owner_id=7, feed_url="https://x/feed", interval_seconds=0)


class TestContentDraft:

    def test_publish_at_local_uses_wall_clock(self):
        berlin = ZoneInfo("Europe/Berlin")
        draft = ContentDraft(
            title="T",
            body="B",
            author_id=7,
            publish_at=datetime(2024, 9, 5, 12, 0, tzinfo=timezone.utc).astimezone(berlin),
        )

        assert draft.publish_at_local == "2024-09-05 14:00:00"

    def test_missing_publish_date(self):
        assert ContentDraft(title="T", body="B", author_id=7).publish_at_local is None


class TestImportResult:

    def test_failed_run_cannot_report_inserts(self):
        with pytest.raises(PydanticValidationError):
            ImportResult(feed_url="https://x/feed", succeeded=False, inserted_ids=[1])

    def test_inserted_count(self):
        result = ImportResult(feed_url="https://x/feed", succeeded=True, inserted_ids=[3, 4])
        assert result.inserted_count == 2


class TestAttachmentOutcome:

    def test_attached_requires_an_id(self):
        assert AttachmentOutcome(status=AttachmentStatus.ATTACHED, attachment_id=9).attached
        assert not AttachmentOutcome(status=AttachmentStatus.ATTACHED).attached
        assert not AttachmentOutcome.not_attempted().attached


class TestOwner:

    def test_has_any_role(self):
        owner = Owner(id=7, display_name="Jane", roles=["author"])

        assert owner.has_any_role(["administrator", "author"])
        assert not owner.has_any_role(["subscriber"])
