"""
End-to-End Import Pipeline Tests
================================

Owner feed registration through scheduled imports into the content store,
using the real scheduler, database and a routed HTTP session.
"""

import time
from datetime import datetime, timedelta, timezone

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from userfeed.database.models import Owner
from userfeed.scheduler.job_registry import APSchedulerJobRegistry
from userfeed.services.lifecycle import UserFeedApp


FEED_URL = "https://blog.example.com/feed"
IMAGE_URL = "https://cdn.example.com/img.png"
HOUR = 3600


def wait_for(condition, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.05)
    return False


@pytest.fixture
def live_app(test_settings, db_connection, http):
    """Importer whose scheduler actually fires jobs."""
    registry = APSchedulerJobRegistry(BackgroundScheduler(timezone=timezone.utc))
    app = UserFeedApp(test_settings, db=db_connection, registry=registry, session=http.session)
    registry.start()
    yield app

    registry.shutdown(wait=True)


class TestScheduledImport:
    """Scheduled imports running on the background scheduler."""

    def test_manual_trigger_imports_feed(self, live_app, http, owner_repo, author, admin, default_image, full_feed, png_bytes):
        http.add(FEED_URL, full_feed)
        http.add(IMAGE_URL, png_bytes, content_type="image/png")
        live_app.feed_settings.update(default_media_id=default_image, post_status="publish")

        live_app.feed_owners.set_feed_url(7, FEED_URL)
        live_app.admin.run_import_now(admin, 7, FEED_URL, live_app.admin.issue_token(admin))

        assert wait_for(lambda: live_app.options.get_last_run() is not None)

        posts = live_app.content.get_posts_for_author(7)
        assert [p["title"] for p in posts] == ["First Post", "Second Post"]
        assert all(p["status"] == "publish" for p in posts)
        assert posts[0]["thumbnail_id"] not in (None, 42)
        assert posts[1]["thumbnail_id"] == 42

        report = live_app.admin.status_report()
        assert report.last_run is not None
        assert report.rows[0].owner_id == 7


class TestImportRecovery:
    """Failed runs re-arm the owner's job; later runs recover."""

    @pytest.fixture
    def owner_with_feed(self, app, http, author):
        http.add(FEED_URL, b"<rss/>")
        app.feed_owners.set_feed_url(7, FEED_URL)
        return author

    def test_malformed_feed_then_recovery(self, app, http, owner_with_feed, malformed_feed, full_feed, png_bytes):
        http.add(FEED_URL, malformed_feed)

        failed = app.scheduler.fire(7)

        assert not failed.succeeded
        assert app.content.count() == 0
        job = app.registry.get_job(7)
        assert job.feed_url == FEED_URL
        assert abs(
            (job.next_fire_at - (datetime.now(timezone.utc) + timedelta(minutes=20))).total_seconds()
        ) <= 5

        http.add(FEED_URL, full_feed)
        http.add(IMAGE_URL, png_bytes, content_type="image/png")

        recovered = app.scheduler.fire(7)
        again = app.scheduler.fire(7)

        assert recovered.succeeded and recovered.inserted_count == 2
        assert again.succeeded and again.inserted_ids == []
        assert app.content.count() == 2
        assert len(app.registry.scheduler.get_jobs()) == 1

    def test_image_failure_does_not_fail_import(self, app, http, owner_with_feed, full_feed):
        http.add(FEED_URL, full_feed)

        result = app.scheduler.fire(7)

        assert result.succeeded
        assert result.inserted_count == 2
        assert all(app.content.get_post(i)["thumbnail_id"] is None for i in result.inserted_ids)


class TestSettingsPropagation:
    """Interval changes reach every authorized owner's job."""

    def test_interval_change_reaches_all_owners(self, app, http, owner_repo, author):
        owner_repo.save_owner(Owner(id=8, display_name="Second Author", roles=["editor"]))
        http.add(FEED_URL, b"<rss/>")
        http.add("https://example.com/other.xml", b"<rss/>")
        app.feed_owners.set_feed_url(7, FEED_URL)
        app.feed_owners.set_feed_url(8, "https://example.com/other.xml")

        app.feed_settings.update(interval_hours=12)

        assert app.registry.get_job(7).interval_seconds == 12 * HOUR
        assert app.registry.get_job(8).interval_seconds == 12 * HOUR

    def test_new_feed_uses_current_interval(self, app, http, author):
        app.feed_settings.update(interval_hours=2)
        http.add(FEED_URL, b"<rss/>")

        job = app.feed_owners.set_feed_url(7, FEED_URL)

        assert job.interval_seconds == 2 * HOUR
