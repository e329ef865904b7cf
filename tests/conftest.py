"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for UserFeed tests.

- Temporary SQLite database per test with the full schema
- Settings pointing every writable path into the test's tmp directory
- HTTP session whose responses are routed per URL (no network access)
- Paused APScheduler registry so jobs are inspected, never fired
"""

import os
import sys
from datetime import timezone
from pathlib import Path
from unittest.mock import MagicMock, Mock

import pytest
import requests

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["USERFEED_SECURITY__SECRET_KEY"] = "test-secret-key-for-unit-testing"
os.environ["USERFEED_LOGGING__CONSOLE_LOGGING"] = "false"
os.environ["USERFEED_DEBUG"] = "true"


# ============================================================================
# Sample feed documents
# ============================================================================

HELLO_WORLD_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
    <channel>
        <title>Example Blog</title>
        <link>https://x/</link>
        <description>Example</description>
        <item>
            <title>Hello World</title>
            <description><![CDATA[<p>Hi</p>]]></description>
            <link>https://x/1</link>
        </item>
    </channel>
</rss>"""

FULL_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
    <channel>
        <title>Example Blog</title>
        <link>https://blog.example.com/</link>
        <description>Example</description>
        <item>
            <title>First Post</title>
            <description><![CDATA[A <em>short</em> summary]]></description>
            <content:encoded><![CDATA[<p>Full <strong>body</strong></p><script>alert(1)</script>]]></content:encoded>
            <link>https://blog.example.com/first</link>
            <guid>first-guid</guid>
            <pubDate>Thu, 05 Sep 2024 12:00:00 GMT</pubDate>
            <featured_image>https://cdn.example.com/img.png</featured_image>
        </item>
        <item>
            <title>Second Post</title>
            <description>Plain summary</description>
            <link>https://blog.example.com/second</link>
            <guid>second-guid</guid>
            <pubDate>Wed, 04 Sep 2024 15:30:00 GMT</pubDate>
        </item>
    </channel>
</rss>"""

MALFORMED_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
    <channel>
        <title>Broken</title>
        <item>
            <title>Never closed</title>
    </channel>
</rss>"""

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


# ============================================================================
# HTTP Fixtures
# ============================================================================


def make_response(body: bytes = b"", status_code: int = 200, content_type: str = "application/rss+xml"):
    """Build a streamed requests response stand-in."""
    response = Mock()
    response.status_code = status_code
    response.headers = {"Content-Type": content_type}
    response.iter_content.return_value = [body] if body else []
    response.close.return_value = None
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    else:
        response.raise_for_status.return_value = None
    return response


class RoutedSession:
    """requests.Session whose get() answers from a per-URL route table.

    A route is either a response or an exception instance to raise.
    """

    def __init__(self):
        self.routes = {}
        self.session = requests.Session()
        self.session.get = MagicMock(side_effect=self._get)

    def add(self, url, body=b"", status_code=200, content_type="application/rss+xml"):
        self.routes[url] = make_response(body, status_code, content_type)

    def fail(self, url, error):
        self.routes[url] = error

    def calls_to(self, url):
        return [c for c in self.session.get.call_args_list if c.args and c.args[0] == url]

    def _get(self, url, **kwargs):
        route = self.routes.get(url)
        if route is None:
            raise requests.ConnectionError(f"No route for {url}")
        if isinstance(route, Exception):
            raise route
        return route


@pytest.fixture
def hello_world_feed():
    return HELLO_WORLD_FEED


@pytest.fixture
def full_feed():
    return FULL_FEED


@pytest.fixture
def malformed_feed():
    return MALFORMED_FEED


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def http():
    """Routed HTTP session shared by feed and media downloads."""
    routed = RoutedSession()
    yield routed
    routed.session.close()


# ============================================================================
# Settings and Database Fixtures
# ============================================================================


@pytest.fixture
def test_settings(tmp_path):
    """Settings with every writable path inside the test's tmp directory."""
    from userfeed.config.settings import (
        DatabaseSettings,
        LoggingSettings,
        MediaSettings,
        UserFeedSettings,
    )

    return UserFeedSettings(
        database=DatabaseSettings(path=str(tmp_path / "userfeed_test.db"), pool_size=2),
        media=MediaSettings(upload_dir=str(tmp_path / "uploads")),
        logging=LoggingSettings(file_path=None, console_logging=False),
    )


@pytest.fixture
def test_database(test_settings):
    """Create a temporary database with the full schema."""
    from userfeed.database.schema import DatabaseSchema

    db_path = test_settings.database.path
    DatabaseSchema(db_path).create_tables()
    return db_path


@pytest.fixture
def db_connection(test_database):
    """Create a database connection manager for testing."""
    from userfeed.database.connection import DatabaseConnection

    connection = DatabaseConnection(test_database, pool_size=2)
    yield connection

    # Cleanup connections
    connection.close_all_connections()


@pytest.fixture
def owner_repo(db_connection):
    from userfeed.storage.owner_repository import OwnerRepository

    return OwnerRepository(db_connection)


@pytest.fixture
def content_repo(db_connection):
    from userfeed.storage.content_repository import ContentRepository

    return ContentRepository(db_connection)


@pytest.fixture
def options_repo(db_connection):
    from userfeed.storage.options_repository import OptionsRepository

    return OptionsRepository(db_connection)


@pytest.fixture
def attachment_repo(db_connection, test_settings, http):
    from userfeed.storage.attachment_repository import AttachmentRepository

    return AttachmentRepository(
        db_connection, test_settings.media.upload_dir, session=http.session
    )


@pytest.fixture
def author(owner_repo):
    """Owner 7, an author without a feed yet."""
    from userfeed.database.models import Owner

    owner = Owner(id=7, display_name="Jane Doe", roles=["author"])
    owner_repo.save_owner(owner)
    return owner


@pytest.fixture
def admin(owner_repo):
    """Owner 1, a site administrator."""
    from userfeed.database.models import Owner

    owner = Owner(id=1, display_name="Site Admin", roles=["administrator"])
    owner_repo.save_owner(owner)
    return owner


@pytest.fixture
def default_image(attachment_repo, tmp_path):
    """Library attachment 42 used as the default featured image."""
    source = tmp_path / "default.png"
    source.write_bytes(PNG_BYTES)
    return attachment_repo.add_library_file(str(source), "Default image", attachment_id=42)


# ============================================================================
# Scheduler Fixtures
# ============================================================================


@pytest.fixture
def job_registry():
    """APScheduler-backed registry, started paused so jobs never fire."""
    from apscheduler.schedulers.background import BackgroundScheduler

    from userfeed.scheduler.job_registry import APSchedulerJobRegistry

    registry = APSchedulerJobRegistry(BackgroundScheduler(timezone=timezone.utc))
    registry.start(paused=True)
    yield registry

    registry.shutdown(wait=False)


@pytest.fixture
def app(test_settings, db_connection, job_registry, http):
    """Fully wired importer on the test database, registry and HTTP session."""
    from userfeed.services.lifecycle import UserFeedApp

    return UserFeedApp(test_settings, db=db_connection, registry=job_registry, session=http.session)
