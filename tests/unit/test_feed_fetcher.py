"""
Unit Tests for the Feed Fetcher
===============================

HTTP retrieval of feed documents and owner feed location checks.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from userfeed.ingestion.feed_fetcher import FeedFetcher
from userfeed.utils.exceptions import FetchError, FeedValidationError, ErrorCode


FEED_URL = "https://example.com/feed.xml"


def mock_response(status_code=200, body=b"<rss/>", content_type="application/rss+xml"):
    response = Mock()
    response.status_code = status_code
    response.headers = {"Content-Type": content_type}
    response.iter_content.return_value = [body]
    return response


class TestFeedFetcher:
    """Test feed retrieval."""

    @pytest.fixture
    def fetcher(self):
        return FeedFetcher(timeout=5, max_bytes=2048, user_agent="TestSite/0.1.0")

    @patch("requests.Session.get")
    def test_fetch_success(self, mock_get, fetcher):
        mock_get.return_value = mock_response(body=b"<rss version='2.0'/>")

        body = fetcher.fetch(FEED_URL)

        assert body == b"<rss version='2.0'/>"
        mock_get.assert_called_once_with(FEED_URL, timeout=5, stream=True)
        mock_get.return_value.close.assert_called_once()

    def test_sends_user_agent(self, fetcher):
        assert fetcher.session.headers["User-Agent"] == "TestSite/0.1.0"

    @patch("requests.Session.get")
    def test_fetch_bad_status(self, mock_get, fetcher):
        mock_get.return_value = mock_response(status_code=500)

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch(FEED_URL)

        assert exc_info.value.error_code == ErrorCode.FEED_BAD_STATUS
        assert exc_info.value.context["status_code"] == 500

    @patch("requests.Session.get")
    def test_fetch_timeout(self, mock_get, fetcher):
        mock_get.side_effect = requests.Timeout("Request timed out")

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch(FEED_URL)

        assert exc_info.value.error_code == ErrorCode.FEED_FETCH_TIMEOUT

    @patch("requests.Session.get")
    def test_fetch_connection_error(self, mock_get, fetcher):
        mock_get.side_effect = requests.ConnectionError("Connection failed")

        with pytest.raises(FetchError):
            fetcher.fetch(FEED_URL)

    @patch("requests.Session.get")
    def test_fetch_oversized_body(self, mock_get, fetcher):
        mock_get.return_value = mock_response(body=b"x" * 4096)

        with pytest.raises(FetchError):
            fetcher.fetch(FEED_URL)
        mock_get.return_value.close.assert_called_once()


class TestCheckFeedLocation:
    """Test owner feed URL validation against the network."""

    @pytest.fixture
    def fetcher(self):
        return FeedFetcher(timeout=5)

    @patch("requests.Session.get")
    def test_accepts_rss_content_type(self, mock_get, fetcher):
        mock_get.return_value = mock_response(content_type="application/rss+xml; charset=UTF-8")

        fetcher.check_feed_location(FEED_URL)

    @patch("requests.Session.get")
    def test_rejects_html(self, mock_get, fetcher):
        mock_get.return_value = mock_response(content_type="text/html")

        with pytest.raises(FeedValidationError) as exc_info:
            fetcher.check_feed_location(FEED_URL)

        assert exc_info.value.error_code == ErrorCode.FEED_BAD_CONTENT_TYPE

    @patch("requests.Session.get")
    def test_rejects_missing_page(self, mock_get, fetcher):
        mock_get.return_value = mock_response(status_code=404)

        with pytest.raises(FeedValidationError) as exc_info:
            fetcher.check_feed_location(FEED_URL)

        assert exc_info.value.error_code == ErrorCode.FEED_BAD_STATUS

    @patch("requests.Session.get")
    def test_rejects_unreachable(self, mock_get, fetcher):
        mock_get.side_effect = requests.ConnectionError("Connection refused")

        with pytest.raises(FeedValidationError):
            fetcher.check_feed_location(FEED_URL)
