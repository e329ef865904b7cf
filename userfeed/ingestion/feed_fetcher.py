"""
Feed Fetcher
============

Retrieves raw feed documents over HTTP with a bounded timeout and size.
"""

import time
from typing import Optional

import requests

from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FetchError, FeedValidationError, ErrorCode
from ..utils.validators import URLValidator


class FeedFetcher:
    """Synchronous HTTP fetcher for RSS documents.

    Failures are never retried in place; a failed fetch fails the import run and
    the scheduler re-arms the job after its recovery delay.
    """

    ACCEPT = "application/rss+xml, application/xml, text/xml;q=0.9, */*;q=0.1"
    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        timeout: int = 30,
        max_bytes: int = 10 * 1024 * 1024,
        session: Optional[requests.Session] = None,
        user_agent: str = "UserFeed/0.1",
    ):
        """Initialize feed fetcher.

        Args:
            timeout: Connect/read timeout in seconds
            max_bytes: Largest response body accepted
            session: HTTP session (one is created if omitted)
            user_agent: User-Agent header value
        """
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.logger = get_logger_for_component("feed_fetcher")

        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent, "Accept": self.ACCEPT})

    def fetch(self, feed_url: str) -> bytes:
        """Fetch the raw bytes of a feed.

        Args:
            feed_url: Feed URL

        Returns:
            Response body

        Raises:
            FetchError: On network error, timeout, non-200 status or oversized body
        """
        self.logger.debug(f"Fetching feed: {feed_url}")
        start_time = time.time()

        try:
            response = self.session.get(feed_url, timeout=self.timeout, stream=True)
        except requests.Timeout as e:
            raise FetchError(
                f"Timed out fetching {feed_url} after {self.timeout}s",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch {feed_url}: {e}", feed_url=feed_url) from e

        try:
            if response.status_code != 200:
                raise FetchError(
                    f"HTTP {response.status_code} fetching {feed_url}",
                    feed_url=feed_url,
                    error_code=ErrorCode.FEED_BAD_STATUS,
                    context={"status_code": response.status_code},
                )

            body = self._read_body(response, feed_url)
        finally:
            response.close()

        self.logger.debug(
            f"Feed fetched in {time.time() - start_time:.2f}s, size: {len(body)} bytes"
        )
        return body

    def _read_body(self, response: requests.Response, feed_url: str) -> bytes:
        chunks = []
        received = 0
        try:
            for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                received += len(chunk)
                if received > self.max_bytes:
                    raise FetchError(
                        f"Feed body exceeds {self.max_bytes} bytes",
                        feed_url=feed_url,
                        error_code=ErrorCode.FEED_NETWORK_ERROR,
                    )
                chunks.append(chunk)
        except requests.RequestException as e:
            raise FetchError(f"Failed reading {feed_url}: {e}", feed_url=feed_url) from e

        return b"".join(chunks)

    def check_feed_location(self, feed_url: str) -> None:
        """Confirm a URL answers 200 with an RSS/XML content type.

        Raises:
            FeedValidationError: If the URL is unreachable or not a feed
        """
        try:
            response = self.session.get(feed_url, timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise FeedValidationError(
                f"Could not reach {feed_url}: {e}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

        try:
            status_code = response.status_code
            content_type = response.headers.get("Content-Type", "")
        finally:
            response.close()

        if status_code != 200:
            raise FeedValidationError(
                f"HTTP {status_code} from {feed_url}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_BAD_STATUS,
                context={"status_code": status_code},
            )

        if not URLValidator.is_feed_content_type(content_type):
            raise FeedValidationError(
                f"Unexpected content type {content_type!r} from {feed_url}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_BAD_CONTENT_TYPE,
                context={"content_type": content_type},
            )

        self.logger.info(f"Validated feed location {feed_url}")
