"""
Feed Parser
===========

Parses raw RSS documents with feedparser into RawFeedEntry records.

The importer reads the item fields below; everything else in the
document is ignored:
- title, description, link, pubDate, guid
- content:encoded (http://purl.org/rss/1.0/modules/content/)
- featured_image (non-namespaced extension element carrying an image URL)
"""

import calendar
import xml.sax
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

import feedparser

from ..database.models import RawFeedEntry
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ParseError


IMAGE_MIME_PREFIX = "image/"


@dataclass
class ParsedFeed:
    """A parsed feed document."""

    version: str = ""
    title: str = ""
    entries: List[RawFeedEntry] = field(default_factory=list)


class FeedParser:
    """Turns raw feed bytes into entries in document order."""

    def __init__(self):
        self.logger = get_logger_for_component("feed_parser")

    def parse(self, raw: bytes, feed_url: Optional[str] = None) -> ParsedFeed:
        """Parse a feed document.

        Args:
            raw: Raw document bytes
            feed_url: Source URL, used for error context only

        Returns:
            Parsed feed with entries in document order

        Raises:
            ParseError: If the document is empty or not well-formed XML
        """
        if not raw or not raw.strip():
            raise ParseError("Feed document is empty", feed_url=feed_url)

        # Markup is sanitized later against the body allow-list
        parsed = feedparser.parse(raw, sanitize_html=False, resolve_relative_uris=False)

        if parsed.get("bozo"):
            exc = parsed.get("bozo_exception")
            if isinstance(exc, (xml.sax.SAXException, feedparser.UndeclaredNamespace)):
                raise ParseError(
                    f"Feed document is not well-formed: {exc}", feed_url=feed_url
                )
            self.logger.warning(f"Feed parsing warning for {feed_url}: {exc}")

        version = parsed.get("version", "") or ""
        if version and not version.startswith("rss"):
            self.logger.warning(f"Feed {feed_url} is {version}, not RSS; importing items anyway")

        entries = [self._to_raw_entry(entry) for entry in parsed.get("entries", [])]

        self.logger.debug(f"Parsed {len(entries)} entries from {feed_url}")
        return ParsedFeed(
            version=version,
            title=parsed.get("feed", {}).get("title", ""),
            entries=entries,
        )

    def _to_raw_entry(self, entry) -> RawFeedEntry:
        encoded_content = self._encoded_content(entry)
        return RawFeedEntry(
            title=entry.get("title", "") or "",
            description=self._description(entry, encoded_content),
            encoded_content=encoded_content,
            link=entry.get("link", "") or "",
            pub_date=entry.get("published", "") or "",
            guid=entry.get("id", "") or "",
            featured_image=self._featured_image(entry),
            published=self._published(entry),
            categories=[
                tag.get("term", "") for tag in entry.get("tags", []) if tag.get("term")
            ],
        )

    def _encoded_content(self, entry) -> str:
        """Value of content:encoded, if the item carried one."""
        for content in entry.get("content", []):
            value = content.get("value", "")
            if value:
                return value
        return ""

    def _description(self, entry, encoded_content: str) -> str:
        """Value of the item's own description element.

        feedparser copies content:encoded into the summary when no description
        precedes it, and files a later description as a further content value.
        """
        summary = entry.get("summary", "") or ""
        if not encoded_content or summary != encoded_content:
            return summary

        for content in entry.get("content", [])[1:]:
            value = content.get("value", "")
            if value and value != encoded_content:
                return value
        return ""

    def _featured_image(self, entry) -> Optional[str]:
        image = entry.get("featured_image")
        if isinstance(image, str) and image.strip():
            return image.strip()

        # Fall back to the first image enclosure
        for enclosure in entry.get("enclosures", []):
            if enclosure.get("type", "").startswith(IMAGE_MIME_PREFIX) and enclosure.get("href"):
                return enclosure["href"]
        return None

    def _published(self, entry) -> Optional[datetime]:
        parsed = entry.get("published_parsed")
        if not parsed:
            return None
        try:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
        except (OverflowError, ValueError, TypeError):
            return None
