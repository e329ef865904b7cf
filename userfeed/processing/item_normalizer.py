"""
Item Normalizer
===============

Deterministic mapping of one raw feed entry onto a ContentDraft.
"""

import html
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from ..database.models import ContentDraft, ImportConfig, PostStatus, RawFeedEntry
from ..ingestion.content_cleaner import ContentCleaner


READ_MORE_TEMPLATE = '<br/><a href="{href}" target="_blank">{text}</a>'

# (default_link_html, entry) -> link_html
ReadMoreHook = Callable[[str, RawFeedEntry], str]


class ItemNormalizer:
    """Builds content drafts from raw entries using an immutable ImportConfig."""

    def __init__(
        self,
        config: ImportConfig,
        cleaner: Optional[ContentCleaner] = None,
        read_more_link: Optional[ReadMoreHook] = None,
    ):
        """Initialize item normalizer.

        Args:
            config: Per-run import configuration
            cleaner: HTML cleaner (a default one is created if omitted)
            read_more_link: Optional hook that may replace the fallback body link
        """
        self.config = config
        self.cleaner = cleaner or ContentCleaner()
        self.read_more_link = read_more_link
        self._tz = ZoneInfo(config.timezone)

    def normalize(self, entry: RawFeedEntry, owner_id: int) -> ContentDraft:
        title = self.title(entry)
        excerpt = self.excerpt(entry)

        return ContentDraft(
            title=title,
            excerpt=excerpt,
            body=self.body(entry, excerpt),
            author_id=owner_id,
            publish_at=self.publish_at(entry),
            external_guid=self.cleaner.sanitize_text_field(entry.guid),
            status=PostStatus.coerce(self.config.post_status),
        )

    def title(self, entry: RawFeedEntry) -> str:
        return self.cleaner.strip_all_tags(entry.title)

    def excerpt(self, entry: RawFeedEntry) -> str:
        return self.cleaner.strip_all_tags(self.cleaner.decode_entities(entry.description))

    def body(self, entry: RawFeedEntry, excerpt: str) -> str:
        """Sanitized encoded content, or the excerpt followed by a link to the entry."""
        if entry.encoded_content:
            content = self.cleaner.decode_entities(entry.encoded_content)
            return self.cleaner.sanitize_post_html(content)

        default_link = READ_MORE_TEMPLATE.format(
            href=html.escape(entry.link, quote=True),
            text=html.escape(self.config.read_more_text, quote=False),
        )
        link = default_link
        if self.read_more_link is not None:
            link = self.read_more_link(default_link, entry)

        return self.cleaner.autop(excerpt) + link

    def publish_at(self, entry: RawFeedEntry):
        """Entry publish time in the site timezone, or None if the entry had no usable date."""
        if entry.published is None:
            return None
        return entry.published.astimezone(self._tz)
