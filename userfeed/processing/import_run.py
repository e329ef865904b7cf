"""
Import Run
==========

One execution of the feed import pipeline for a single owner:
fetch, parse, then per entry normalize, gate, insert, tag and attach media.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional

from ..database.models import (
    AttachmentOutcome,
    ContentDraft,
    ImportConfig,
    ImportResult,
    RawFeedEntry,
)
from ..ingestion.content_cleaner import ContentCleaner
from ..ingestion.feed_fetcher import FeedFetcher
from ..ingestion.feed_parser import FeedParser
from ..storage.content_repository import ContentRepository
from ..storage.options_repository import OptionsRepository
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import DatabaseError, FeedError, InsertError
from .dedup_guard import DedupGuard
from .item_normalizer import ItemNormalizer, ReadMoreHook
from .media_resolver import MediaResolver


# (tags, content_id, entry) -> tags
TagMapper = Callable[[List[str], int, RawFeedEntry], List[str]]


class ImportRun:
    """Feed import pipeline.

    Fetch and parse failures fail the whole run. Insert, tagging and media
    failures only affect the entry they happened on.
    """

    def __init__(
        self,
        fetcher: FeedFetcher,
        parser: FeedParser,
        content: ContentRepository,
        media: MediaResolver,
        options: OptionsRepository,
        config_provider: Callable[[], ImportConfig],
        tag_mapper: Optional[TagMapper] = None,
        read_more_link: Optional[ReadMoreHook] = None,
        cleaner: Optional[ContentCleaner] = None,
    ):
        """Initialize import run.

        Args:
            fetcher: Feed fetcher
            parser: Feed parser
            content: Content store
            media: Featured image resolver
            options: Options store, receives the run outcome
            config_provider: Returns the configuration snapshot for a run
            tag_mapper: Optional hook adjusting the tags of each record
            read_more_link: Optional hook adjusting the fallback body link
            cleaner: HTML cleaner shared by normalizers
        """
        self.fetcher = fetcher
        self.parser = parser
        self.content = content
        self.media = media
        self.options = options
        self.config_provider = config_provider
        self.tag_mapper = tag_mapper
        self.read_more_link = read_more_link
        self.cleaner = cleaner or ContentCleaner()
        self.guard = DedupGuard(content)

    def execute(self, feed_url: str, owner_id: int) -> ImportResult:
        """Import one feed for one owner.

        Returns:
            Run result; ``succeeded`` is False only on fetch or parse failure
        """
        logger = get_logger_for_component("import_run", owner_id=owner_id, feed_url=feed_url)
        config = self.config_provider()

        with PerformanceLogger(logger, "feed import", warn_after=self.fetcher.timeout, owner_id=owner_id):
            try:
                raw = self.fetcher.fetch(feed_url)
                document = self.parser.parse(raw, feed_url)
            except FeedError as e:
                logger.error(f"Import aborted: {e}", extra={"error_code": e.error_code})
                return ImportResult(
                    feed_url=feed_url,
                    owner_id=owner_id,
                    succeeded=False,
                    error=str(e),
                )

            normalizer = ItemNormalizer(config, self.cleaner, self.read_more_link)
            inserted_ids = []

            for entry in document.entries:
                post_id = self._import_entry(entry, owner_id, normalizer, config, logger)
                if post_id is not None:
                    inserted_ids.append(post_id)

        result = ImportResult(
            feed_url=feed_url,
            owner_id=owner_id,
            inserted_ids=inserted_ids,
            succeeded=True,
            entries_seen=len(document.entries),
            completed_at=datetime.now(timezone.utc),
        )
        self.options.set_last_run(result.completed_at.isoformat())

        logger.info(
            f"Imported {result.inserted_count} of {result.entries_seen} entries from {feed_url}"
        )
        return result

    def _import_entry(
        self,
        entry: RawFeedEntry,
        owner_id: int,
        normalizer: ItemNormalizer,
        config: ImportConfig,
        logger,
    ) -> Optional[int]:
        draft = normalizer.normalize(entry, owner_id)

        try:
            if not self.guard.should_insert(draft):
                return None
            post_id = self.content.insert(draft)
        except (InsertError, DatabaseError) as e:
            logger.warning(f"Skipping entry '{draft.title}': {e}")
            return None

        self._assign_tags(post_id, entry, config, logger)
        self._assign_featured_image(post_id, entry, draft, config, logger)
        return post_id

    def _assign_tags(self, post_id: int, entry: RawFeedEntry, config: ImportConfig, logger) -> None:
        tags = list(config.default_tags)
        if self.tag_mapper is not None:
            tags = list(self.tag_mapper(tags, post_id, entry))

        try:
            self.content.set_tags(post_id, tags)
        except DatabaseError as e:
            logger.warning(f"Could not tag post {post_id}: {e}")

    def _assign_featured_image(
        self,
        post_id: int,
        entry: RawFeedEntry,
        draft: ContentDraft,
        config: ImportConfig,
        logger,
    ) -> AttachmentOutcome:
        outcome = self.media.resolve(entry.featured_image, post_id, draft.title)

        if outcome.attached or not config.default_media_id:
            return outcome

        try:
            self.content.set_primary_visual(post_id, config.default_media_id)
        except DatabaseError as e:
            logger.warning(f"Could not set default featured image on post {post_id}: {e}")
        return outcome
