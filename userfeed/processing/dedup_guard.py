"""
Dedup Guard
===========

Insertion gate for content drafts.
"""

from ..database.models import ContentDraft
from ..storage.content_repository import ContentRepository
from ..utils.logging import get_logger_for_component


class DedupGuard:
    """Decides whether a draft should become a content record.

    A draft is inserted only when it has a title, has a body, and no record
    with the same title and publish date exists yet.
    """

    def __init__(self, content_repository: ContentRepository):
        self.content = content_repository
        self.logger = get_logger_for_component("dedup_guard")

    def should_insert(self, draft: ContentDraft) -> bool:
        if not draft.title:
            self.logger.debug("Skipping entry without a title")
            return False

        if not draft.body:
            self.logger.debug(f"Skipping '{draft.title}': empty body")
            return False

        if self.content.exists(draft.title, draft.publish_at_local):
            self.logger.debug(f"Skipping '{draft.title}': already imported")
            return False

        return True
