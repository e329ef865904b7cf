"""
Feed Owner Service
==================

Lets authorized owners set, change or remove their feed URL. A new URL is
checked against the network before it is stored and scheduled.
"""

from typing import List, Optional

from ..database.models import FeedJob, Owner
from ..ingestion.feed_fetcher import FeedFetcher
from ..scheduler.import_scheduler import ImportScheduler
from ..storage.owner_repository import OwnerRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import AuthorizationError, ValidationError, ErrorCode
from ..utils.validators import URLValidator
from .feed_settings_service import FeedSettingsService


class FeedOwnerService:
    """Feed URL management for owners."""

    def __init__(
        self,
        owners: OwnerRepository,
        fetcher: FeedFetcher,
        scheduler: ImportScheduler,
        feed_settings: FeedSettingsService,
        authorized_roles: List[str],
    ):
        self.owners = owners
        self.fetcher = fetcher
        self.scheduler = scheduler
        self.feed_settings = feed_settings
        self.authorized_roles = list(authorized_roles)
        self.logger = get_logger_for_component("feed_owner_service")

    def is_authorized(self, owner: Owner) -> bool:
        return owner.has_any_role(self.authorized_roles)

    def set_feed_url(self, owner_id: int, url: Optional[str]) -> Optional[FeedJob]:
        """Store an owner's feed URL and schedule its imports.

        Args:
            owner_id: Feed owner
            url: New feed URL; empty removes the feed

        Returns:
            The scheduled job, or None when nothing was scheduled

        Raises:
            ValidationError: Unknown owner or malformed URL
            AuthorizationError: Owner lacks an authorized role
            FeedValidationError: URL does not answer as an RSS feed
        """
        owner = self._require_owner(owner_id)

        normalized = (url or "").strip().lower()

        if not normalized:
            if owner.feed_url:
                self.owners.set_feed_url(owner_id, None)
                self.scheduler.clear(owner_id)
                self.logger.info(f"Removed feed of owner {owner_id}")
            return None

        if normalized == (owner.feed_url or ""):
            self.logger.debug(f"Feed URL of owner {owner_id} unchanged")
            return None

        feed_url = URLValidator.validate_feed_url(normalized)
        self.fetcher.check_feed_location(feed_url)

        self.owners.set_feed_url(owner_id, feed_url)
        job = self.scheduler.register(
            owner_id,
            feed_url,
            self.feed_settings.get().interval_seconds,
        )
        self.logger.info(
            f"Owner {owner_id} feed set to {feed_url}",
            extra={"owner_id": owner_id, "feed_url": feed_url},
        )
        return job

    def _require_owner(self, owner_id: int) -> Owner:
        owner = self.owners.get_owner(owner_id)
        if owner is None:
            raise ValidationError(
                f"Unknown owner {owner_id}",
                field_name="owner_id",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
            )

        if not self.is_authorized(owner):
            raise AuthorizationError(
                f"Owner {owner_id} may not import a feed",
                actor_id=owner_id,
                user_message="Your role does not allow importing a feed.",
            )
        return owner
