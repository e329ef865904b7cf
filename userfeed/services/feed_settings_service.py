"""
Feed Settings Service
=====================

Reads and updates the per-feed settings stored in the options store and
propagates interval changes to the scheduler.
"""

from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..config.settings import UserFeedSettings
from ..database.models import FeedSettings, ImportConfig
from ..scheduler.import_scheduler import ImportScheduler
from ..storage.options_repository import OptionsRepository, FEED_SETTINGS_OPTION
from ..storage.owner_repository import OwnerRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ValidationError, ErrorCode
from ..utils.validators import validate_interval_hours


class FeedSettingsService:
    """Per-feed settings backed by the options store."""

    def __init__(
        self,
        settings: UserFeedSettings,
        options: OptionsRepository,
        owners: OwnerRepository,
        scheduler: Optional[ImportScheduler] = None,
    ):
        self.settings = settings
        self.options = options
        self.owners = owners
        self.scheduler = scheduler
        self.logger = get_logger_for_component("feed_settings")

        self.options.add_listener(FEED_SETTINGS_OPTION, self._on_settings_written)

    def defaults(self) -> FeedSettings:
        return FeedSettings(
            interval_seconds=self.settings.scheduler.default_interval_hours * 3600,
            post_status=self.settings.importer.post_status,
            default_media_id=self.settings.importer.default_media_id,
        )

    def get(self) -> FeedSettings:
        """Stored settings merged over the static defaults."""
        stored = self.options.get(FEED_SETTINGS_OPTION) or {}
        merged = {**self.defaults().model_dump(mode="json"), **stored}
        try:
            return FeedSettings(**merged)
        except PydanticValidationError as e:
            self.logger.warning(f"Stored feed settings are invalid, using defaults: {e}")
            return self.defaults()

    def update(self, **changes: Any) -> FeedSettings:
        """Validate and persist changed settings.

        Args:
            **changes: FeedSettings fields; ``interval_hours`` is accepted in
                place of ``interval_seconds``

        Raises:
            ValidationError: If a value is out of range
        """
        if "interval_hours" in changes:
            changes["interval_seconds"] = validate_interval_hours(changes.pop("interval_hours")) * 3600

        current = self.get()
        try:
            updated = FeedSettings(**{**current.model_dump(), **changes})
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid feed settings: {e.errors()[0].get('msg', e)}",
                field_name=str(e.errors()[0].get("loc", ("settings",))[0]),
                error_code=ErrorCode.VALIDATION_OUT_OF_RANGE,
            ) from e

        self.options.set(FEED_SETTINGS_OPTION, updated.model_dump(mode="json"))
        return updated

    def import_config(self) -> ImportConfig:
        """Immutable snapshot threaded into one import run."""
        return ImportConfig.build(self.settings, self.get())

    def _on_settings_written(self, old: Optional[Dict[str, Any]], new: Dict[str, Any]) -> None:
        if self.scheduler is None:
            return

        old_interval = (old or {}).get("interval_seconds", self.defaults().interval_seconds)
        new_interval = new.get("interval_seconds", old_interval)
        if old_interval == new_interval:
            return

        for owner in self.owners.get_owners_with_feeds(self.settings.security.authorized_roles):
            self.scheduler.on_interval_changed(owner.id, new_interval)
