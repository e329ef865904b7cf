"""
Service Lifecycle
=================

Wires repositories, pipeline, scheduler and services together and arms or
disarms every owner's import job when the service starts or stops.
"""

from datetime import timedelta
from typing import List, Optional

import requests

from ..config.settings import UserFeedSettings
from ..database.connection import DatabaseConnection
from ..database.models import FeedJob, ImportResult
from ..database.schema import DatabaseSchema
from ..ingestion.content_cleaner import ContentCleaner
from ..ingestion.feed_fetcher import FeedFetcher
from ..ingestion.feed_parser import FeedParser
from ..processing.import_run import ImportRun, TagMapper
from ..processing.item_normalizer import ReadMoreHook
from ..processing.media_resolver import MediaResolver
from ..scheduler.import_scheduler import ImportScheduler
from ..scheduler.job_registry import APSchedulerJobRegistry, JobRegistry
from ..storage import (
    AttachmentRepository,
    ContentRepository,
    OptionsRepository,
    OwnerRepository,
)
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ValidationError
from .admin_service import AdminService
from .feed_owner_service import FeedOwnerService
from .feed_settings_service import FeedSettingsService


class UserFeedApp:
    """Fully wired importer."""

    def __init__(
        self,
        settings: UserFeedSettings,
        db: Optional[DatabaseConnection] = None,
        registry: Optional[JobRegistry] = None,
        session: Optional[requests.Session] = None,
        tag_mapper: Optional[TagMapper] = None,
        read_more_link: Optional[ReadMoreHook] = None,
    ):
        """Build the importer from settings.

        Args:
            settings: Application settings
            db: Database connection (created from settings if omitted)
            registry: Job substrate (an APScheduler registry if omitted)
            session: HTTP session shared by feed and media downloads
            tag_mapper: Optional hook adjusting the tags of imported records
            read_more_link: Optional hook adjusting the fallback body link
        """
        self.settings = settings
        self.logger = get_logger_for_component("lifecycle")

        if db is None:
            DatabaseSchema(settings.database.path).create_tables()
            db = DatabaseConnection(settings.database.path, pool_size=settings.database.pool_size)
        self.db = db

        user_agent = f"{settings.site.name}/{settings.version}"
        session = session or requests.Session()

        self.content = ContentRepository(db)
        self.attachments = AttachmentRepository(
            db, settings.media.upload_dir, session=session, user_agent=user_agent
        )
        self.options = OptionsRepository(db)
        self.owners = OwnerRepository(db)

        self.fetcher = FeedFetcher(
            timeout=settings.limits.request_timeout,
            max_bytes=settings.limits.max_feed_bytes,
            session=session,
            user_agent=user_agent,
        )

        self.registry = registry or APSchedulerJobRegistry(
            misfire_grace_seconds=settings.scheduler.misfire_grace_seconds
        )
        self.feed_settings = FeedSettingsService(settings, self.options, self.owners)

        self.import_run = ImportRun(
            fetcher=self.fetcher,
            parser=FeedParser(),
            content=self.content,
            media=MediaResolver(
                self.attachments, self.content, timeout=settings.limits.media_timeout
            ),
            options=self.options,
            config_provider=self.feed_settings.import_config,
            tag_mapper=tag_mapper,
            read_more_link=read_more_link,
            cleaner=ContentCleaner(),
        )
        self.scheduler = ImportScheduler(
            self.registry,
            self.import_run,
            grace_delay_seconds=settings.scheduler.grace_delay_seconds,
            recovery_delay_seconds=settings.scheduler.recovery_delay_minutes * 60,
        )
        self.feed_settings.scheduler = self.scheduler

        self.feed_owners = FeedOwnerService(
            self.owners,
            self.fetcher,
            self.scheduler,
            self.feed_settings,
            settings.security.authorized_roles,
        )
        self.admin = AdminService(
            self.owners,
            self.scheduler,
            self.options,
            self.feed_settings,
            secret_key=settings.security.secret_key,
            admin_roles=settings.security.admin_roles,
            authorized_roles=settings.security.authorized_roles,
            site_timezone=settings.site.timezone,
        )

    def activate(self, start_registry: bool = True) -> List[FeedJob]:
        """Clear every job and arm each owner's feed after the activation delay."""
        self.registry.clear_all()

        delay = timedelta(minutes=self.settings.scheduler.activation_delay_minutes)
        interval = self.feed_settings.get().interval_seconds

        jobs = [
            self.scheduler.register(owner.id, owner.feed_url, interval, delay=delay)
            for owner in self.owners.get_owners_with_feeds(self.settings.security.authorized_roles)
        ]

        if start_registry:
            self.registry.start()

        self.logger.info(f"Activated {len(jobs)} feed import jobs")
        return jobs

    def deactivate(self, wait: bool = True) -> None:
        """Clear every job and stop the job substrate."""
        self.registry.clear_all()
        self.registry.shutdown(wait=wait)
        self.logger.info("Feed imports deactivated")

    def import_now(self, owner_id: int) -> ImportResult:
        """Run one import for an owner synchronously, outside the scheduler."""
        owner = self.owners.get_owner(owner_id)
        if owner is None or not owner.feed_url:
            raise ValidationError(f"Owner {owner_id} has no feed", field_name="owner_id")
        return self.import_run.execute(owner.feed_url, owner_id)

    def close(self) -> None:
        self.db.close_all_connections()
