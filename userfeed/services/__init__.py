"""
UserFeed Services
=================

Service layer shared by the CLI and the scheduled importer.
"""

from .feed_settings_service import FeedSettingsService
from .feed_owner_service import FeedOwnerService
from .admin_service import AdminService, StatusReport
from .lifecycle import UserFeedApp

__all__ = [
    "FeedSettingsService",
    "FeedOwnerService",
    "AdminService",
    "StatusReport",
    "UserFeedApp",
]
