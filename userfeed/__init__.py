"""
UserFeed - Scheduled Per-User RSS Importer
==========================================

Periodically imports each site user's RSS feed into the content store,
exactly once per entry, with self-healing rescheduling on failure.

Main Components:
- Database: SQLite content store with connection pooling and schema management
- Configuration: Environment variables with Pydantic validation
- Ingestion: HTTP fetching, RSS parsing and HTML cleaning
- Processing: Entry normalization, dedup gate, media resolution, import runs
- Scheduler: One recurring APScheduler job per feed owner
"""

__version__ = "0.1.0"
__author__ = "UserFeed Development Team"
__description__ = "Scheduled per-user RSS feed importer"

from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import UserFeedError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "UserFeedError",
]
