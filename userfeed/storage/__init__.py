"""
UserFeed Storage Layer
======================

Repository pattern implementations for data access abstraction.

This module provides:
- Content repository the importer publishes into
- Attachment repository for featured images
- Options repository for settings and run outcomes
- Owner repository for feed owners
"""

from .content_repository import ContentRepository
from .attachment_repository import AttachmentRepository
from .options_repository import OptionsRepository
from .owner_repository import OwnerRepository

__all__ = [
    "ContentRepository",
    "AttachmentRepository",
    "OptionsRepository",
    "OwnerRepository",
]
