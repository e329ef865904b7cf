"""
UserFeed Processing Module
==========================

Import pipeline components turning feed entries into content records.
"""

from .item_normalizer import ItemNormalizer
from .dedup_guard import DedupGuard
from .media_resolver import MediaResolver
from .import_run import ImportRun

__all__ = [
    "ItemNormalizer",
    "DedupGuard",
    "MediaResolver",
    "ImportRun",
]
