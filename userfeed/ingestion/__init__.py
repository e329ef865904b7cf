"""
UserFeed Ingestion Module
=========================

Feed retrieval and content processing components.

This module handles:
- HTTP retrieval of feed documents
- RSS parsing into raw entries
- HTML cleaning of entry fields
"""
