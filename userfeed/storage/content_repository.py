"""
Content Repository
==================

Content store the importer publishes into: existence lookup, insertion,
taxonomy assignment and primary visual (featured image) linkage.
"""

import sqlite3
from typing import Iterable, List, Optional, Dict, Any

from ..database.connection import DatabaseConnection
from ..database.models import ContentDraft
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, InsertError, ErrorCode


class ContentRepository:
    """Repository for imported content records."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("content_repository")

    def exists(self, title: str, publish_at: Optional[str]) -> bool:
        """Check whether a record with the same title and publish date exists.

        Args:
            title: Plain-text title
            publish_at: Site-local publish date string, or None when the entry had none

        Returns:
            True if a matching record exists
        """
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT 1 FROM posts WHERE title = ? AND publish_at IS ? LIMIT 1",
                    (title, publish_at),
                ).fetchone()
                return row is not None

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Existence lookup failed: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def insert(self, draft: ContentDraft) -> int:
        """Insert a draft as a new content record.

        Returns:
            New record id

        Raises:
            InsertError: If the store rejects the record
        """
        if not draft.title or not draft.body:
            raise InsertError(
                "Content records require a title and a body",
                title=draft.title,
                error_code=ErrorCode.CONTENT_INVALID,
            )

        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO posts (
                        title, excerpt, body, author_id, publish_at, guid, status
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        draft.title,
                        draft.excerpt,
                        draft.body,
                        draft.author_id,
                        draft.publish_at_local,
                        draft.external_guid,
                        draft.status.value,
                    ),
                )
                post_id = cursor.lastrowid

            self.logger.debug(f"Inserted post {post_id}: {draft.title}")
            return post_id

        except sqlite3.Error as e:
            raise InsertError(f"Failed to insert post: {e}", title=draft.title) from e

    def set_tags(self, post_id: int, tags: Iterable[str]) -> None:
        """Assign taxonomy terms to a record, keeping any it already has."""
        rows = [(post_id, tag) for tag in dict.fromkeys(t.strip() for t in tags) if tag]
        if not rows:
            return

        try:
            with self.db.transaction() as conn:
                conn.executemany(
                    "INSERT OR IGNORE INTO post_tags (post_id, tag) VALUES (?, ?)",
                    rows,
                )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to tag post {post_id}: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION,
            ) from e

    def set_primary_visual(self, post_id: int, attachment_id: int) -> bool:
        """Set a record's featured image.

        Returns:
            False if either the record or the attachment does not exist
        """
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    """
                    UPDATE posts SET thumbnail_id = ?
                    WHERE id = ? AND EXISTS (SELECT 1 FROM attachments WHERE id = ?)
                """,
                    (attachment_id, post_id, attachment_id),
                )
                updated = cursor.rowcount > 0

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to set featured image on post {post_id}: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION,
            ) from e

        if not updated:
            self.logger.warning(
                f"Could not set attachment {attachment_id} as featured image of post {post_id}"
            )
        return updated

    def get_post(self, post_id: int) -> Optional[Dict[str, Any]]:
        """Get a record with its tags, or None."""
        with self.db.get_connection() as conn:
            row = conn.execute("SELECT * FROM posts WHERE id = ?", (post_id,)).fetchone()
            if not row:
                return None

            post = dict(row)
            post["tags"] = [
                r["tag"]
                for r in conn.execute(
                    "SELECT tag FROM post_tags WHERE post_id = ? ORDER BY rowid", (post_id,)
                ).fetchall()
            ]
            return post

    def get_posts_for_author(self, author_id: int) -> List[Dict[str, Any]]:
        """Get all records of one author in insertion order."""
        rows = self.db.execute_query(
            "SELECT * FROM posts WHERE author_id = ? ORDER BY id", (author_id,)
        )
        return [dict(row) for row in rows]

    def count(self) -> int:
        row = self.db.execute_one("SELECT COUNT(*) FROM posts")
        return row[0] if row else 0
