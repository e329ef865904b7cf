"""
UserFeed Database Schema
========================

SQLite schema for the content store the importer publishes into:
- owners: site users who may own a feed
- posts: imported content records
- post_tags: taxonomy terms assigned to posts
- attachments: registered media files
- options: key/value settings and run-outcome records
"""

import sqlite3
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


EXPECTED_TABLES = {"owners", "posts", "post_tags", "attachments", "options"}


class DatabaseSchema:
    """Database schema manager for the UserFeed SQLite database."""

    def __init__(self, db_path: str = "data/userfeed.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("PRAGMA foreign_keys = ON")

            self._create_owners_table(conn)
            self._create_posts_table(conn)
            self._create_post_tags_table(conn)
            self._create_attachments_table(conn)
            self._create_options_table(conn)

            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")

    def _create_owners_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS owners (
                id INTEGER PRIMARY KEY,
                display_name TEXT NOT NULL,
                roles TEXT NOT NULL DEFAULT '[]',  -- JSON array of role names
                feed_url TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_posts_table(self, conn: sqlite3.Connection) -> None:
        """Create posts table for imported content records."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS posts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                excerpt TEXT NOT NULL DEFAULT '',
                body TEXT NOT NULL,
                author_id INTEGER NOT NULL,
                publish_at TEXT,  -- site-local 'YYYY-MM-DD HH:MM:SS'
                guid TEXT NOT NULL DEFAULT '',
                status TEXT NOT NULL DEFAULT 'draft'
                    CHECK (status IN ('draft', 'pending', 'private', 'publish')),
                thumbnail_id INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (author_id) REFERENCES owners(id) ON DELETE CASCADE
            )
        """
        )

    def _create_post_tags_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS post_tags (
                post_id INTEGER NOT NULL,
                tag TEXT NOT NULL,
                FOREIGN KEY (post_id) REFERENCES posts(id) ON DELETE CASCADE,
                UNIQUE(post_id, tag)
            )
        """
        )

    def _create_attachments_table(self, conn: sqlite3.Connection) -> None:
        """Create attachments table for registered media files."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS attachments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                parent_id INTEGER,
                file_path TEXT NOT NULL,
                file_name TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (parent_id) REFERENCES posts(id) ON DELETE SET NULL
            )
        """
        )

    def _create_options_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS options (
                name TEXT PRIMARY KEY,
                value TEXT NOT NULL,  -- JSON encoded
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        indexes = [
            # Dedup lookup
            "CREATE INDEX IF NOT EXISTS idx_posts_title_date ON posts(title, publish_at)",
            "CREATE INDEX IF NOT EXISTS idx_posts_author ON posts(author_id)",
            "CREATE INDEX IF NOT EXISTS idx_attachments_parent ON attachments(parent_id)",
            "CREATE INDEX IF NOT EXISTS idx_owners_feed ON owners(feed_url)",
        ]

        for index_sql in indexes:
            conn.execute(index_sql)

    def drop_tables(self) -> None:
        """Drop all tables (for testing/reset purposes)."""
        with sqlite3.connect(self.db_path) as conn:
            for table in ("post_tags", "attachments", "posts", "owners", "options"):
                conn.execute(f"DROP TABLE IF EXISTS {table}")

            conn.commit()
            logger.info("All database tables dropped")

    def verify_schema(self) -> bool:
        """Verify database schema is correctly created."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name NOT LIKE 'sqlite_%'
                """
                )
                tables = {row[0] for row in cursor.fetchall()}

                missing = EXPECTED_TABLES - tables
                if missing:
                    logger.error(f"Missing tables: {sorted(missing)}")
                    return False

                conn.execute("PRAGMA foreign_key_check")

                logger.info("Database schema verification passed")
                return True

        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False


def create_tables(db_path: str = "data/userfeed.db") -> None:
    """Convenience function to create database tables."""
    DatabaseSchema(db_path).create_tables()
