"""
Owner Repository
================

Per-owner profile data: display name, roles and the owner's feed URL.
"""

import json
import sqlite3
from typing import Iterable, List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import Owner
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


class OwnerRepository:
    """Repository for feed owners."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("owner_repository")

    def save_owner(self, owner: Owner) -> None:
        """Create or update an owner."""
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO owners (id, display_name, roles, feed_url)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        display_name = excluded.display_name,
                        roles = excluded.roles,
                        feed_url = excluded.feed_url
                """,
                    (owner.id, owner.display_name, json.dumps(owner.roles), owner.feed_url),
                )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to save owner {owner.id}: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION,
            ) from e

        self.logger.debug(f"Saved owner {owner.id}")

    def get_owner(self, owner_id: int) -> Optional[Owner]:
        row = self.db.execute_one("SELECT * FROM owners WHERE id = ?", (owner_id,))
        return self._row_to_owner(row) if row else None

    def set_feed_url(self, owner_id: int, feed_url: Optional[str]) -> None:
        updated = self.db.execute_update(
            "UPDATE owners SET feed_url = ? WHERE id = ?", (feed_url or None, owner_id)
        )
        if not updated:
            raise DatabaseError(
                f"Owner {owner_id} does not exist", error_code=ErrorCode.DATABASE_ERROR
            )

    def get_owners_with_feeds(self, roles: Optional[Iterable[str]] = None) -> List[Owner]:
        """Get owners that have a feed URL, optionally limited to some roles."""
        rows = self.db.execute_query(
            "SELECT * FROM owners WHERE feed_url IS NOT NULL AND feed_url != '' ORDER BY id"
        )
        owners = [self._row_to_owner(row) for row in rows]

        if roles is not None:
            owners = [owner for owner in owners if owner.has_any_role(roles)]
        return owners

    def _row_to_owner(self, row: sqlite3.Row) -> Owner:
        return Owner(
            id=row["id"],
            display_name=row["display_name"],
            roles=json.loads(row["roles"] or "[]"),
            feed_url=row["feed_url"],
        )
