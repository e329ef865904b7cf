"""
Options Repository
==================

Key/value settings store with JSON encoded values. Listeners registered for a
key are called after a write that changes the stored value.
"""

import json
import sqlite3
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from ..database.connection import DatabaseConnection
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


OptionListener = Callable[[Any, Any], None]

FEED_SETTINGS_OPTION = "feed_import_settings"
LAST_RUN_OPTION = "feed_import_last_run"


class OptionsRepository:
    """Repository for named settings."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("options_repository")
        self._listeners: Dict[str, List[OptionListener]] = defaultdict(list)

    def add_listener(self, name: str, listener: OptionListener) -> None:
        """Call ``listener(old_value, new_value)`` whenever ``name`` changes."""
        self._listeners[name].append(listener)

    def get(self, name: str, default: Any = None) -> Any:
        try:
            row = self.db.execute_one("SELECT value FROM options WHERE name = ?", (name,))
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to read option {name}: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

        if row is None:
            return default
        return json.loads(row["value"])

    def set(self, name: str, value: Any) -> bool:
        """Store a value.

        Returns:
            True if the stored value changed
        """
        old_value = self.get(name)
        if old_value == value and old_value is not None:
            return False

        encoded = json.dumps(value, default=str)
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO options (name, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(name) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                """,
                    (name, encoded),
                )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to write option {name}: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION,
            ) from e

        self.logger.debug(f"Option {name} updated")
        for listener in self._listeners.get(name, []):
            listener(old_value, value)
        return True

    def delete(self, name: str) -> None:
        self.db.execute_update("DELETE FROM options WHERE name = ?", (name,))

    def get_last_run(self) -> Optional[str]:
        """ISO timestamp of the last successful import run, if any."""
        return self.get(LAST_RUN_OPTION)

    def set_last_run(self, completed_at: str) -> None:
        self.set(LAST_RUN_OPTION, completed_at)
