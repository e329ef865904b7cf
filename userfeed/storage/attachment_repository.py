"""
Attachment Repository
=====================

Attachment store: downloads remote images to temporary files and registers
them as durable attachments under the media upload directory.
"""

import os
import shutil
import sqlite3
import tempfile
from pathlib import Path
from typing import Optional, Dict, Any

import requests

from ..database.connection import DatabaseConnection
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import (
    AttachmentDownloadError,
    AttachmentRegistrationError,
    ErrorCode,
)


class AttachmentRepository:
    """Repository for media attachments."""

    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        db_connection: DatabaseConnection,
        upload_dir: str,
        session: Optional[requests.Session] = None,
        user_agent: str = "UserFeed/0.1",
    ):
        """Initialize attachment repository.

        Args:
            db_connection: Database connection manager
            upload_dir: Directory registered files are moved into
            session: HTTP session used for downloads (one is created if omitted)
            user_agent: User-Agent header sent with downloads
        """
        self.db = db_connection
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.logger = get_logger_for_component("attachment_repository")

        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def download(self, url: str, timeout: int) -> str:
        """Download a remote file to a temporary local path.

        Args:
            url: Remote file URL
            timeout: Connect/read timeout in seconds

        Returns:
            Path of the temporary file

        Raises:
            AttachmentDownloadError: On network error, timeout or non-success status
        """
        fd, tmp_path = tempfile.mkstemp(prefix="userfeed-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                response = self.session.get(url, timeout=timeout, stream=True)
                try:
                    response.raise_for_status()
                    for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
                finally:
                    response.close()

        except requests.Timeout as e:
            self.delete_local(tmp_path)
            raise AttachmentDownloadError(
                f"Timed out downloading {url} after {timeout}s",
                image_url=url,
                error_code=ErrorCode.MEDIA_DOWNLOAD_TIMEOUT,
            ) from e
        except (requests.RequestException, OSError) as e:
            self.delete_local(tmp_path)
            raise AttachmentDownloadError(
                f"Failed to download {url}: {e}", image_url=url
            ) from e

        self.logger.debug(f"Downloaded {url} to {tmp_path}")
        return tmp_path

    def register(
        self,
        local_path: str,
        parent_id: int,
        description: str,
        file_name: Optional[str] = None,
    ) -> int:
        """Move a downloaded file into the upload directory and record it.

        Args:
            local_path: Temporary file produced by download()
            parent_id: Content record the attachment belongs to
            description: Human readable description (the content title)
            file_name: Name to store the file under

        Returns:
            New attachment id

        Raises:
            AttachmentRegistrationError: If the file is unusable or cannot be stored
        """
        if not file_name:
            raise AttachmentRegistrationError(
                "Attachment has no recognised image file name",
                context={"local_path": local_path},
            )

        source = Path(local_path)
        if not source.is_file() or source.stat().st_size == 0:
            raise AttachmentRegistrationError(
                f"Downloaded file is missing or empty: {local_path}",
                context={"local_path": local_path},
            )

        target = self._unique_target(file_name)
        try:
            shutil.move(str(source), target)
        except OSError as e:
            raise AttachmentRegistrationError(
                f"Failed to store {file_name}: {e}",
                context={"local_path": local_path},
            ) from e

        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO attachments (parent_id, file_path, file_name, description)
                    VALUES (?, ?, ?, ?)
                """,
                    (parent_id, str(target), target.name, description),
                )
                attachment_id = cursor.lastrowid

        except sqlite3.Error as e:
            target.unlink(missing_ok=True)
            raise AttachmentRegistrationError(
                f"Failed to record attachment {file_name}: {e}"
            ) from e

        self.logger.info(f"Registered attachment {attachment_id} for post {parent_id}")
        return attachment_id

    def delete_local(self, local_path: str) -> None:
        """Remove a temporary file, ignoring files that are already gone."""
        try:
            Path(local_path).unlink(missing_ok=True)
        except OSError as e:
            self.logger.warning(f"Could not remove temporary file {local_path}: {e}")

    def get_attachment(self, attachment_id: int) -> Optional[Dict[str, Any]]:
        row = self.db.execute_one("SELECT * FROM attachments WHERE id = ?", (attachment_id,))
        return dict(row) if row else None

    def add_library_file(
        self,
        file_path: str,
        description: str = "",
        attachment_id: Optional[int] = None,
    ) -> int:
        """Copy a local file into the library as an attachment with no parent.

        Used to provide the default featured image.
        """
        source = Path(file_path)
        if not source.is_file():
            raise AttachmentRegistrationError(f"No such file: {file_path}")

        target = self._unique_target(source.name)
        shutil.copyfile(source, target)

        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO attachments (id, parent_id, file_path, file_name, description)
                VALUES (?, NULL, ?, ?, ?)
            """,
                (attachment_id, str(target), target.name, description),
            )
            return cursor.lastrowid

    def _unique_target(self, file_name: str) -> Path:
        target = self.upload_dir / Path(file_name).name
        stem, suffix = target.stem, target.suffix
        counter = 1
        while target.exists():
            target = self.upload_dir / f"{stem}-{counter}{suffix}"
            counter += 1
        return target
