"""
Media Resolver
==============

Downloads a feed-provided image and sets it as a content record's featured
image.
"""

import re
from pathlib import PurePosixPath
from typing import Optional

from ..database.models import AttachmentOutcome, AttachmentStatus
from ..storage.attachment_repository import AttachmentRepository
from ..storage.content_repository import ContentRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import (
    AttachmentDownloadError,
    AttachmentRegistrationError,
    DatabaseError,
)
from ..utils.validators import is_valid_url


IMAGE_FILE_PATTERN = re.compile(r"[^?]+\.(jpeg|jpe|jpg|gif|png)", re.IGNORECASE)


def image_file_name(image_url: str) -> Optional[str]:
    """File name for an image URL, ignoring the query string.

    Returns None when the URL path has no recognised image extension.
    """
    match = IMAGE_FILE_PATTERN.match(image_url)
    if not match:
        return None
    return PurePosixPath(match.group(0)).name or None


class MediaResolver:
    """Turns an image URL into the featured image of a content record."""

    def __init__(
        self,
        attachments: AttachmentRepository,
        content: ContentRepository,
        timeout: int = 30,
    ):
        self.attachments = attachments
        self.content = content
        self.timeout = timeout
        self.logger = get_logger_for_component("media_resolver")

    def resolve(
        self,
        image_url: Optional[str],
        content_id: Optional[int],
        description: str,
    ) -> AttachmentOutcome:
        """Download, register and attach an image.

        Args:
            image_url: Candidate image URL from the feed entry
            content_id: Content record to attach to
            description: Attachment description (the content title)

        Returns:
            Outcome; errors are returned, not raised
        """
        if not content_id or not is_valid_url(image_url):
            return AttachmentOutcome.not_attempted()

        try:
            local_path = self.attachments.download(image_url, self.timeout)
        except AttachmentDownloadError as e:
            self.logger.warning(f"Featured image download failed for post {content_id}: {e}")
            return AttachmentOutcome(status=AttachmentStatus.FAILED, error=e)

        try:
            attachment_id = self.attachments.register(
                local_path,
                parent_id=content_id,
                description=description,
                file_name=image_file_name(image_url),
            )
        except AttachmentRegistrationError as e:
            self.attachments.delete_local(local_path)
            self.logger.warning(f"Featured image registration failed for post {content_id}: {e}")
            return AttachmentOutcome(status=AttachmentStatus.FAILED, error=e)

        try:
            visual_set = self.content.set_primary_visual(content_id, attachment_id)
        except DatabaseError as e:
            self.logger.warning(f"Featured image could not be set on post {content_id}: {e}")
            return AttachmentOutcome(status=AttachmentStatus.FAILED, attachment_id=attachment_id, error=e)

        if not visual_set:
            return AttachmentOutcome(
                status=AttachmentStatus.FAILED,
                attachment_id=attachment_id,
                error=AttachmentRegistrationError(
                    f"Attachment {attachment_id} could not be set on post {content_id}",
                    image_url=image_url,
                ),
            )

        self.logger.info(f"Attached featured image {attachment_id} to post {content_id}")
        return AttachmentOutcome(status=AttachmentStatus.ATTACHED, attachment_id=attachment_id)
