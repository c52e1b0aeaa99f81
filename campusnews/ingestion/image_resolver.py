"""
Image Resolver
==============

Picks the image of a feed item and registers it as a StoredFile without
downloading anything. The download worker picks registered files up later.
"""

import hashlib
import re
from typing import Optional

from campusnews.database.models import StoredFile
from campusnews.ingestion.feed_manager import Enclosure, FeedItem
from campusnews.storage.file_repository import FileRepository
from campusnews.utils.logging import get_logger_for_component
from campusnews.utils.exceptions import (
    DatabaseError,
    DuplicateRecordError,
    ImageRegistrationError,
)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png")
IMAGE_CONTENT_TYPE_PATTERN = re.compile(r"image/[a-z.]+")


def is_image_enclosure(enclosure: Enclosure) -> bool:
    return enclosure.url.endswith(IMAGE_SUFFIXES) or bool(
        IMAGE_CONTENT_TYPE_PATTERN.search(enclosure.type or "")
    )


def pick_image(item: FeedItem) -> Optional[Enclosure]:
    """First enclosure that looks like an image, in feed order."""
    for enclosure in item.enclosures:
        if is_image_enclosure(enclosure):
            return enclosure
    return None


def file_name_for_url(url: str) -> str:
    """Deterministic storage name for a media URL.

    Always suffixed ``.jpg``; the download worker stores JPEG regardless of
    the source format.
    """
    return f"{hashlib.md5(url.encode('utf-8')).hexdigest()}.jpg"


class ImageResolver:
    """Registers media URLs as deduplicated StoredFile rows."""

    def __init__(self, file_repository: FileRepository, image_directory: str):
        """
        Args:
            file_repository: Repository for the files table
            image_directory: Storage path recorded on new files
        """
        self.files = file_repository
        self.image_directory = image_directory
        self.logger = get_logger_for_component("image_resolver")

    def register_file(self, url: str) -> StoredFile:
        """Return the StoredFile for ``url``, creating it on first sight.

        Raises:
            ImageRegistrationError: If the lookup or the insert fails
        """
        name = file_name_for_url(url)

        try:
            # Path is not part of the lookup so a URL is only registered once
            existing = self.files.get_by_name(name)
            if existing is not None:
                return existing

            try:
                return self.files.create_file(
                    StoredFile(
                        name=name,
                        path=self.image_directory,
                        url=url,
                        downloaded=False,
                    )
                )
            except DuplicateRecordError:
                self.logger.warning(
                    f"File {name} was registered concurrently, reusing it",
                    extra={"url": url},
                )
                winner = self.files.get_by_name(name)
                if winner is None:
                    raise
                return winner

        except DatabaseError as e:
            raise ImageRegistrationError(
                f"Failed to register image {url}: {e}", url=url
            ) from e
