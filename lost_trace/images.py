"""Local blob store for report photos.

Photos are written under a root directory with a random name. The returned
``public_id`` is what a report keeps so the photo can be released when the
report is deleted.
"""

from __future__ import annotations

import uuid
from pathlib import Path

from lost_trace.errors import ValidationError
from lost_trace.logging_config import get_logger
from lost_trace.models import StoredImage

logger = get_logger(__name__)

ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png")


class LocalImageStore:
    """Store report photos as files in a directory.

    Attributes:
        root: Directory holding the photos

    Example:
        >>> images = LocalImageStore("data/images")
        >>> stored = images.save(photo_bytes, "upload.jpg")
        >>> images.delete(stored.public_id)
        True
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, public_id: str) -> Path:
        path = (self.root / public_id).resolve()
        if path.parent != self.root.resolve():
            raise ValidationError(f"Invalid image id '{public_id}'")
        return path

    def save(self, image_bytes: bytes, filename: str) -> StoredImage:
        """Write a photo and return its locator.

        Raises:
            ValidationError: If the file is empty or not a jpg/jpeg/png.
        """
        suffix = Path(filename).suffix.lower()
        if suffix not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                f"Unsupported image type '{suffix or filename}', "
                f"allowed: {', '.join(ALLOWED_EXTENSIONS)}"
            )
        if not image_bytes:
            raise ValidationError("Image upload is empty")

        public_id = f"{uuid.uuid4().hex}{suffix}"
        path = self._path_for(public_id)
        path.write_bytes(image_bytes)

        logger.debug(f"Saved image {public_id} ({len(image_bytes)} bytes)")
        return StoredImage(url=path.as_uri(), public_id=public_id)

    def delete(self, public_id: str) -> bool:
        """Remove a photo. Returns False if it was already gone."""
        path = self._path_for(public_id)
        if not path.exists():
            logger.warning(f"Image '{public_id}' not found")
            return False

        path.unlink()
        logger.info(f"Deleted image {public_id}")
        return True

    def __repr__(self) -> str:
        return f"LocalImageStore(root={self.root})"
