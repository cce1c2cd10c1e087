"""Recipe image uploads to Firebase Storage."""

import hashlib
import logging

from aichef.services.recipe_store import store_errors
from aichef.utils.exceptions import InvalidRequest

logger = logging.getLogger(__name__)

IMAGE_TYPES = ("main", "supporting")

_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}


def recipe_image_path(image_bytes: bytes, user_id: str, recipe_id: str, image_type: str, mime_type: str) -> str:
    """Storage key for a recipe image. Same bytes, same key."""
    digest = hashlib.sha256(image_bytes).hexdigest()[:16]
    ext = _EXTENSIONS.get(mime_type, "jpg")
    return f"{user_id}/{recipe_id}/{image_type}_{digest}.{ext}"


class MediaStorage:
    """Stores raw bytes and hands back public URLs."""

    def __init__(self, bucket) -> None:
        self._bucket = bucket

    def upload(self, data: bytes, path: str, content_type: str = "image/jpeg") -> str:
        """
        Upload ``data`` under ``path`` and return its public URL.

        Re-uploading to the same path overwrites the object and returns the
        same URL.
        """
        with store_errors("upload"):
            blob = self._bucket.blob(path)
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
            url = blob.public_url

        logger.info("Uploaded media", extra={"path": path, "size": len(data)})
        return url

    def upload_recipe_image(
        self,
        image_bytes: bytes,
        user_id: str,
        recipe_id: str,
        image_type: str = "main",
        mime_type: str = "image/jpeg",
    ) -> str:
        if not user_id or not recipe_id:
            raise InvalidRequest("Missing user_id or recipe_id.")
        if image_type not in IMAGE_TYPES:
            raise InvalidRequest(f"image_type must be one of {', '.join(IMAGE_TYPES)}")

        path = recipe_image_path(image_bytes, user_id, recipe_id, image_type, mime_type)
        return self.upload(image_bytes, path, content_type=mime_type)
