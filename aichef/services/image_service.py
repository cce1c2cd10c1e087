"""Image decoding, validation and downsizing for vision calls."""

import base64
import binascii
import io
import logging
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from aichef.services.prompt_service import strip_data_url
from aichef.utils.exceptions import ImageProcessingError

logger = logging.getLogger(__name__)

SUPPORTED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")

# Images under this size go to the model untouched.
_RESIZE_MIN_BYTES = 350_000


class ImageService:
    """Service for processing images sent by callers."""

    def __init__(self, max_bytes: int = 10 * 1024 * 1024, max_dim: int = 1400, jpeg_quality: int = 78) -> None:
        self.max_bytes = max_bytes
        self.max_dim = max_dim
        self.jpeg_quality = jpeg_quality

    @staticmethod
    def decode_base64_image(image: str) -> bytes:
        """
        Decode a base64 image, with or without a data URL prefix.

        Raises:
            ImageProcessingError: If the payload is empty or not base64.
        """
        payload = strip_data_url(image or "")
        if not payload:
            raise ImageProcessingError("Image data is required.")
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageProcessingError("Image data is not valid base64.") from e

    def validate_image(self, file_content: bytes) -> Tuple[bytes, str]:
        """
        Validate image bytes.

        Returns:
            Tuple of (image_bytes, mime_type)

        Raises:
            ImageProcessingError: If image is empty, too large or unsupported
        """
        if not file_content:
            raise ImageProcessingError("Image file is empty")

        if len(file_content) > self.max_bytes:
            raise ImageProcessingError(f"Image file too large (max {self.max_bytes / 1024 / 1024:.0f}MB)")

        mime_type = self.detect_mime_type(file_content)
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise ImageProcessingError(
                f"Unsupported image format: {mime_type}. Supported: JPEG, PNG, WebP"
            )

        return file_content, mime_type

    @staticmethod
    def detect_mime_type(file_content: bytes) -> str:
        """Detect MIME type from magic bytes, falling back to Pillow."""
        if file_content.startswith(b"\xff\xd8\xff"):
            return "image/jpeg"
        if file_content.startswith(b"\x89PNG\r\n\x1a\n"):
            return "image/png"
        if file_content.startswith(b"RIFF") and b"WEBP" in file_content[:12]:
            return "image/webp"

        try:
            with Image.open(io.BytesIO(file_content)) as image:
                return f"image/{image.format.lower()}" if image.format else "application/octet-stream"
        except (UnidentifiedImageError, OSError):
            return "application/octet-stream"

    def prepare_for_vision(self, image_bytes: bytes, mime_type: str) -> Tuple[bytes, str]:
        """
        Downscale and recompress large images to cut model latency.

        Returns the original bytes when the image is already small or Pillow
        cannot process it.
        """
        if len(image_bytes) < _RESIZE_MIN_BYTES:
            return image_bytes, mime_type

        try:
            with Image.open(io.BytesIO(image_bytes)) as im:
                # Composite alpha onto white; JPEG has no transparency.
                if im.mode in ("RGBA", "LA") or (im.mode == "P" and "transparency" in im.info):
                    bg = Image.new("RGBA", im.size, (255, 255, 255, 255))
                    converted = Image.alpha_composite(bg, im.convert("RGBA")).convert("RGB")
                else:
                    converted = im.convert("RGB")

                w, h = converted.size
                if max(w, h) > self.max_dim:
                    scale = self.max_dim / float(max(w, h))
                    converted = converted.resize((max(1, int(w * scale)), max(1, int(h * scale))), Image.LANCZOS)

                with io.BytesIO() as out:
                    converted.save(out, format="JPEG", quality=self.jpeg_quality, optimize=True)
                    resized = out.getvalue()
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.warning(f"Image resize/compress skipped: {e}")
            return image_bytes, mime_type

        logger.info(
            "Image optimized for vision",
            extra={"orig_bytes": len(image_bytes), "opt_bytes": len(resized)},
        )
        return resized, "image/jpeg"
