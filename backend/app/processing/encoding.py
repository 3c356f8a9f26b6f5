"""Input normalization - raw upload bytes to the extractor's base64 JPEG."""

import base64
import io
from typing import Protocol

from PIL import Image, UnidentifiedImageError

from backend.app.exceptions import UnsupportedInputError


class ImageEncoder(Protocol):
    """Protocol for turning upload bytes into extractor input."""

    def encode(self, data: bytes, mime_type: str) -> str:
        """Normalize upload bytes.

        Args:
            data: Raw upload bytes
            mime_type: Declared MIME type of the upload

        Returns:
            Base64-encoded JPEG

        Raises:
            UnsupportedInputError: If the input cannot be converted
        """
        ...


class PillowImageEncoder:
    """Re-encode images as JPEG, shrinking to fit a bounding square."""

    def __init__(self, max_dimension: int = 2048, quality: int = 85) -> None:
        self._max_dimension = max_dimension
        self._quality = quality

    def encode(self, data: bytes, mime_type: str) -> str:
        """Convert an image upload to base64 JPEG."""
        if mime_type == "application/pdf":
            raise UnsupportedInputError(
                "PDF processing requires additional setup. Please use image files for now."
            )
        if not mime_type.startswith("image/"):
            raise UnsupportedInputError(f"Unsupported file type: {mime_type}")

        try:
            with Image.open(io.BytesIO(data)) as image:
                image = image.convert("RGB")
                # thumbnail() never enlarges and keeps the aspect ratio
                image.thumbnail((self._max_dimension, self._max_dimension))

                buffer = io.BytesIO()
                image.save(buffer, format="JPEG", quality=self._quality)
        except (UnidentifiedImageError, OSError) as e:
            raise UnsupportedInputError(f"Could not decode image: {e}") from e

        return base64.b64encode(buffer.getvalue()).decode("ascii")
