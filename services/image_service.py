"""
Image storage and preparation.
"""
import base64
import binascii
import io
import uuid
from pathlib import Path
from typing import Tuple

from core import constants
from core.config import settings
from core.exceptions import (
    EmptyImageError,
    ImageProcessingException,
    ImageTooLargeError,
    InvalidDataUrlError,
    UnsupportedImageTypeError,
)
from core.logger import get_logger
from core.utils import mime_to_extension, now_ms, parse_data_url

logger = get_logger(__name__)


class ImageStore:
    """Writes validated images under UPLOADS_DIR and returns `/uploads/<file>` URLs."""

    def __init__(self, uploads_dir: str = None, max_bytes: int = None):
        self.uploads_dir = Path(uploads_dir or settings.UPLOADS_DIR)
        self.max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES

    def decode_data_url(self, data_url: str) -> Tuple[bytes, str]:
        """
        Validates and decodes an image data URL.

        Returns:
            (image_bytes, mime_type)
        """
        parsed = parse_data_url(data_url)
        if not parsed:
            raise InvalidDataUrlError("invalid_data_url")
        mime_type, b64 = parsed
        if not mime_to_extension(mime_type):
            raise UnsupportedImageTypeError("unsupported_image_type", {"mime": mime_type})
        try:
            data = base64.b64decode(b64, validate=False)
        except (binascii.Error, ValueError) as e:
            raise InvalidDataUrlError("invalid_data_url", {"error": str(e)}) from e
        return data, mime_type

    def check_size(self, data: bytes) -> None:
        if not data:
            raise EmptyImageError("empty_image")
        if len(data) > self.max_bytes:
            raise ImageTooLargeError(
                "image_too_large", {"size": len(data), "limit": self.max_bytes}
            )

    def save_bytes(self, data: bytes, mime_type: str) -> str:
        extension = mime_to_extension(mime_type)
        if not extension:
            raise UnsupportedImageTypeError("unsupported_image_type", {"mime": mime_type})
        self.check_size(data)

        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{now_ms()}-{uuid.uuid4().hex[:6]}.{extension}"
        (self.uploads_dir / filename).write_bytes(data)

        logger.info(f"[IMAGE] Stored {filename}", context={"bytes": len(data), "mime": mime_type})
        return f"{constants.UPLOAD_URL_PREFIX}/{filename}"

    def save_data_url(self, data_url: str) -> str:
        data, mime_type = self.decode_data_url(data_url)
        return self.save_bytes(data, mime_type)


def target_size(width: int, height: int, max_dimension: int = constants.MAX_IMAGE_DIMENSION) -> Tuple[int, int]:
    """Scales (width, height) down to fit a square of `max_dimension`, keeping aspect."""
    if width <= max_dimension and height <= max_dimension:
        return width, height
    scale = min(max_dimension / width, max_dimension / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


def prepare_image_for_upload(image_bytes: bytes) -> str:
    """
    Downscales and re-encodes an image before upload.

    Longest side is capped at MAX_IMAGE_DIMENSION and the result is a JPEG
    data URL, which keeps phone photos well under the upload limit.
    """
    from PIL import Image

    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            if img.mode != "RGB":
                img = img.convert("RGB")

            width, height = img.size
            new_size = target_size(width, height)
            if new_size != (width, height):
                img = img.resize(new_size, Image.Resampling.LANCZOS)
                logger.info(f"[IMAGE] Resized for upload: {width}x{height} -> {new_size[0]}x{new_size[1]}")

            output = io.BytesIO()
            img.save(output, format=constants.OUTPUT_IMAGE_FORMAT, quality=constants.OUTPUT_IMAGE_QUALITY)
    except Exception as e:
        raise ImageProcessingException("image_load_failed", {"error": str(e)}) from e

    encoded = base64.b64encode(output.getvalue()).decode("ascii")
    return f"data:{constants.OUTPUT_IMAGE_MIME_TYPE};base64,{encoded}"
