"""
Image helpers built on Pillow.
"""

import base64
import binascii
import io

from PIL import Image, UnidentifiedImageError

from layout_editor.core.exceptions import InvalidImageError


FORMAT_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}


def decode_base64_image(image_base64: str) -> bytes:
    """Decode base64 image data, accepting a data URL prefix."""
    if "," in image_base64:
        image_base64 = image_base64.split(",", 1)[1]
    try:
        return base64.b64decode(image_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Image is not valid base64: {e}") from e


def detect_mime_type(data: bytes) -> str:
    """
    Return the MIME type of an encoded image.

    Raises:
        InvalidImageError: If the data is empty or Pillow cannot read it
    """
    if not data:
        raise InvalidImageError("Image data is empty")
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
            image_format = image.format
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidImageError(f"Data is not a readable image: {e}") from e

    mime_type = FORMAT_MIME_TYPES.get(image_format)
    if mime_type is None:
        raise InvalidImageError(f"Unsupported image format: {image_format}")
    return mime_type


def to_jpeg(data: bytes, quality: int = 90) -> bytes:
    """Re-encode any readable image as JPEG."""
    detect_mime_type(data)
    with Image.open(io.BytesIO(data)) as image:
        buffer = io.BytesIO()
        image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
