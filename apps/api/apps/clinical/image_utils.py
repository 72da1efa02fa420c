"""
Image utilities for uploaded patient media.

Phone uploads arrive as JPEG, PNG, WebP or HEIC. Everything is re-encoded
before it reaches the asset store so previews render in any browser.
"""
import io

import pillow_heif
from PIL import Image, UnidentifiedImageError

MAX_LONG_SIDE = 2048  # px

pillow_heif.register_heif_opener()


class InvalidImageError(ValueError):
    """Uploaded bytes are not a decodable image."""


def open_image(data: bytes) -> Image.Image:
    """Decode ``data`` (HEIC included) into a Pillow image."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError(f'Unsupported or corrupt image: {exc}')
    return img


def to_jpeg_bytes(data: bytes, quality: int = 88) -> bytes:
    """
    Re-encode an uploaded photo as RGB JPEG, downscaled so the long side
    is at most MAX_LONG_SIDE.
    """
    img = open_image(data)
    if img.mode != 'RGB':
        img = img.convert('RGB')
    img.thumbnail((MAX_LONG_SIDE, MAX_LONG_SIDE), Image.LANCZOS)
    buf = io.BytesIO()
    img.save(buf, format='JPEG', quality=quality)
    return buf.getvalue()


def to_png_bytes(data: bytes) -> bytes:
    """Re-encode a drawn signature as PNG, keeping transparency."""
    img = open_image(data)
    if img.mode not in ('RGBA', 'LA', 'L'):
        img = img.convert('RGBA')
    buf = io.BytesIO()
    img.save(buf, format='PNG')
    return buf.getvalue()
