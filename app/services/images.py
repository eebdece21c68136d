"""Uploaded image validation and local storage.

Images are stored under ``settings.upload_dir`` with a random key and served
back under ``settings.image_base_url``.
"""

import io
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from app.core.config import settings
from app.core.errors import ApiError, BadRequestError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml"}
PIL_FORMAT_EXTENSIONS = {"JPEG": "jpg", "PNG": "png", "GIF": "gif", "WEBP": "webp"}


@dataclass
class ImageUpload:
    content: bytes
    extension: str


def _validate_svg(content: bytes) -> None:
    text = content.decode("utf-8", errors="replace").strip()
    if not text.startswith("<svg"):
        raise BadRequestError("Invalid SVG file")
    if "<script" in text.lower():
        raise BadRequestError("SVG files must not contain script tags")


def _detect_raster_extension(content: bytes) -> str:
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.verify()
            image_format = img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise BadRequestError("Could not read image file") from exc

    extension = PIL_FORMAT_EXTENSIONS.get(image_format or "")
    if extension is None:
        raise BadRequestError(f"Unsupported image format: {image_format}")
    return extension


def inspect_image(content: bytes, content_type: str | None) -> ImageUpload:
    """Check size, declared type and actual content of an uploaded image."""
    if len(content) > settings.max_image_bytes:
        raise BadRequestError(
            f"Image exceeds the {settings.max_image_bytes // (1024 * 1024)} MiB limit"
        )
    if content_type not in ALLOWED_MIME_TYPES:
        raise BadRequestError("Not a valid image file")

    if content_type == "image/svg+xml":
        _validate_svg(content)
        return ImageUpload(content=content, extension="svg")
    return ImageUpload(content=content, extension=_detect_raster_extension(content))


async def read_image(upload: UploadFile | None) -> ImageUpload | None:
    """Read and validate an optional multipart image; ``None`` when nothing was sent."""
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    if not content:
        return None
    return inspect_image(content, upload.content_type)


def save_image(image: ImageUpload) -> str:
    """Persist the image and return its storage key."""
    key = f"{uuid.uuid4().hex}.{image.extension}"
    upload_dir = Path(settings.upload_dir)
    try:
        upload_dir.mkdir(parents=True, exist_ok=True)
        (upload_dir / key).write_bytes(image.content)
    except OSError as exc:
        logger.exception("Failed to save image %s", key)
        raise ApiError("Failed to save image") from exc
    return key


def delete_image(key: str | None) -> None:
    """Remove a stored image; a missing file is only logged."""
    if not key:
        return
    path = Path(settings.upload_dir) / key
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning("Image %s already removed", key)
    except OSError:
        logger.exception("Failed to remove image %s", key)


def image_url(key: str | None) -> str | None:
    if not key:
        return None
    return f"{settings.image_base_url.rstrip('/')}/{key}"
