import logging
import uuid
from pathlib import Path

from fastapi import UploadFile, status

from . import config
from .errors import AppError

ALLOWED_IMAGE_TYPES = [
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/webp",
    "image/gif",
    "image/bmp",
    "image/heic",
    "image/heif",
]


async def read_image_upload(file: UploadFile) -> bytes:
    """Read an uploaded image, rejecting non-images and files over the size limit."""
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise AppError(status.HTTP_400_BAD_REQUEST, "upload.invalid_type", "Only image files are allowed")
    content = await file.read()
    if len(content) > config.MAX_IMAGE_SIZE:
        raise AppError(status.HTTP_400_BAD_REQUEST, "upload.too_large",
                       f"File exceeds the maximum size of {config.MAX_IMAGE_SIZE // (1024 * 1024)}MB")
    return content


def store_upload(content: bytes, original_filename: str, prefix: str) -> str:
    """Write ``content`` under the upload directory and return its public path."""
    upload_dir = Path(config.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    extension = Path(original_filename or "").suffix.lower()
    filename = f"{prefix}-{uuid.uuid4().hex}{extension}"
    (upload_dir / filename).write_bytes(content)
    logging.info(f"Stored upload {filename} ({len(content)} bytes)")
    return f"/uploads/{filename}"
