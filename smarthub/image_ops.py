from __future__ import annotations

from io import BytesIO
from pathlib import Path

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from .config import IMAGE_EXTENSIONS, MAX_UPLOAD_BYTES
from .errors import InvalidInputError, PayloadTooLargeError
from .storage import save_upload

FORMAT_EXTENSIONS = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "GIF": ".gif",
    "WEBP": ".webp",
}


def detect_format(payload: bytes) -> str:
    """Return the Pillow format name of ``payload`` or raise InvalidInputError."""
    try:
        with Image.open(BytesIO(payload)) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise InvalidInputError("Only image files are allowed") from exc

    if image_format not in FORMAT_EXTENSIONS:
        raise InvalidInputError(f"Unsupported image format: {image_format}")
    return image_format


def storage_suffix(filename: str, image_format: str) -> str:
    # Keep the uploader's extension when it is listable, otherwise name the
    # file after what Pillow found so GET /api/images picks it up.
    suffix = Path(filename).suffix.lower()
    if suffix in IMAGE_EXTENSIONS:
        return suffix
    return FORMAT_EXTENSIONS[image_format]


async def save_image_upload(upload: UploadFile) -> str:
    if upload.content_type is None or not upload.content_type.startswith("image/"):
        raise InvalidInputError("Only image files are allowed")

    payload = await upload.read(MAX_UPLOAD_BYTES + 1)
    if not payload:
        raise InvalidInputError("Uploaded file is empty")
    if len(payload) > MAX_UPLOAD_BYTES:
        raise PayloadTooLargeError("File too large")

    image_format = detect_format(payload)
    filename = upload.filename or "image"
    return save_upload(filename, payload, storage_suffix(filename, image_format))
