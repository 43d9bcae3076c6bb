from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .clock import isoformat_utc
from .config import IMAGE_EXTENSIONS, UPLOADS_DIR
from .errors import AccessDeniedError, NotFoundError

logger = logging.getLogger(__name__)


def _uploads_dir() -> Path:
    UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
    return UPLOADS_DIR


def _is_image_file(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS


def _resolve_inside(image_id: str) -> Path:
    root = _uploads_dir().resolve()
    try:
        candidate = (root / image_id).resolve()
    except ValueError as exc:
        # embedded NUL byte
        raise AccessDeniedError("Access denied") from exc
    if candidate == root or not candidate.is_relative_to(root):
        raise AccessDeniedError("Access denied")
    return candidate


def save_upload(original_name: str, payload: bytes, suffix: str | None = None) -> str:
    """Write an uploaded image and return the stored filename.

    Names follow ``<stem>-<epoch ms><ext>``. When two uploads of the same
    name land in the same millisecond a ``-<n>`` counter is appended; the
    exclusive-create open guarantees no writer ever replaces another's file.
    """
    directory = _uploads_dir()
    original = Path(Path(original_name).name)
    stem = original.stem or "image"
    ext = (suffix or original.suffix).lower()
    timestamp = int(time.time() * 1000)

    attempt = 0
    while True:
        tail = f"-{attempt}" if attempt else ""
        filename = f"{stem}-{timestamp}{tail}{ext}"
        path = directory / filename
        try:
            f = path.open("xb")
        except FileExistsError:
            attempt += 1
            continue
        try:
            with f:
                f.write(payload)
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        logger.info("stored upload %s as %s (%d bytes)", original_name, filename, len(payload))
        return filename


def list_images() -> list[dict[str, Any]]:
    images = []
    for path in sorted(_uploads_dir().iterdir()):
        if not _is_image_file(path):
            continue
        modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        images.append(
            {
                "id": path.name,
                "name": path.name,
                "url": f"/uploads/{path.name}",
                "uploadedAt": isoformat_utc(modified),
            }
        )
    return images


def delete_image(image_id: str) -> None:
    file_path = _resolve_inside(image_id)
    if not file_path.is_file():
        raise NotFoundError("Image not found")
    file_path.unlink()
    logger.info("deleted upload %s", file_path.name)


def delete_all_images() -> int:
    directory = UPLOADS_DIR
    if not directory.exists():
        return 0

    deleted = 0
    for path in directory.iterdir():
        if _is_image_file(path):
            path.unlink()
            deleted += 1
    logger.info("deleted %d uploads", deleted)
    return deleted
