from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from .config import IMAGE_DURATION_OPTIONS_MS, INACTIVITY_TIMEOUT_OPTIONS_MS, PORT
from .errors import InvalidInputError, NetworkError, StorageError
from .models import ImageKey, ImageRecord, ImageUpload, Origin
from .settings import SettingsStore
from .sync import ImageSyncFacade

logger = logging.getLogger(__name__)

# Failures reported to the user as a message instead of propagating.
PANEL_ERRORS = (StorageError, InvalidInputError, NetworkError)


class SettingsPanel:
    """State behind the settings screen: image list, upload hint and timings."""

    inactivity_options_ms = INACTIVITY_TIMEOUT_OPTIONS_MS
    duration_options_ms = IMAGE_DURATION_OPTIONS_MS

    def __init__(self, images: ImageSyncFacade, settings: SettingsStore, port: int = PORT) -> None:
        self._facade = images
        self._settings = settings
        self.port = port
        self.images: list[ImageRecord] = []
        self.loading = True
        self.uploading = False
        self.message = ""
        self.device_ip = "loading..."

    @property
    def upload_url(self) -> str:
        return f"http://{self.device_ip}:{self.port}/upload.html"

    @property
    def inactivity_timeout_ms(self) -> int:
        return self._settings.current.inactivity_timeout_ms

    @property
    def image_duration_ms(self) -> int:
        return self._settings.current.image_duration_ms

    def set_inactivity_timeout(self, timeout_ms: int) -> None:
        self._settings.set_inactivity_timeout(timeout_ms)

    def set_image_duration(self, duration_ms: int) -> None:
        self._settings.set_image_duration(duration_ms)

    async def load(self) -> None:
        await asyncio.gather(self.load_images(), self.fetch_device_ip())

    async def load_images(self) -> None:
        try:
            self.images = await self._facade.get_all()
        except PANEL_ERRORS as exc:
            logger.error("Failed to load images: %s", exc)
            self.message = "Error loading images"
        finally:
            self.loading = False

    async def fetch_device_ip(self) -> None:
        try:
            self.device_ip = await self._facade.remote.device_ip()
        except NetworkError as exc:
            logger.error("Failed to fetch device IP: %s", exc)
            self.device_ip = "localhost"

    async def upload(self, uploads: Iterable[ImageUpload]) -> None:
        uploads = list(uploads)
        if not uploads:
            return

        self.uploading = True
        self.message = ""
        try:
            await asyncio.gather(*(self._facade.add(upload) for upload in uploads))
            self.message = f"Successfully uploaded {len(uploads)} image(s)"
            await self.load_images()
        except PANEL_ERRORS as exc:
            logger.error("Upload failed: %s", exc)
            self.message = "Failed to upload images"
        finally:
            self.uploading = False

    async def delete(self, key: ImageKey) -> None:
        try:
            await self._facade.delete_one(key)
            await self.load_images()
            self.message = "Image deleted"
        except PANEL_ERRORS as exc:
            logger.error("Delete failed: %s", exc)
            self.message = "Failed to delete image"

    async def clear_all(self) -> None:
        """Remove every image stored on this display; server uploads stay."""
        try:
            await self._facade.delete_all(Origin.LOCAL)
            await self.load_images()
            self.message = "All images deleted"
        except PANEL_ERRORS as exc:
            logger.error("Clear failed: %s", exc)
            self.message = "Failed to clear images"
