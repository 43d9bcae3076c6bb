from __future__ import annotations

import logging

from .errors import InvalidInputError, NetworkError
from .local_store import LocalImageStore
from .models import ImageKey, ImageRecord, ImageUpload, Origin
from .remote import RemoteImageClient

logger = logging.getLogger(__name__)


class ImageSyncFacade:
    """One image collection made of the server's uploads and the display's own.

    Reads merge both stores (server first); writes go to the store named by
    the record's origin. Adding from the display only ever writes locally,
    phones and computers reach the server through its upload page.
    """

    def __init__(self, local: LocalImageStore, remote: RemoteImageClient) -> None:
        self.local = local
        self.remote = remote

    async def get_all(self) -> list[ImageRecord]:
        try:
            server_images = await self.remote.list_images()
        except NetworkError as exc:
            logger.warning("Server API not available, using local storage only: %s", exc)
            server_images = []
        return server_images + await self.local.list_all()

    async def add(self, upload: ImageUpload) -> ImageKey:
        image_id = await self.local.add(upload)
        return ImageKey(Origin.LOCAL, image_id)

    async def delete_one(self, key: ImageKey) -> None:
        if key.origin is Origin.LOCAL:
            if not isinstance(key.id, int):
                raise InvalidInputError(f"Local image ids are integers, got {key.id!r}")
            await self.local.delete_one(key.id)
        else:
            await self.remote.delete_image(str(key.id))

    async def delete_all(self, origin: Origin) -> int:
        if origin is Origin.LOCAL:
            return await self.local.delete_all()
        return await self.remote.delete_all()
