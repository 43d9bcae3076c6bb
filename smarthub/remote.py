from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from .config import SERVER_URL
from .errors import NetworkError
from .models import ImageRecord, ImageUpload, Origin

logger = logging.getLogger(__name__)


class RemoteImageClient:
    """HTTP client for the image endpoints of the Smart Hub server."""

    def __init__(
        self,
        base_url: str = SERVER_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = httpx.Timeout(timeout)
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(method, url, **kwargs)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} {url} failed: {exc}") from exc
        except ValueError as exc:
            raise NetworkError(f"{method} {url} returned an invalid body") from exc

    async def list_images(self) -> list[ImageRecord]:
        payload = await self._request("GET", "/api/images")
        if not isinstance(payload, list):
            raise NetworkError("GET /api/images did not return a list")
        try:
            return [
                ImageRecord(
                    id=item["id"],
                    name=item["name"],
                    origin=Origin.SERVER,
                    uploaded_at=item["uploadedAt"],
                    display_url=item["url"],
                )
                for item in payload
            ]
        except (KeyError, TypeError) as exc:
            raise NetworkError(f"GET /api/images returned a malformed entry: {exc}") from exc

    async def upload(self, upload: ImageUpload) -> str:
        files = {"image": (upload.name, upload.data, upload.content_type)}
        payload = await self._request("POST", "/api/upload", files=files)
        return payload["filename"]

    async def delete_image(self, image_id: str) -> None:
        await self._request("DELETE", f"/api/images/{quote(str(image_id), safe='')}")

    async def delete_all(self) -> int:
        payload = await self._request("DELETE", "/api/images")
        try:
            # "Deleted N images"
            return int(payload["message"].split()[1])
        except (KeyError, IndexError, ValueError) as exc:
            raise NetworkError(f"DELETE /api/images returned {payload!r}") from exc

    async def device_ip(self) -> str:
        payload = await self._request("GET", "/api/device-ip")
        return payload.get("ip") or "localhost"
