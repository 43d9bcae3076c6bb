from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
from conftest import image_bytes

from smarthub.errors import StorageError
from smarthub.local_store import LocalImageStore
from smarthub.models import ImageKey, ImageUpload, Origin
from smarthub.panel import SettingsPanel
from smarthub.remote import RemoteImageClient
from smarthub.settings import SettingsStore
from smarthub.sync import ImageSyncFacade


def _server(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/device-ip":
        return httpx.Response(200, json={"ip": "192.168.1.5"})
    if request.url.path == "/api/images":
        return httpx.Response(
            200,
            json=[{"id": "s.jpg", "name": "s.jpg", "url": "/uploads/s.jpg", "uploadedAt": "2024-01-01T00:00:00.000Z"}],
        )
    return httpx.Response(404, json={"error": "Image not found"})


def _panel(tmp_path: Path, handler=_server) -> SettingsPanel:
    remote = RemoteImageClient("http://hub.local", transport=httpx.MockTransport(handler))
    facade = ImageSyncFacade(LocalImageStore(tmp_path / "local.sqlite3"), remote)
    return SettingsPanel(facade, SettingsStore(tmp_path / "settings.json"), port=3000)


def test_load_fills_images_and_upload_hint(tmp_path: Path) -> None:
    panel = _panel(tmp_path)
    asyncio.run(panel.load())

    assert not panel.loading
    assert [img.name for img in panel.images] == ["s.jpg"]
    assert panel.upload_url == "http://192.168.1.5:3000/upload.html"


def test_upload_reports_count_and_refreshes(tmp_path: Path) -> None:
    panel = _panel(tmp_path)
    uploads = [ImageUpload(f"{n}.png", image_bytes(), "image/png") for n in ("a", "b")]

    asyncio.run(panel.upload(uploads))

    assert panel.message == "Successfully uploaded 2 image(s)"
    assert not panel.uploading
    assert [img.origin for img in panel.images] == [Origin.SERVER, Origin.LOCAL, Origin.LOCAL]


def test_failed_upload_is_a_message_not_a_crash(tmp_path: Path) -> None:
    panel = _panel(tmp_path)
    asyncio.run(panel.upload([ImageUpload("notes.txt", b"hi", "text/plain")]))
    assert panel.message == "Failed to upload images"
    assert not panel.uploading


def test_storage_failure_on_upload_is_reported(tmp_path: Path, monkeypatch) -> None:
    panel = _panel(tmp_path)

    async def broken_add(upload):
        raise StorageError("disk full")

    monkeypatch.setattr(panel._facade.local, "add", broken_add)
    asyncio.run(panel.upload([ImageUpload("a.png", image_bytes(), "image/png")]))
    assert panel.message == "Failed to upload images"


def test_delete_and_clear_messages(tmp_path: Path) -> None:
    panel = _panel(tmp_path)

    async def scenario():
        await panel.upload([ImageUpload("a.png", image_bytes(), "image/png")])
        local_key = next(img.key for img in panel.images if img.origin is Origin.LOCAL)
        await panel.delete(local_key)
        deleted_message = panel.message
        await panel.delete(ImageKey(Origin.SERVER, "missing.jpg"))
        failed_message = panel.message
        await panel.upload([ImageUpload("b.png", image_bytes(), "image/png")])
        await panel.clear_all()
        return deleted_message, failed_message

    deleted_message, failed_message = asyncio.run(scenario())

    assert deleted_message == "Image deleted"
    assert failed_message == "Failed to delete image"
    assert panel.message == "All images deleted"
    assert [img.origin for img in panel.images] == [Origin.SERVER]


def test_device_ip_falls_back_to_localhost(tmp_path: Path) -> None:
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    panel = _panel(tmp_path, unreachable)
    asyncio.run(panel.load())
    assert panel.device_ip == "localhost"
    assert panel.images == []
    assert panel.message == ""


def test_timing_options_are_persisted(tmp_path: Path) -> None:
    panel = _panel(tmp_path)
    panel.set_inactivity_timeout(panel.inactivity_options_ms[1])
    panel.set_image_duration(panel.duration_options_ms[0])

    reloaded = SettingsStore(tmp_path / "settings.json").current
    assert reloaded.inactivity_timeout_ms == 10 * 60 * 1000
    assert reloaded.image_duration_ms == 5000
