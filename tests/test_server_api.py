from __future__ import annotations

from pathlib import Path

import pytest
from conftest import image_bytes
from fastapi.testclient import TestClient

from smarthub import image_ops, network
from smarthub.main import app


@pytest.fixture
def client(uploads_dir: Path) -> TestClient:
    return TestClient(app)


def test_upload_stores_image_and_lists_it(client: TestClient, uploads_dir: Path) -> None:
    resp = client.post("/api/upload", files={"image": ("sunset.png", image_bytes("PNG"), "image/png")})

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["originalName"] == "sunset.png"
    assert body["filename"].startswith("sunset-")
    assert (uploads_dir / body["filename"]).exists()

    listing = client.get("/api/images").json()
    assert listing == [
        {
            "id": body["filename"],
            "name": body["filename"],
            "url": f"/uploads/{body['filename']}",
            "uploadedAt": listing[0]["uploadedAt"],
        }
    ]


def test_upload_without_file_is_rejected(client: TestClient) -> None:
    resp = client.post("/api/upload", data={"other": "value"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "No file uploaded"}


def test_text_field_instead_of_file_is_rejected(client: TestClient, uploads_dir: Path) -> None:
    resp = client.post("/api/upload", data={"image": "not a file"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "No file uploaded"}
    assert list(uploads_dir.iterdir()) == []


def test_non_image_mime_type_is_rejected_and_nothing_written(
    client: TestClient, uploads_dir: Path
) -> None:
    resp = client.post("/api/upload", files={"image": ("notes.txt", b"hello", "text/plain")})
    assert resp.status_code == 400
    assert "error" in resp.json()
    assert list(uploads_dir.iterdir()) == []


def test_image_mime_with_non_image_content_is_rejected(client: TestClient, uploads_dir: Path) -> None:
    resp = client.post("/api/upload", files={"image": ("fake.png", b"not really a png", "image/png")})
    assert resp.status_code == 400
    assert list(uploads_dir.iterdir()) == []


def test_oversized_upload_is_rejected(
    client: TestClient, uploads_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(image_ops, "MAX_UPLOAD_BYTES", 16)
    resp = client.post("/api/upload", files={"image": ("big.png", image_bytes("PNG"), "image/png")})
    assert resp.status_code == 413
    assert list(uploads_dir.iterdir()) == []


def test_unlisted_extension_is_stored_under_detected_format(client: TestClient, uploads_dir: Path) -> None:
    resp = client.post("/api/upload", files={"image": ("photo.heic", image_bytes("JPEG"), "image/heic")})
    assert resp.status_code == 201
    assert resp.json()["filename"].endswith(".jpg")
    assert len(client.get("/api/images").json()) == 1


def test_delete_one(client: TestClient, uploads_dir: Path) -> None:
    (uploads_dir / "a.png").write_bytes(b"1")
    resp = client.delete("/api/images/a.png")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Image deleted"}
    assert not (uploads_dir / "a.png").exists()


def test_delete_missing_is_404(client: TestClient) -> None:
    resp = client.delete("/api/images/nope.png")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Image not found"}


def test_delete_with_parent_segments_is_forbidden(client: TestClient, uploads_dir: Path) -> None:
    secret = uploads_dir.parent / "secret.jpg"
    secret.write_bytes(b"keep me")

    resp = client.delete("/api/images/..%2Fsecret.jpg")

    assert resp.status_code == 403
    assert resp.json() == {"error": "Access denied"}
    assert secret.exists()


def test_delete_with_nul_byte_is_a_json_error(client: TestClient) -> None:
    resp = client.delete("/api/images/a%00.png")
    assert resp.status_code == 403
    assert resp.json() == {"error": "Access denied"}


def test_delete_all_on_empty_directory(client: TestClient) -> None:
    resp = client.delete("/api/images")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Deleted 0 images"}


def test_delete_all_reports_count(client: TestClient, uploads_dir: Path) -> None:
    for name in ("a.png", "b.jpg", "c.gif"):
        (uploads_dir / name).write_bytes(b"x")
    resp = client.delete("/api/images")
    assert resp.json()["message"] == "Deleted 3 images"


def test_device_ip_prefers_forwarded_for(client: TestClient) -> None:
    resp = client.get("/api/device-ip", headers={"X-Forwarded-For": "192.168.1.20, 10.0.0.1"})
    assert resp.status_code == 200
    assert resp.json() == {"ip": "192.168.1.20"}


def test_device_ip_replaces_loopback_with_lan_address(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(network, "local_ipv4", lambda: "192.168.1.44")
    assert network.best_device_ip(None, "127.0.0.1") == "192.168.1.44"
    assert network.best_device_ip("::ffff:10.0.0.5", None) == "10.0.0.5"


def test_device_ip_never_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(network, "local_ipv4", lambda: None)
    assert network.best_device_ip(None, None) == "localhost"


def test_upload_page_and_client_routes_render(client: TestClient) -> None:
    upload_page = client.get("/upload.html")
    assert upload_page.status_code == 200
    assert "/api/upload" in upload_page.text

    spa = client.get("/forecast")
    assert spa.status_code == 200
    assert "Smart Hub" in spa.text
