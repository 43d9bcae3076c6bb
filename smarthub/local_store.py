from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
import uuid
from pathlib import Path

from .clock import SystemTimeProvider, TimeProvider, isoformat_utc
from .config import LOCAL_DB_FILE
from .errors import InvalidInputError, StorageError
from .models import ImageRecord, ImageUpload, Origin

logger = logging.getLogger(__name__)

TABLE = "screensaver_images"

# Each entry upgrades the schema by one version. Entries only ever add
# tables, columns or indexes; existing rows are never dropped.
MIGRATIONS = (
    f"""
    CREATE TABLE IF NOT EXISTS {TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        content_type TEXT NOT NULL,
        data BLOB NOT NULL,
        uploaded_at TEXT NOT NULL
    )
    """,
)
SCHEMA_VERSION = len(MIGRATIONS)


class ObjectUrls:
    """In-process registry of ``blob:`` URLs pointing at decoded payloads.

    URLs are only valid until revoked; the local store revokes its previous
    batch every time it lists, so a URL must never be stored.
    """

    def __init__(self) -> None:
        self._blobs: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def create(self, payload: bytes, content_type: str) -> str:
        url = f"blob:smarthub/{uuid.uuid4()}"
        with self._lock:
            self._blobs[url] = (payload, content_type)
        return url

    def revoke(self, url: str) -> None:
        with self._lock:
            self._blobs.pop(url, None)

    def resolve(self, url: str) -> bytes | None:
        with self._lock:
            entry = self._blobs.get(url)
        return entry[0] if entry else None

    def __len__(self) -> int:
        return len(self._blobs)


class LocalImageStore:
    def __init__(
        self,
        path: str | Path = LOCAL_DB_FILE,
        urls: ObjectUrls | None = None,
        clock: TimeProvider | None = None,
    ) -> None:
        self.path = Path(path)
        self.urls = urls or ObjectUrls()
        self.clock = clock or SystemTimeProvider()
        self._issued: list[str] = []

    def _connect(self) -> sqlite3.Connection:
        conn = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path))
            conn.row_factory = sqlite3.Row
            self._migrate(conn)
        except (sqlite3.Error, OSError) as exc:
            if conn is not None:
                conn.close()
            raise StorageError(f"Cannot open local image store {self.path}: {exc}") from exc
        return conn

    @staticmethod
    def _migrate(conn: sqlite3.Connection) -> None:
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        if version >= SCHEMA_VERSION:
            return
        with conn:
            for statement in MIGRATIONS[version:]:
                conn.execute(statement)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        logger.info("local image store upgraded from schema v%d to v%d", version, SCHEMA_VERSION)

    def _run(self, action: str, sql: str, params: tuple = ()) -> tuple[list[sqlite3.Row], int, int | None]:
        """Execute one statement in its own transaction.

        Returns the fetched rows, the affected row count and the last
        inserted row id.
        """
        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute(sql, params)
                rows = cursor.fetchall() if cursor.description else []
                return rows, cursor.rowcount, cursor.lastrowid
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to {action}: {exc}") from exc
        finally:
            conn.close()

    def _add(self, upload: ImageUpload) -> int:
        _, _, image_id = self._run(
            "store image",
            f"INSERT INTO {TABLE} (name, content_type, data, uploaded_at) VALUES (?, ?, ?, ?)",
            (
                upload.name,
                upload.content_type,
                sqlite3.Binary(upload.data),
                isoformat_utc(self.clock.now()),
            ),
        )
        logger.info("stored local image %r as id %d", upload.name, image_id)
        return image_id

    def _list_all(self) -> list[ImageRecord]:
        rows, _, _ = self._run(
            "list images",
            f"SELECT id, name, content_type, data, uploaded_at FROM {TABLE} ORDER BY id",
        )

        for url in self._issued:
            self.urls.revoke(url)
        self._issued = []

        records = []
        for row in rows:
            payload = bytes(row["data"])
            url = self.urls.create(payload, row["content_type"])
            self._issued.append(url)
            records.append(
                ImageRecord(
                    id=row["id"],
                    name=row["name"],
                    origin=Origin.LOCAL,
                    uploaded_at=row["uploaded_at"],
                    display_url=url,
                    payload=payload,
                    content_type=row["content_type"],
                )
            )
        return records

    def _delete_one(self, image_id: int) -> bool:
        _, deleted, _ = self._run("delete image", f"DELETE FROM {TABLE} WHERE id = ?", (image_id,))
        return deleted > 0

    def _delete_all(self) -> int:
        _, deleted, _ = self._run("clear images", f"DELETE FROM {TABLE}")
        logger.info("cleared %d local images", deleted)
        return deleted

    async def add(self, upload: ImageUpload) -> int:
        if not upload.is_image:
            raise InvalidInputError(f"{upload.name} is not an image")
        return await asyncio.to_thread(self._add, upload)

    async def list_all(self) -> list[ImageRecord]:
        return await asyncio.to_thread(self._list_all)

    async def delete_one(self, image_id: int) -> bool:
        return await asyncio.to_thread(self._delete_one, image_id)

    async def delete_all(self) -> int:
        return await asyncio.to_thread(self._delete_all)

    def resolve_url(self, url: str) -> bytes | None:
        return self.urls.resolve(url)
