from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class Origin(str, Enum):
    LOCAL = "local"
    SERVER = "server"


@dataclass(frozen=True)
class ImageKey:
    """Composite key the UI carries for every image it shows.

    Local ids are integers from the display's store and server ids are
    filenames, so neither is unique on its own across the merged list.
    """

    origin: Origin
    id: int | str


@dataclass(frozen=True)
class ImageRecord:
    id: int | str
    name: str
    origin: Origin
    uploaded_at: str
    display_url: str
    payload: bytes | None = field(default=None, repr=False)
    content_type: str | None = None

    @property
    def key(self) -> ImageKey:
        return ImageKey(self.origin, self.id)


@dataclass(frozen=True)
class ImageUpload:
    name: str
    data: bytes = field(repr=False)
    content_type: str

    @classmethod
    def from_path(cls, path: str | Path) -> ImageUpload:
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            data=path.read_bytes(),
            content_type=content_type or "application/octet-stream",
        )

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")
