import sys
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

# Allow importing smarthub from repository root
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from smarthub import storage  # noqa: E402


class _ManualHandle:
    def __init__(self, when: int, seq: int, callback) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by ``advance(ms)`` instead of the wall clock."""

    def __init__(self) -> None:
        self.now = 0
        self._seq = 0
        self._pending: list[_ManualHandle] = []

    def call_later(self, delay_ms, callback):
        handle = _ManualHandle(self.now + delay_ms, self._seq, callback)
        self._seq += 1
        self._pending.append(handle)
        return handle

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while True:
            due = [h for h in self._pending if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self._pending.remove(handle)
            self.now = handle.when
            handle.callback()
        self._pending = [h for h in self._pending if not h.cancelled]
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for h in self._pending if not h.cancelled)


class FixedClock:
    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def now(self) -> datetime:
        return self.moment


def image_bytes(fmt: str = "PNG", size=(8, 6), color=(200, 30, 30)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 9, 14, 5, tzinfo=timezone.utc))


@pytest.fixture
def uploads_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    directory = tmp_path / "uploads"
    directory.mkdir()
    monkeypatch.setattr(storage, "UPLOADS_DIR", directory)
    return directory
