from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class TimeProvider(Protocol):
    def now(self) -> datetime: ...


class SystemTimeProvider:
    """Local wall-clock time, timezone-aware."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


def isoformat_utc(moment: datetime) -> str:
    # Same shape as JavaScript's Date.toISOString(), which the upload page expects.
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_time(moment: datetime) -> str:
    return moment.strftime("%I:%M %p")


def format_date(moment: datetime) -> str:
    return f"{moment:%A}, {moment:%B} {moment.day}, {moment.year}"
