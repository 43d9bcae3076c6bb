from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Callable

from .config import (
    DEFAULT_IMAGE_DURATION_MS,
    DEFAULT_INACTIVITY_TIMEOUT_MS,
    DISPLAY_SETTINGS_FILE,
    MIN_TIMING_MS,
)

logger = logging.getLogger(__name__)

_lock = threading.Lock()


@dataclass(frozen=True)
class DisplaySettings:
    inactivity_timeout_ms: int = DEFAULT_INACTIVITY_TIMEOUT_MS
    image_duration_ms: int = DEFAULT_IMAGE_DURATION_MS


def _normalize(raw: Any) -> tuple[DisplaySettings, bool]:
    changed = False
    if not isinstance(raw, dict):
        raw = {}
        changed = True

    values = asdict(DisplaySettings())
    for key, default in values.items():
        value = raw.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or value < MIN_TIMING_MS:
            changed = True
            continue
        values[key] = value

    return DisplaySettings(**values), changed


class SettingsStore:
    """Display timing settings kept in a JSON file so they survive restarts."""

    def __init__(self, path: str | Path = DISPLAY_SETTINGS_FILE) -> None:
        self.path = Path(path)
        self._listeners: list[Callable[[DisplaySettings], None]] = []
        self._current = self._load()

    @property
    def current(self) -> DisplaySettings:
        return self._current

    def _load(self) -> DisplaySettings:
        if not self.path.exists():
            settings = DisplaySettings()
            self._save(settings)
            return settings

        try:
            with _lock, self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not load display settings from %s: %s", self.path, exc)
            raw = None

        settings, changed = _normalize(raw)
        if changed:
            self._save(settings)
        return settings

    def _save(self, settings: DisplaySettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with _lock, self.path.open("w", encoding="utf-8") as f:
            json.dump(asdict(settings), f, indent=2)

    def subscribe(self, listener: Callable[[DisplaySettings], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, **changes: int) -> DisplaySettings:
        clamped = {key: max(MIN_TIMING_MS, int(value)) for key, value in changes.items()}
        settings = replace(self._current, **clamped)
        if settings == self._current:
            return settings

        self._save(settings)
        self._current = settings
        for listener in list(self._listeners):
            listener(settings)
        return settings

    def set_inactivity_timeout(self, timeout_ms: int) -> DisplaySettings:
        return self.update(inactivity_timeout_ms=timeout_ms)

    def set_image_duration(self, duration_ms: int) -> DisplaySettings:
        return self.update(image_duration_ms=duration_ms)
