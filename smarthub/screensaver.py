from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from .models import ImageRecord
from .scheduler import RepeatingTimer, Scheduler, TaskTracker
from .sync import ImageSyncFacade

logger = logging.getLogger(__name__)


class ScreensaverPlayer:
    """Slideshow over the merged image collection."""

    def __init__(
        self,
        images: ImageSyncFacade,
        scheduler: Scheduler,
        duration_ms: Callable[[], int],
        tasks: TaskTracker | None = None,
    ) -> None:
        self._facade = images
        self._duration_ms = duration_ms
        self._interval = RepeatingTimer(scheduler, "screensaver")
        self._tasks = tasks or TaskTracker()
        self._load: asyncio.Task[Any] | None = None
        self.images: list[ImageRecord] = []
        self.index = 0
        self.loading = False
        self.running = False

    @property
    def current(self) -> ImageRecord | None:
        return self.images[self.index] if self.images else None

    @property
    def counter(self) -> str:
        return f"{self.index + 1} / {len(self.images)}" if self.images else ""

    @property
    def placeholder(self) -> str | None:
        if self.loading:
            return "Loading images..."
        if not self.images:
            return "No images uploaded. Click to return."
        return None

    def activate(self) -> None:
        """Start a slideshow in the background, dropping any earlier load."""
        self.stop()
        self._load = self._tasks.spawn(self.start(), "screensaver-load")

    async def start(self) -> None:
        self.running = True
        self.loading = True
        self.images = []
        self.index = 0
        try:
            images = await self._facade.get_all()
        except Exception:
            logger.exception("Failed to load screensaver images")
            images = []
        self.loading = False

        if not self.running:
            return
        self.images = images
        if images:
            self._interval.start(self._duration_ms(), self.advance)

    def advance(self) -> None:
        if self.images:
            self.index = (self.index + 1) % len(self.images)

    def restart_interval(self) -> None:
        if self.running and self.images:
            self._interval.start(self._duration_ms(), self.advance)

    def stop(self) -> None:
        self.running = False
        self.loading = False
        self._interval.cancel()
        if self._load is not None:
            self._load.cancel()
            self._load = None
