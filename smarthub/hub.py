"""Display-side process: the hub's clock, weather, navigation and screensaver.

Everything runs on one asyncio loop next to (not inside) the upload server;
images are read from the server at ``SMARTHUB_SERVER_URL`` and from the
local store under ``SMARTHUB_DATA_DIR``.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import Any

import httpx

from .clock import SystemTimeProvider, TimeProvider, format_date, format_time
from .config import CLOCK_TICK_MS, DISPLAY_SETTINGS_FILE, LOCAL_DB_FILE, LOG_LEVEL, SERVER_URL
from .display import DisplayController
from .local_store import LocalImageStore
from .navigation import NavigationState
from .remote import RemoteImageClient
from .scheduler import AsyncioScheduler, RepeatingTimer, Scheduler
from .settings import SettingsStore
from .sync import ImageSyncFacade
from .weather import WeatherFeed, WeatherService

logger = logging.getLogger(__name__)


class Hub:
    def __init__(
        self,
        controller: DisplayController,
        weather: WeatherFeed,
        clock: TimeProvider,
        scheduler: Scheduler,
    ) -> None:
        self.controller = controller
        self.weather = weather
        self.clock = clock
        self.time_text = ""
        self.date_text = ""
        self.view = controller.state.visible_view
        self._tick = RepeatingTimer(scheduler, "clock")

    def update_clock(self) -> None:
        now = self.clock.now()
        self.time_text = format_time(now)
        self.date_text = format_date(now)

    def _on_state(self, state: NavigationState) -> None:
        if state.visible_view != self.view:
            logger.info("showing %s", state.visible_view)
        self.view = state.visible_view

    def start(self) -> None:
        self.controller.subscribe(self._on_state)
        self.update_clock()
        self._tick.start(CLOCK_TICK_MS, self.update_clock)
        self.weather.start()

    async def close(self) -> None:
        self._tick.cancel()
        await self.weather.stop()
        await self.controller.close()


def build_hub(
    server_url: str = SERVER_URL,
    db_path: str | Path = LOCAL_DB_FILE,
    settings_path: str | Path = DISPLAY_SETTINGS_FILE,
    scheduler: Scheduler | None = None,
    clock: TimeProvider | None = None,
    remote_transport: httpx.AsyncBaseTransport | None = None,
    weather_transport: httpx.AsyncBaseTransport | None = None,
) -> Hub:
    """Wire the display's collaborators. Call with an event loop running."""
    scheduler = scheduler or AsyncioScheduler()
    clock = clock or SystemTimeProvider()

    images = ImageSyncFacade(
        LocalImageStore(db_path, clock=clock),
        RemoteImageClient(server_url, transport=remote_transport),
    )
    controller = DisplayController(images, SettingsStore(settings_path), scheduler=scheduler)
    weather = WeatherFeed(WeatherService(clock=clock, transport=weather_transport), scheduler)
    return Hub(controller, weather, clock, scheduler)


async def run(stop: asyncio.Event | None = None, **options: Any) -> None:
    """Run the hub until ``stop`` is set, or until SIGINT/SIGTERM when none is given."""
    if stop is None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                # Windows event loops have no signal handlers
                pass

    hub = build_hub(**options)
    hub.start()
    logger.info("Smart Hub display started, images from %s", hub.controller.images.remote.base_url)
    try:
        await stop.wait()
    finally:
        await hub.close()
        logger.info("Smart Hub display stopped")


def main() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run())


if __name__ == "__main__":
    main()
