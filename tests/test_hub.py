from __future__ import annotations

import asyncio
from datetime import timedelta
from pathlib import Path

import httpx
from conftest import FixedClock, ManualScheduler

from smarthub.config import CLOCK_TICK_MS, DEFAULT_INACTIVITY_TIMEOUT_MS
from smarthub.hub import build_hub, run


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def _weather(request: httpx.Request) -> httpx.Response:
    if request.url.host == "nominatim.openstreetmap.org":
        return httpx.Response(200, json={"address": {"city": "Muskegon", "state": "Michigan"}})
    if "current" in request.url.params:
        return httpx.Response(
            200,
            json={"current": {"temperature_2m": 40.2, "weather_code": 3, "relative_humidity_2m": 70}},
        )
    return httpx.Response(
        200,
        json={
            "daily": {
                "time": [f"2024-03-{d:02d}" for d in range(9, 16)],
                "weather_code": [3] * 7,
                "temperature_2m_max": [45.0] * 7,
                "temperature_2m_min": [30.0] * 7,
            }
        },
    )


def test_hub_wires_clock_weather_and_screensaver(
    tmp_path: Path, scheduler: ManualScheduler, fixed_clock: FixedClock
) -> None:
    async def scenario():
        hub = build_hub(
            server_url="http://hub.local",
            db_path=tmp_path / "local.sqlite3",
            settings_path=tmp_path / "display_settings.json",
            scheduler=scheduler,
            clock=fixed_clock,
            remote_transport=httpx.MockTransport(_unreachable),
            weather_transport=httpx.MockTransport(_weather),
        )
        hub.start()
        assert (hub.time_text, hub.date_text) == ("02:05 PM", "Saturday, March 9, 2024")
        assert hub.view == "main"

        await hub.weather.settle()
        assert hub.weather.current.location == "Muskegon, Michigan"
        assert len(hub.weather.forecast) == 7

        fixed_clock.moment += timedelta(minutes=1)
        scheduler.advance(CLOCK_TICK_MS)
        assert hub.time_text == "02:06 PM"

        scheduler.advance(DEFAULT_INACTIVITY_TIMEOUT_MS)
        await hub.controller.settle()
        assert hub.view == "screensaver"
        assert hub.controller.player.placeholder == "No images uploaded. Click to return."

        await hub.close()

    asyncio.run(scenario())
    assert scheduler.pending == 0


def test_run_stops_when_asked(tmp_path: Path, fixed_clock: FixedClock) -> None:
    async def scenario():
        stop = asyncio.Event()
        stop.set()
        await run(
            stop,
            server_url="http://hub.local",
            db_path=tmp_path / "local.sqlite3",
            settings_path=tmp_path / "display_settings.json",
            clock=fixed_clock,
            remote_transport=httpx.MockTransport(_unreachable),
            weather_transport=httpx.MockTransport(_unreachable),
        )

    asyncio.run(scenario())
    assert (tmp_path / "display_settings.json").exists()
