from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

import httpx

from .clock import SystemTimeProvider, TimeProvider
from .config import FORECAST_CACHE_MS, WEATHER_LATITUDE, WEATHER_LONGITUDE, WEATHER_REFRESH_MS
from .errors import NetworkError
from .scheduler import RepeatingTimer, Scheduler, TaskTracker

logger = logging.getLogger(__name__)

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
REVERSE_GEOCODE_URL = "https://nominatim.openstreetmap.org/reverse"

# WMO weather interpretation codes -> (description, icon base name)
WEATHER_CODES = {
    0: ("Clear", "clear"),
    1: ("Mostly Clear", "cloudy-1"),
    2: ("Partly Cloudy", "cloudy-2"),
    3: ("Overcast", "cloudy-3"),
    45: ("Foggy", "fog"),
    48: ("Foggy", "fog"),
    51: ("Light Drizzle", "rainy-1"),
    53: ("Moderate Drizzle", "rainy-1"),
    55: ("Heavy Drizzle", "rainy-2"),
    61: ("Slight Rain", "rainy-1"),
    63: ("Moderate Rain", "rainy-2"),
    65: ("Heavy Rain", "rainy-3"),
    71: ("Slight Snow", "snowy-1"),
    73: ("Moderate Snow", "snowy-2"),
    75: ("Heavy Snow", "snowy-3"),
    77: ("Snow Grains", "snowy-1"),
    80: ("Slight Showers", "rainy-1"),
    81: ("Moderate Showers", "rainy-2"),
    82: ("Heavy Showers", "rainy-3"),
    85: ("Slight Snow Showers", "snowy-1"),
    86: ("Heavy Snow Showers", "snowy-3"),
    95: ("Thunderstorm", "thunderstorms"),
    96: ("Thunderstorm w/ Hail", "severe-thunderstorm"),
    99: ("Thunderstorm w/ Hail", "severe-thunderstorm"),
}

DAY_NIGHT_ICONS = {
    "clear",
    "cloudy-1",
    "cloudy-2",
    "cloudy-3",
    "fog",
    "frost",
    "haze",
    "rainy-1",
    "rainy-2",
    "rainy-3",
    "snowy-1",
    "snowy-2",
    "snowy-3",
    "isolated-thunderstorms",
    "scattered-thunderstorms",
}


def describe(code: int) -> str:
    return WEATHER_CODES.get(code, ("Unknown", None))[0]


def is_daytime(moment: datetime) -> bool:
    return 6 <= moment.hour < 18


def weather_icon(code: int, moment: datetime) -> str:
    """Icon filename for a weather code, picking the day or night variant."""
    entry = WEATHER_CODES.get(code)
    if entry is None:
        return "cloudy.svg"
    icon_base = entry[1]
    if icon_base in DAY_NIGHT_ICONS:
        return f"{icon_base}-day.svg" if is_daytime(moment) else f"{icon_base}-night.svg"
    return f"{icon_base}.svg"


@dataclass(frozen=True)
class CurrentWeather:
    temperature: int
    description: str
    humidity: int
    weather_code: int
    location: str
    icon: str


@dataclass(frozen=True)
class ForecastDay:
    day: date
    high: int
    low: int
    weather_code: int
    description: str
    icon: str


class WeatherService:
    def __init__(
        self,
        latitude: float = WEATHER_LATITUDE,
        longitude: float = WEATHER_LONGITUDE,
        clock: TimeProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.clock = clock or SystemTimeProvider()
        self.timeout = httpx.Timeout(15.0)
        self._transport = transport
        self._forecast: list[ForecastDay] | None = None
        self._forecast_fetched_at: datetime | None = None

    async def _get(self, url: str, params: dict[str, Any]) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(url, params=params, headers={"User-Agent": "smarthub"})
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as exc:
            raise NetworkError(f"Weather fetch failed: {exc}") from exc
        except ValueError as exc:
            raise NetworkError("Weather service returned an invalid body") from exc

    async def location_name(self) -> str:
        data = await self._get(
            REVERSE_GEOCODE_URL,
            {"format": "json", "lat": self.latitude, "lon": self.longitude},
        )
        if not isinstance(data, dict):
            raise NetworkError(f"Unexpected geocoding payload: {data!r}")
        address = data.get("address")
        if not isinstance(address, dict):
            address = {}
        city = address.get("city") or address.get("town") or address.get("village") or "Unknown"
        state = address.get("state")
        return f"{city}, {state}" if state else city

    async def current(self) -> CurrentWeather:
        data = await self._get(
            FORECAST_URL,
            {
                "latitude": self.latitude,
                "longitude": self.longitude,
                "current": "temperature_2m,weather_code,relative_humidity_2m",
                "temperature_unit": "fahrenheit",
            },
        )
        try:
            current = data["current"]
            code = int(current["weather_code"])
            temperature = round(current["temperature_2m"])
            humidity = current["relative_humidity_2m"]
        except (KeyError, TypeError, ValueError) as exc:
            raise NetworkError(f"Unexpected weather payload: {exc}") from exc

        try:
            location = await self.location_name()
        except NetworkError as exc:
            logger.warning("Reverse geocoding failed: %s", exc)
            location = "Unknown"

        return CurrentWeather(
            temperature=temperature,
            description=describe(code),
            humidity=humidity,
            weather_code=code,
            location=location,
            icon=weather_icon(code, self.clock.now()),
        )

    async def forecast(self) -> list[ForecastDay]:
        """Next seven days, served from cache for ten minutes."""
        now = self.clock.now()
        if (
            self._forecast is not None
            and self._forecast_fetched_at is not None
            and now - self._forecast_fetched_at < timedelta(milliseconds=FORECAST_CACHE_MS)
        ):
            return self._forecast

        data = await self._get(
            FORECAST_URL,
            {
                "latitude": self.latitude,
                "longitude": self.longitude,
                "daily": "weather_code,temperature_2m_max,temperature_2m_min",
                "temperature_unit": "fahrenheit",
                "timezone": "auto",
            },
        )
        try:
            daily = data["daily"]
            days = [
                ForecastDay(
                    day=date.fromisoformat(day),
                    high=round(daily["temperature_2m_max"][i]),
                    low=round(daily["temperature_2m_min"][i]),
                    weather_code=int(daily["weather_code"][i]),
                    description=describe(int(daily["weather_code"][i])),
                    icon=weather_icon(int(daily["weather_code"][i]), now),
                )
                for i, day in enumerate(daily["time"][:7])
            ]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise NetworkError(f"Unexpected forecast payload: {exc}") from exc

        self._forecast = days
        self._forecast_fetched_at = now
        return days


class WeatherFeed:
    """Keeps the latest conditions and forecast, refreshed on an interval.

    A failed refresh keeps the previous values.
    """

    def __init__(
        self,
        service: WeatherService,
        scheduler: Scheduler,
        interval_ms: int = WEATHER_REFRESH_MS,
    ) -> None:
        self.service = service
        self.interval_ms = interval_ms
        self.current: CurrentWeather | None = None
        self.forecast: list[ForecastDay] = []
        self._timer = RepeatingTimer(scheduler, "weather")
        self._tasks = TaskTracker()

    async def refresh(self) -> None:
        try:
            self.current = await self.service.current()
            self.forecast = await self.service.forecast()
        except NetworkError as exc:
            logger.warning("Weather refresh failed: %s", exc)

    def start(self) -> None:
        self._tasks.spawn(self.refresh(), "weather-refresh")
        self._timer.start(self.interval_ms, lambda: self._tasks.spawn(self.refresh(), "weather-refresh"))

    async def settle(self) -> None:
        await self._tasks.wait()

    async def stop(self) -> None:
        self._timer.cancel()
        await self._tasks.stop()


def day_label(index: int, day: date) -> str:
    return "Today" if index == 0 else day.strftime("%a")
