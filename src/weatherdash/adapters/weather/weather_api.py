"""WeatherAPI.com client.

Searches locations via ``/search.json`` and fetches current conditions plus
hourly and daily forecasts via ``/forecast.json``. Only metric fields of the
provider payload are read; imperial duplicates are dropped by the DTOs below.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import date, datetime, timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ...domain.errors import ErrorKind, WeatherError, classify_exception, create_weather_error, validate_location_search
from ...domain.models import CurrentWeather, DailyEntry, HourlyEntry, Location, WeatherSnapshot
from .base import WeatherAdapterError

LOGGER = logging.getLogger(__name__)

WEATHERAPI_BASE_URL = "https://api.weatherapi.com/v1"
DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_FORECAST_DAYS = 7
DEFAULT_MIN_SEARCH_INTERVAL_SECONDS = 0.3
MAX_HOURLY_ENTRIES = 12
MAX_DAILY_ENTRIES = 7

SUPERSEDED_SEARCH_DETAILS = "Search request was superseded by a newer search"


# --- DTOs ---


class WeatherApiCondition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str = ""
    icon: str = ""


class WeatherApiLocation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    region: str = ""
    country: str = ""
    lat: float
    lon: float
    tz_id: str | None = None


class WeatherApiCurrent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    temp_c: float
    condition: WeatherApiCondition = Field(default_factory=WeatherApiCondition)
    wind_kph: float
    humidity: float


class WeatherApiHour(BaseModel):
    model_config = ConfigDict(extra="ignore")

    time_epoch: int
    temp_c: float
    condition: WeatherApiCondition = Field(default_factory=WeatherApiCondition)
    wind_kph: float
    humidity: float
    chance_of_rain: int = 0


class WeatherApiDay(BaseModel):
    model_config = ConfigDict(extra="ignore")

    maxtemp_c: float
    mintemp_c: float
    condition: WeatherApiCondition = Field(default_factory=WeatherApiCondition)
    daily_chance_of_rain: int = 0


class WeatherApiForecastDay(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: date
    day: WeatherApiDay
    hour: list[WeatherApiHour] = Field(default_factory=list)


class WeatherApiForecast(BaseModel):
    model_config = ConfigDict(extra="ignore")

    forecastday: list[WeatherApiForecastDay] = Field(default_factory=list)


class WeatherApiForecastResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    location: WeatherApiLocation
    current: WeatherApiCurrent
    forecast: WeatherApiForecast = Field(default_factory=WeatherApiForecast)


class WeatherApiSearchRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    region: str = ""
    country: str = ""
    lat: float
    lon: float


# --- Transformation ---


def _icon_url(icon: str) -> str:
    if icon.startswith("//"):
        return f"https:{icon}"
    return icon


def _location_timezone(tz_id: str | None) -> tzinfo:
    if not tz_id:
        return timezone.utc
    try:
        return ZoneInfo(tz_id)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def _to_location(record: WeatherApiLocation | WeatherApiSearchRecord) -> Location:
    return Location(
        name=record.name,
        region=record.region,
        country=record.country,
        lat=record.lat,
        lon=record.lon,
    )


def parse_search_results(payload: Any) -> list[Location]:
    if not isinstance(payload, list):
        raise WeatherAdapterError("Unexpected WeatherAPI search response shape")
    try:
        records = [WeatherApiSearchRecord.model_validate(item) for item in payload]
        return [_to_location(record) for record in records]
    except ValidationError as exc:
        raise WeatherAdapterError("WeatherAPI search response was incomplete") from exc


def parse_forecast(payload: Any, *, now: datetime) -> WeatherSnapshot:
    if not isinstance(payload, dict):
        raise WeatherAdapterError("Unexpected WeatherAPI forecast response shape")
    try:
        response = WeatherApiForecastResponse.model_validate(payload)
    except ValidationError as exc:
        raise WeatherAdapterError("WeatherAPI forecast response was incomplete") from exc

    local_tz = _location_timezone(response.location.tz_id)
    current = CurrentWeather(
        location=_to_location(response.location),
        temperature=response.current.temp_c,
        condition=response.current.condition.text,
        condition_icon=_icon_url(response.current.condition.icon),
        humidity=response.current.humidity,
        wind_speed=response.current.wind_kph,
        last_updated=now,
    )

    hourly: list[HourlyEntry] = []
    for forecast_day in response.forecast.forecastday:
        for hour in forecast_day.hour:
            if len(hourly) >= MAX_HOURLY_ENTRIES:
                break
            hour_time = datetime.fromtimestamp(hour.time_epoch, tz=local_tz)
            if hour_time <= now:
                continue
            hourly.append(
                HourlyEntry(
                    time=hour_time,
                    temperature=hour.temp_c,
                    condition=hour.condition.text,
                    condition_icon=_icon_url(hour.condition.icon),
                    wind_speed=hour.wind_kph,
                    humidity=hour.humidity,
                    precipitation_chance=hour.chance_of_rain,
                )
            )

    daily = [
        DailyEntry(
            date=forecast_day.date,
            high_temperature=forecast_day.day.maxtemp_c,
            low_temperature=forecast_day.day.mintemp_c,
            condition=forecast_day.day.condition.text,
            condition_icon=_icon_url(forecast_day.day.condition.icon),
            precipitation_chance=forecast_day.day.daily_chance_of_rain,
        )
        for forecast_day in response.forecast.forecastday[:MAX_DAILY_ENTRIES]
    ]

    return WeatherSnapshot(current=current, hourly=hourly, daily=daily)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# --- Client ---


class WeatherApiGateway:
    """Gateway to WeatherAPI.com that returns WeatherError values instead of raising."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = WEATHERAPI_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        forecast_days: int = DEFAULT_FORECAST_DAYS,
        min_search_interval_seconds: float = DEFAULT_MIN_SEARCH_INTERVAL_SECONDS,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._forecast_days = min(max(forecast_days, 1), 10)
        self._min_search_interval = min_search_interval_seconds
        self._session = session
        self._owns_session = session is None
        self._clock = clock
        self._now = now

        self._search_generation = 0
        self._search_request: asyncio.Future[Any] | None = None
        self._last_search_at: float | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if we own it."""
        self.cancel_search()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        session = await self._get_session()
        url = f"{self._base_url}{path}"
        async with session.get(
            url,
            params={"key": self._api_key, **params},
            timeout=self._timeout,
        ) as response:
            LOGGER.debug("WeatherAPI %s responded with HTTP %s", path, response.status)
            response.raise_for_status()
            return await response.json(content_type=None)

    def cancel_search(self) -> None:
        """Retire the in-flight search, if any. Its caller receives a TIMEOUT error."""
        self._search_generation += 1
        request = self._search_request
        self._search_request = None
        if request is not None and not request.done():
            LOGGER.debug("Cancelling in-flight location search")
            request.cancel()

    async def search_locations(self, query: str) -> list[Location] | WeatherError:
        self.cancel_search()

        validation_error = validate_location_search(query)
        if validation_error is not None:
            return validation_error

        dispatched_at = self._clock()
        if (
            self._last_search_at is not None
            and dispatched_at - self._last_search_at < self._min_search_interval
        ):
            LOGGER.debug("Location search for %r suppressed by minimum interval", query)
            return []
        self._last_search_at = dispatched_at

        generation = self._search_generation
        request = asyncio.ensure_future(self._get_json("/search.json", {"q": query}))
        self._search_request = request
        LOGGER.info("Searching WeatherAPI locations for %r", query)

        try:
            payload = await request
            if generation != self._search_generation:
                return create_weather_error(ErrorKind.TIMEOUT, SUPERSEDED_SEARCH_DETAILS)
            return parse_search_results(payload)
        except asyncio.CancelledError:
            current_task = asyncio.current_task()
            if current_task is not None and current_task.cancelling():
                raise
            LOGGER.debug("Location search for %r was superseded", query)
            return create_weather_error(ErrorKind.TIMEOUT, SUPERSEDED_SEARCH_DETAILS)
        except (aiohttp.ClientError, TimeoutError, WeatherAdapterError, ValueError) as exc:
            error = classify_exception(exc)
            LOGGER.warning("Location search for %r failed (%s): %s", query, error.type.value, exc)
            return error
        finally:
            if self._search_request is request:
                self._search_request = None

    async def get_weather_by_coordinates(self, lat: float, lon: float) -> WeatherSnapshot | WeatherError:
        params = {
            "q": f"{lat},{lon}",
            "days": str(self._forecast_days),
            "aqi": "no",
            "alerts": "no",
        }
        LOGGER.info("Fetching WeatherAPI forecast for %s,%s", lat, lon)
        try:
            payload = await self._get_json("/forecast.json", params)
            return parse_forecast(payload, now=self._now())
        except (aiohttp.ClientError, TimeoutError, WeatherAdapterError, ValueError) as exc:
            error = classify_exception(exc)
            LOGGER.warning("Forecast fetch for %s,%s failed (%s): %s", lat, lon, error.type.value, exc)
            return error
