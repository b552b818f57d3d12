from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .adapters.geolocation import IpGeolocationCapability
from .adapters.weather import WeatherApiGateway
from .domain.models import Location
from .domain.units import wind_speed_unit_label
from .location.service import LocationProvider
from .search.controller import SearchInputController, bind_search_controller
from .session import WeatherSession
from .settings import AppSettings, load_settings

LOGGER = logging.getLogger(__name__)


class SearchRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    query: str = ""


class SearchInputRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str = ""


class SearchKeyRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str


class SelectRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    location: Location


class CoordinatesRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


def build_session(
    settings: AppSettings,
) -> tuple[WeatherSession, WeatherApiGateway, IpGeolocationCapability | None]:
    api_settings = settings.yaml.weather_api
    location_settings = settings.yaml.location

    gateway = WeatherApiGateway(
        settings.env.weatherapi_key.get_secret_value(),
        base_url=api_settings.base_url,
        timeout_seconds=api_settings.timeout_seconds,
        forecast_days=api_settings.forecast_days,
        min_search_interval_seconds=settings.yaml.search.min_interval_ms / 1000,
    )
    capability = None
    if location_settings.mode == "auto":
        capability = IpGeolocationCapability(url=location_settings.ip_lookup_url)
    provider = LocationProvider(capability, timeout_seconds=location_settings.timeout_seconds)
    session = WeatherSession(gateway, provider, timezone=settings.timezone)
    return session, gateway, capability


def _dump(value: BaseModel | None) -> dict[str, Any] | None:
    if value is None:
        return None
    return value.model_dump(mode="json")


def session_payload(session: WeatherSession) -> dict[str, Any]:
    unit = session.temperature_unit
    return {
        "current_location": _dump(session.current_location),
        "temperature_unit": unit.value,
        "wind_speed_unit": wind_speed_unit_label(unit),
        "is_loading": session.is_loading,
        "is_searching": session.is_searching,
        "is_loading_weather": session.is_loading_weather,
        "is_refreshing": session.is_refreshing,
        "search_error": _dump(session.search_error),
        "weather_error": _dump(session.weather_error),
        "search_results": [location.model_dump(mode="json") for location in session.search_results],
        "last_search_query": session.last_search_query,
        "last_updated": session.last_updated.isoformat() if session.last_updated else None,
        "formatted_last_updated": session.formatted_last_updated,
        "current_weather": _dump(session.current_weather_for_display),
        "hourly_forecast": [entry.model_dump(mode="json") for entry in session.hourly_forecast_for_display],
        "daily_forecast": [entry.model_dump(mode="json") for entry in session.daily_forecast_for_display],
    }


def _get_session(request: Request) -> WeatherSession:
    return request.app.state.session


def _get_search_controller(request: Request) -> SearchInputController:
    return request.app.state.search_controller


def _search_box_payload(request: Request, *, handled: bool | None = None) -> dict[str, Any]:
    controller = _get_search_controller(request)
    payload: dict[str, Any] = {
        "search_box": controller.snapshot(),
        **session_payload(_get_session(request)),
    }
    payload["search_results"] = [location.model_dump(mode="json") for location in controller.results]
    if handled is not None:
        payload["handled"] = handled
    return payload


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = load_settings()
    session, gateway, capability = build_session(settings)

    application.state.settings = settings
    application.state.session = session
    application.state.search_controller = bind_search_controller(
        session,
        debounce_seconds=settings.yaml.search.debounce_ms / 1000,
    )
    application.state.started_at_utc = datetime.now(timezone.utc)

    if settings.yaml.location.detect_on_startup:
        detected = await session.try_detect_location()
        LOGGER.info("Startup location detection %s", "succeeded" if detected else "did not find a location")

    try:
        yield
    finally:
        application.state.search_controller.cancel()
        await gateway.close()
        if capability is not None:
            await capability.close()


app = FastAPI(title="Weather Dashboard", version="0.1.0", lifespan=lifespan)


@app.get("/health", response_class=JSONResponse)
async def health(request: Request) -> JSONResponse:
    settings: AppSettings | None = getattr(request.app.state, "settings", None)
    return JSONResponse(
        {
            "status": "ok",
            "service": "weatherdash",
            "environment": settings.env.weatherdash_env if settings else None,
            "timezone": settings.env.weatherdash_timezone if settings else None,
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
    )


@app.get("/api/session", response_class=JSONResponse)
async def get_session_state(request: Request) -> JSONResponse:
    return JSONResponse(session_payload(_get_session(request)))


@app.post("/api/search", response_class=JSONResponse)
async def search(request: Request, body: SearchRequest) -> JSONResponse:
    session = _get_session(request)
    await session.search_locations(body.query)
    return JSONResponse(session_payload(session))


@app.post("/api/search/reset", response_class=JSONResponse)
async def reset_search(request: Request) -> JSONResponse:
    session = _get_session(request)
    session.reset_search()
    return JSONResponse(session_payload(session))


@app.get("/api/search-box", response_class=JSONResponse)
async def get_search_box(request: Request) -> JSONResponse:
    return JSONResponse(_search_box_payload(request))


@app.post("/api/search-box/input", response_class=JSONResponse)
async def search_box_input(request: Request, body: SearchInputRequest) -> JSONResponse:
    _get_search_controller(request).input(body.text)
    return JSONResponse(_search_box_payload(request))


@app.post("/api/search-box/key", response_class=JSONResponse)
async def search_box_key(request: Request, body: SearchKeyRequest) -> JSONResponse:
    handled = await _get_search_controller(request).key_down(body.key)
    return JSONResponse(_search_box_payload(request, handled=handled))


@app.post("/api/search-box/focus", response_class=JSONResponse)
async def search_box_focus(request: Request) -> JSONResponse:
    _get_search_controller(request).focus()
    return JSONResponse(_search_box_payload(request))


@app.post("/api/search-box/blur", response_class=JSONResponse)
async def search_box_blur(request: Request) -> JSONResponse:
    _get_search_controller(request).blur()
    return JSONResponse(_search_box_payload(request))


@app.post("/api/select", response_class=JSONResponse)
async def select(request: Request, body: SelectRequest) -> JSONResponse:
    session = _get_session(request)
    await session.select_location(body.location)
    return JSONResponse(session_payload(session))


@app.post("/api/weather", response_class=JSONResponse)
async def fetch_weather(request: Request, body: CoordinatesRequest) -> JSONResponse:
    session = _get_session(request)
    await session.fetch_weather(body.lat, body.lon)
    return JSONResponse(session_payload(session))


@app.post("/api/refresh", response_class=JSONResponse)
async def refresh(request: Request) -> JSONResponse:
    session = _get_session(request)
    await session.refresh_weather()
    return JSONResponse(session_payload(session))


@app.post("/api/unit/toggle", response_class=JSONResponse)
async def toggle_unit(request: Request) -> JSONResponse:
    session = _get_session(request)
    session.toggle_temperature_unit()
    return JSONResponse(session_payload(session))


@app.post("/api/location/detect", response_class=JSONResponse)
async def detect_location(request: Request) -> JSONResponse:
    session = _get_session(request)
    detected = await session.try_detect_location()
    return JSONResponse({"detected": detected, **session_payload(session)})


@app.post("/api/reset", response_class=JSONResponse)
async def reset(request: Request) -> JSONResponse:
    session = _get_session(request)
    session.reset()
    return JSONResponse(session_payload(session))
