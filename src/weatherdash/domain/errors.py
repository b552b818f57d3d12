"""Classification of failures into user-facing weather errors.

Every failure the dashboard can surface maps to one of a closed set of kinds.
A kind fixes the message, suggestion and retry flag; the triggering failure
only contributes ``technical_details``, which is meant for logs.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import NamedTuple

import aiohttp
from pydantic import BaseModel, ConfigDict

MIN_QUERY_LENGTH = 2


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    LOCATION_NOT_FOUND = "not_found"
    NETWORK = "network"
    API = "api"
    TIMEOUT = "timeout"
    GEOLOCATION_DENIED = "geo_denied"
    GEOLOCATION_UNAVAILABLE = "geo_unavailable"
    UNKNOWN = "unknown"


class WeatherError(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    type: ErrorKind
    message: str
    suggestion: str
    technical_details: str | None = None
    retryable: bool


class _ErrorCopy(NamedTuple):
    message: str
    suggestion: str
    retryable: bool


ERROR_COPY: dict[ErrorKind, _ErrorCopy] = {
    ErrorKind.VALIDATION: _ErrorCopy(
        "Please enter a valid location (city name or zip code).",
        "Try a different search term.",
        True,
    ),
    ErrorKind.LOCATION_NOT_FOUND: _ErrorCopy(
        "No locations match your criteria. Please try a different search.",
        "Search for a nearby city or try a different spelling.",
        True,
    ),
    ErrorKind.NETWORK: _ErrorCopy(
        "Unable to connect. Please check your internet and try again.",
        "Check your connection and retry.",
        True,
    ),
    ErrorKind.API: _ErrorCopy(
        "Weather service unavailable. Please try again later.",
        "Try again in a few moments.",
        True,
    ),
    ErrorKind.TIMEOUT: _ErrorCopy(
        "Request took too long. Please try again.",
        "Check your connection and retry.",
        True,
    ),
    ErrorKind.GEOLOCATION_DENIED: _ErrorCopy(
        "Location permission denied. Please use the search box to find a location.",
        "You can search for a location manually.",
        False,
    ),
    ErrorKind.GEOLOCATION_UNAVAILABLE: _ErrorCopy(
        "Your location could not be determined. Please use the search box.",
        "You can search for a location manually.",
        False,
    ),
    ErrorKind.UNKNOWN: _ErrorCopy(
        "An unexpected error occurred. Please try again.",
        "If the problem persists, try refreshing the page.",
        True,
    ),
}


def create_weather_error(kind: ErrorKind, technical_details: str | None = None) -> WeatherError:
    copy = ERROR_COPY.get(kind, ERROR_COPY[ErrorKind.UNKNOWN])
    return WeatherError(
        type=kind,
        message=copy.message,
        suggestion=copy.suggestion,
        technical_details=technical_details,
        retryable=copy.retryable,
    )


def validate_location_search(query: str | None) -> WeatherError | None:
    text = (query or "").strip()
    if not text:
        return create_weather_error(ErrorKind.VALIDATION, "Empty search query")
    if len(text) < MIN_QUERY_LENGTH:
        return create_weather_error(ErrorKind.VALIDATION, "Search query too short")
    return None


def classify_http_status(status: int, reason: str | None = None) -> WeatherError:
    details = f"HTTP {status}: {reason}" if reason else f"HTTP {status}"
    if status == 404:
        return create_weather_error(ErrorKind.LOCATION_NOT_FOUND, details)
    if status >= 500:
        return create_weather_error(ErrorKind.API, details)
    if status == 429:
        return create_weather_error(ErrorKind.API, "Too many requests - rate limited")
    return create_weather_error(ErrorKind.UNKNOWN, details)


def _describe(exc: BaseException) -> str:
    text = str(exc)
    if text:
        return f"{type(exc).__name__}: {text}"
    return type(exc).__name__


def classify_exception(exc: BaseException) -> WeatherError:
    # aiohttp's client timeouts are both connection errors and TimeoutErrors.
    if isinstance(exc, (asyncio.CancelledError, TimeoutError)):
        return create_weather_error(ErrorKind.TIMEOUT, "Request was aborted or timed out")

    if isinstance(exc, aiohttp.ClientResponseError):
        return classify_http_status(exc.status, exc.message)

    if isinstance(exc, (aiohttp.ClientConnectionError, ConnectionError)):
        return create_weather_error(ErrorKind.NETWORK, _describe(exc))

    message = str(exc).lower()
    if "not found" in message or "no matching" in message:
        return create_weather_error(ErrorKind.LOCATION_NOT_FOUND, str(exc))
    if "api" in message or "service" in message:
        return create_weather_error(ErrorKind.API, str(exc))
    if "timeout" in message:
        return create_weather_error(ErrorKind.TIMEOUT, str(exc))

    return create_weather_error(ErrorKind.UNKNOWN, _describe(exc))


GEOLOCATION_ERROR_KINDS: dict[str, ErrorKind] = {
    "denied": ErrorKind.GEOLOCATION_DENIED,
    "unavailable": ErrorKind.GEOLOCATION_UNAVAILABLE,
    "timeout": ErrorKind.TIMEOUT,
}


def classify_geolocation_failure(code: str | None) -> WeatherError:
    kind = GEOLOCATION_ERROR_KINDS.get(code or "", ErrorKind.UNKNOWN)
    return create_weather_error(kind, f"Geolocation failed: {code or 'unknown'}")
