from __future__ import annotations

import logging
from typing import Any

import aiohttp

from ...domain.models import GeolocationCoordinates
from .base import GeolocationErrorCode, GeolocationPositionError, PositionOptions

LOGGER = logging.getLogger(__name__)

IP_GEOLOCATION_URL = "https://ipapi.co/json/"
# IP lookups resolve to a city, not a device fix.
IP_LOOKUP_ACCURACY_METERS = 5000.0


def _coerce_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class IpGeolocationCapability:
    """Approximate the caller's position from its public IP address."""

    def __init__(
        self,
        *,
        url: str = IP_GEOLOCATION_URL,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._url = url
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(headers={"User-Agent": "weatherdash/0.1"})
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def get_current_position(self, options: PositionOptions) -> GeolocationCoordinates:
        session = await self._get_session()
        timeout = aiohttp.ClientTimeout(total=options.timeout_ms / 1000)
        try:
            async with session.get(self._url, timeout=timeout) as response:
                if response.status in (401, 403):
                    raise GeolocationPositionError(
                        GeolocationErrorCode.PERMISSION_DENIED,
                        f"IP lookup refused with HTTP {response.status}",
                    )
                if response.status >= 400:
                    raise GeolocationPositionError(
                        GeolocationErrorCode.POSITION_UNAVAILABLE,
                        f"IP lookup failed with HTTP {response.status}",
                    )
                payload = await response.json(content_type=None)
        except TimeoutError as exc:
            raise GeolocationPositionError(GeolocationErrorCode.TIMEOUT, "IP lookup timed out") from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise GeolocationPositionError(
                GeolocationErrorCode.POSITION_UNAVAILABLE, f"IP lookup failed: {exc}"
            ) from exc

        if not isinstance(payload, dict) or payload.get("error"):
            reason = payload.get("reason") if isinstance(payload, dict) else None
            raise GeolocationPositionError(
                GeolocationErrorCode.POSITION_UNAVAILABLE,
                f"IP lookup returned an error payload: {reason or 'unexpected shape'}",
            )

        lat = _coerce_float(payload.get("latitude"))
        lon = _coerce_float(payload.get("longitude"))
        if lat is None or lon is None:
            raise GeolocationPositionError(
                GeolocationErrorCode.POSITION_UNAVAILABLE, "IP lookup returned no coordinates"
            )

        LOGGER.debug("IP lookup resolved position for %s", payload.get("city") or "unknown city")
        return GeolocationCoordinates(
            latitude=lat,
            longitude=lon,
            accuracy=IP_LOOKUP_ACCURACY_METERS,
        )
