from __future__ import annotations

import asyncio
import logging

from ..adapters.geolocation import (
    GeolocationCapability,
    GeolocationErrorCode,
    GeolocationPositionError,
    PositionOptions,
)
from ..domain.models import GeolocationFailure, GeolocationResult

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10

_FAILURES_BY_CODE: dict[int, GeolocationFailure] = {
    GeolocationErrorCode.PERMISSION_DENIED: "denied",
    GeolocationErrorCode.POSITION_UNAVAILABLE: "unavailable",
    GeolocationErrorCode.TIMEOUT: "timeout",
}


class LocationProvider:
    """One-shot geolocation probe that reports failures instead of raising."""

    def __init__(
        self,
        capability: GeolocationCapability | None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._capability = capability
        self._timeout_seconds = timeout_seconds

    @property
    def is_supported(self) -> bool:
        return self._capability is not None

    @property
    def position_options(self) -> PositionOptions:
        return PositionOptions(
            enable_high_accuracy=False,
            timeout_ms=int(self._timeout_seconds * 1000),
            maximum_age_ms=0,
        )

    async def get_location(self) -> GeolocationResult:
        if self._capability is None:
            return GeolocationResult.failed("unavailable")

        try:
            coordinates = await asyncio.wait_for(
                self._capability.get_current_position(self.position_options),
                timeout=self._timeout_seconds,
            )
        except GeolocationPositionError as exc:
            failure = _FAILURES_BY_CODE.get(exc.code, "unknown")
            LOGGER.debug("Geolocation failed (%s): %s", failure, exc)
            return GeolocationResult.failed(failure)
        except TimeoutError:
            LOGGER.debug("Geolocation timed out after %ss", self._timeout_seconds)
            return GeolocationResult.failed("timeout")
        except Exception:
            LOGGER.exception("Geolocation capability failed unexpectedly")
            return GeolocationResult.failed("unknown")

        return GeolocationResult.found(coordinates)
