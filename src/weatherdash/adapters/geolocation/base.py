from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

from ...domain.models import GeolocationCoordinates


class GeolocationErrorCode(IntEnum):
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


class GeolocationPositionError(RuntimeError):
    """Raised when a geolocation capability cannot produce a position."""

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message or f"Geolocation error code {code}")
        self.code = code


@dataclass(frozen=True, slots=True)
class PositionOptions:
    enable_high_accuracy: bool = False
    timeout_ms: int = 10_000
    maximum_age_ms: int = 0


class GeolocationCapability(Protocol):
    async def get_current_position(self, options: PositionOptions) -> GeolocationCoordinates:
        """Resolve the current position or raise GeolocationPositionError."""
