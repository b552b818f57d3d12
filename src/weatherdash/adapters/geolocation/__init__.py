from .base import (
    GeolocationCapability,
    GeolocationErrorCode,
    GeolocationPositionError,
    PositionOptions,
)
from .ip_lookup import IpGeolocationCapability

__all__ = [
    "GeolocationCapability",
    "GeolocationErrorCode",
    "GeolocationPositionError",
    "IpGeolocationCapability",
    "PositionOptions",
]
