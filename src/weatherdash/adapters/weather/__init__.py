from .base import WeatherAdapterError, WeatherGateway
from .weather_api import WeatherApiGateway

__all__ = ["WeatherAdapterError", "WeatherApiGateway", "WeatherGateway"]
