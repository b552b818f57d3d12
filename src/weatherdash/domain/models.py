from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def format_coordinate(value: float) -> str:
    text = repr(float(value))
    if text.endswith(".0"):
        return text[:-2]
    return text


def location_id(lat: float, lon: float) -> str:
    return f"{format_coordinate(lat)}:{format_coordinate(lon)}"


class TemperatureUnit(str, Enum):
    FAHRENHEIT = "F"
    CELSIUS = "C"


class Location(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = ""
    region: str = ""
    country: str = ""
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)

    @field_validator("name", "region", "country", mode="before")
    @classmethod
    def normalize_text(cls, value: object) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return location_id(self.lat, self.lon)

    def is_same_place(self, other: Location) -> bool:
        return self.lat == other.lat and self.lon == other.lon

    @property
    def label(self) -> str:
        parts = [part for part in (self.name, self.region, self.country) if part]
        if parts:
            return ", ".join(parts)
        return self.id


class CurrentWeather(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    location: Location
    temperature: float
    condition: str
    condition_icon: str = ""
    humidity: float = Field(ge=0, le=100)
    wind_speed: float
    last_updated: datetime


def _hour_label(value: datetime) -> str:
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{value.hour % 12 or 12}:{value.minute:02d} {suffix}"


class HourlyEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    time: datetime
    temperature: float
    condition: str
    condition_icon: str = ""
    wind_speed: float
    humidity: float = Field(ge=0, le=100)
    precipitation_chance: int = Field(default=0, ge=0, le=100)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def time_label(self) -> str:
        return _hour_label(self.time)


class DailyEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    date: date
    high_temperature: float
    low_temperature: float
    condition: str
    condition_icon: str = ""
    precipitation_chance: int = Field(default=0, ge=0, le=100)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def date_label(self) -> str:
        return f"{self.date:%a, %b} {self.date.day}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def day_of_week(self) -> str:
        return f"{self.date:%A}"


class WeatherSnapshot(BaseModel):
    """Weather for one location, always stored in metric units."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    current: CurrentWeather | None = None
    hourly: list[HourlyEntry] = Field(default_factory=list, max_length=12)
    daily: list[DailyEntry] = Field(default_factory=list, max_length=7)

    @classmethod
    def empty(cls) -> WeatherSnapshot:
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.current is None and not self.hourly and not self.daily


class GeolocationCoordinates(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float = Field(default=0.0, ge=0)


GeolocationFailure = Literal["denied", "unavailable", "timeout", "unknown"]


class GeolocationResult(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    success: bool
    coordinates: GeolocationCoordinates | None = None
    error: GeolocationFailure | None = None

    @classmethod
    def found(cls, coordinates: GeolocationCoordinates) -> GeolocationResult:
        return cls(success=True, coordinates=coordinates)

    @classmethod
    def failed(cls, error: GeolocationFailure) -> GeolocationResult:
        return cls(success=False, error=error)
