"""Conversions between the metric storage units and the display unit.

Weather is stored in Celsius and km/h. Fahrenheit mode shows temperatures in
Fahrenheit and wind speed in mph; Celsius mode shows the stored values.
"""

from __future__ import annotations

from .models import TemperatureUnit

KMH_TO_MPH = 0.621371


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def fahrenheit_to_celsius(fahrenheit: float) -> float:
    return (fahrenheit - 32) * 5 / 9


def kmh_to_mph(kmh: float) -> float:
    return kmh * KMH_TO_MPH


def mph_to_kmh(mph: float) -> float:
    return mph / KMH_TO_MPH


def to_display_temperature(celsius: float, unit: TemperatureUnit) -> float:
    if unit is TemperatureUnit.CELSIUS:
        return celsius
    return celsius_to_fahrenheit(celsius)


def to_display_wind_speed(kmh: float, unit: TemperatureUnit) -> float:
    if unit is TemperatureUnit.CELSIUS:
        return kmh
    return kmh_to_mph(kmh)


def wind_speed_unit_label(unit: TemperatureUnit) -> str:
    return "km/h" if unit is TemperatureUnit.CELSIUS else "mph"


def format_temperature(celsius: float, unit: TemperatureUnit) -> str:
    value = to_display_temperature(celsius, unit)
    return f"{round(value)}°{unit.value}"
