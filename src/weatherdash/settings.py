from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _validate_http_url(value: str, *, field_name: str) -> str:
    text = value.strip().rstrip("/")
    parsed = urlparse(text)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"{field_name} must be an absolute http(s) URL")
    return text


class WeatherApiSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    base_url: str = "https://api.weatherapi.com/v1"
    timeout_seconds: float = Field(default=10, gt=0, le=60)
    forecast_days: int = Field(default=7, ge=1, le=10)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        return _validate_http_url(value, field_name="weather_api.base_url")


class SearchSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    debounce_ms: int = Field(default=300, ge=0, le=5000)
    min_interval_ms: int = Field(default=300, ge=0, le=5000)


class LocationSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mode: Literal["auto", "manual"] = "auto"
    detect_on_startup: bool = True
    timeout_seconds: float = Field(default=10, gt=0, le=60)
    ip_lookup_url: str = "https://ipapi.co/json/"

    @field_validator("ip_lookup_url")
    @classmethod
    def validate_ip_lookup_url(cls, value: str) -> str:
        text = _validate_http_url(value, field_name="location.ip_lookup_url")
        return f"{text}/"


class WeatherdashYamlSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    weather_api: WeatherApiSettings = Field(default_factory=WeatherApiSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    location: LocationSettings = Field(default_factory=LocationSettings)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    weatherdash_env: Literal["dev", "test", "prod"] = "dev"
    weatherdash_timezone: str = "America/Los_Angeles"
    weatherdash_config_path: Path = Path("config/weatherdash.yaml")
    weatherapi_key: SecretStr = SecretStr("")

    @field_validator("weatherdash_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value


class AppSettings(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    env: EnvSettings
    yaml: WeatherdashYamlSettings
    project_root: Path
    config_path: Path
    timezone: ZoneInfo


def _resolve_project_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


def _load_yaml_settings(path: Path) -> WeatherdashYamlSettings:
    if not path.exists():
        raise FileNotFoundError(f"Weatherdash config file not found: {path}")

    raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError("Weatherdash config must be a YAML mapping/object at the top level")
    return WeatherdashYamlSettings.model_validate(raw_config)


def build_settings(env: EnvSettings) -> AppSettings:
    config_path = _resolve_project_path(env.weatherdash_config_path)
    return AppSettings(
        env=env,
        yaml=_load_yaml_settings(config_path),
        project_root=PROJECT_ROOT,
        config_path=config_path,
        timezone=ZoneInfo(env.weatherdash_timezone),
    )


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    return build_settings(EnvSettings())
