"""Application configuration."""

import logging

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeofenceRegion(BaseModel):
    """Named circular region used to classify a coordinate."""

    name: str
    latitude: float
    longitude: float
    radius_metres: float = Field(gt=0)


class BusStopPoints(BaseModel):
    """TfL stop points used for a bus route, by direction of travel."""

    at_home: str
    away: str


DEFAULT_BUS_STOP_POINTS: dict[str, BusStopPoints] = {
    "9": BusStopPoints(at_home="490013766H", away="490013766H"),
    "380": BusStopPoints(at_home="490013012S", away="490013012S"),
    "486": BusStopPoints(at_home="490001058H", away="490010374B"),
    "161": BusStopPoints(at_home="490010374A", away="490010374A"),
}

DEFAULT_GEOFENCES: list[GeofenceRegion] = [
    GeofenceRegion(name="home", latitude=51.4447, longitude=0.0345, radius_metres=250),
    GeofenceRegion(name="work", latitude=51.5077, longitude=-0.1277, radius_metres=250),
]


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # API Settings
    PROJECT_NAME: str = "Alfred Travel"
    DEBUG: bool = False

    # Shared key expected in the app_key query parameter
    APP_KEY: str | None = Field(default=None, validation_alias="SECRET_APP_KEY")

    # Upstream providers
    TFL_BASE_URL: str = "https://api.tfl.gov.uk"
    TFL_API_KEY: str | None = Field(default=None, validation_alias="SECRET_TFL_API_KEY")
    TRANSPORT_API_BASE_URL: str = "https://transportapi.com/v3/uk"
    TRANSPORT_API_APP_ID: str | None = Field(default=None, validation_alias="SECRET_TRANSPORT_API_APP_ID")
    TRANSPORT_API_KEY: str | None = Field(default=None, validation_alias="SECRET_TRANSPORT_API_KEY")

    # Clock times are rendered in this zone
    TIMEZONE: str = "Europe/London"

    # Fixed departure board (station the home board is read from)
    HOME_STATION: str = "CTN"
    TRAIN_PLATFORM: str = "1"
    TRAIN_DESTINATIONS: str = Field(default="CHX,CST", validate_default=True)

    @field_validator("TRAIN_DESTINATIONS", mode="after")
    @classmethod
    def parse_train_destinations(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated CRS codes or pass through list, upper-cased."""
        codes = v if isinstance(v, list) else v.split(",")
        return [code.strip().upper() for code in codes if code.strip()]

    # Supported bus routes and their stop points (JSON in the environment)
    BUS_STOP_POINTS: dict[str, BusStopPoints] = Field(default_factory=lambda: dict(DEFAULT_BUS_STOP_POINTS))

    # Geofence regions (JSON in the environment)
    GEOFENCES: list[GeofenceRegion] = Field(default_factory=lambda: list(DEFAULT_GEOFENCES))
    HOME_GEOFENCE: str = "home"

    # Optional JSON file replacing the built-in commute plan table
    COMMUTE_PLANS_PATH: str | None = None

    # OpenTelemetry Settings (for observability)
    OTEL_ENABLED: bool = False
    OTEL_SERVICE_NAME: str = "alfred-travel"
    OTEL_ENVIRONMENT: str = "production"
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: str | None = None
    OTEL_EXPORTER_OTLP_HEADERS: str | None = Field(default=None, validation_alias="SECRET_OTEL_HEADERS")
    OTEL_EXCLUDED_URLS: str = Field(default="/health,/ready", validate_default=True)

    @field_validator("OTEL_EXCLUDED_URLS", mode="after")
    @classmethod
    def parse_otel_excluded_urls(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated excluded URLs or pass through list, filtering out empty strings."""
        if isinstance(v, list):
            return [url for url in v if url]
        return [url.strip() for url in v.split(",") if url.strip()]

    # Logging Settings
    LOG_LEVEL: str = "INFO"

    @field_validator("LOG_LEVEL", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        normalized = v.upper()
        valid_levels = logging.getLevelNamesMapping()
        if normalized not in valid_levels:
            msg = f"Invalid LOG_LEVEL '{v}'. Must be one of: {', '.join(sorted(valid_levels.keys()))}"
            raise ValueError(msg)
        return normalized


settings = Settings()


def require_config(*field_names: str) -> None:
    """
    Validate that required configuration fields are set.

    Args:
        *field_names: Names of required configuration fields

    Raises:
        ValueError: If any required field is missing or None

    Example:
        from app.core.config import require_config
        require_config("TFL_API_KEY", "TRANSPORT_API_KEY")
    """
    missing = []
    for field in field_names:
        value = getattr(settings, field, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)

    if missing:
        msg = f"Required configuration missing: {', '.join(missing)}"
        raise ValueError(msg)
