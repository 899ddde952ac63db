"""Application settings read from environment variables."""

import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


APP_NAME = os.getenv("APP_NAME", "Solar Monitor Server")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
API_PREFIX = os.getenv("API_PREFIX", "/api")
WS_PATH = os.getenv("WS_PATH", "/ws")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Comma separated; "*" allows all origins (development default)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Defaults applied to installations created from device telemetry
DEFAULT_STATE = os.getenv("DEFAULT_STATE", "Karnataka")
DEFAULT_LOCATION = os.getenv("DEFAULT_LOCATION", "Arduino Device Location")
DEFAULT_DISTRICT = os.getenv("DEFAULT_DISTRICT", "Unknown District")
DEFAULT_LATITUDE = float(os.getenv("DEFAULT_LATITUDE", "15.3173"))
DEFAULT_LONGITUDE = float(os.getenv("DEFAULT_LONGITUDE", "75.7139"))

DEFAULT_READINGS_LIMIT = 10
MAX_READINGS_LIMIT = int(os.getenv("MAX_READINGS_LIMIT", "1000"))

# Upper bound for a single broadcast send to one peer
BROADCAST_SEND_TIMEOUT_SECONDS = float(os.getenv("BROADCAST_SEND_TIMEOUT_SECONDS", "5"))

SEED_SAMPLE_DATA = _env_bool("SEED_SAMPLE_DATA")

# Third-party APIs used by the proxy endpoints
OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY") or os.getenv("VITE_OPENWEATHER_API_KEY")
GOOGLE_SOLAR_API_KEY = os.getenv("GOOGLE_SOLAR_API_KEY") or os.getenv("VITE_GOOGLE_SOLAR_API_KEY")
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "10"))
UPSTREAM_USER_AGENT = os.getenv("UPSTREAM_USER_AGENT", "Karnataka Solar Monitor")
