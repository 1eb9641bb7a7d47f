"""Runtime configuration read from the environment (.env supported)."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Settings for the API client, dataset freshness and polling."""

    api_url: str = "http://localhost:3000"
    api_token: str | None = None
    request_timeout: float = 10.0
    locations_ttl: float = 5 * 60
    suggestions_ttl: float = 2 * 60
    notifications_poll_interval: float = 15.0
    default_city: str = "Vadodara"
    coalesce_fetches: bool = False
    max_cached_cities: int = 32
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        return cls(
            api_url=os.getenv("RIDESHARE_API_URL", cls.api_url),
            api_token=os.getenv("RIDESHARE_API_TOKEN") or None,
            request_timeout=float(os.getenv("REQUEST_TIMEOUT_SECONDS", cls.request_timeout)),
            locations_ttl=float(os.getenv("LOCATIONS_TTL_SECONDS", cls.locations_ttl)),
            suggestions_ttl=float(os.getenv("SUGGESTIONS_TTL_SECONDS", cls.suggestions_ttl)),
            notifications_poll_interval=float(
                os.getenv("NOTIFICATIONS_POLL_SECONDS", cls.notifications_poll_interval)
            ),
            default_city=os.getenv("DEFAULT_CITY", cls.default_city),
            coalesce_fetches=_env_bool("COALESCE_FETCHES", cls.coalesce_fetches),
            max_cached_cities=int(os.getenv("MAX_CACHED_CITIES", cls.max_cached_cities)),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
