import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class CoreSettings(BaseSettings):
    ENV: str = Field(default="development", validation_alias="APP_ENV")
    LOG_LEVEL: str = "INFO"

    INGEST_API_KEY: str = ""

    MAPBOX_TOKEN: str = ""
    MAPBOX_GEOCODE_URL: str = "https://api.mapbox.com/geocoding/v5/mapbox.places"
    GEOCODE_TIMEOUT_SECONDS: int = 10

    MATCHING_ENABLED: bool = True
    DEFAULT_PICKUP_RADIUS_MILES: float = 200.0
    DEFAULT_EXPIRY_MINUTES: int = 30
    EMAIL_BODY_MAX_CHARS: int = 50_000

    INBOUND_IMAP_HOST: str = ""
    INBOUND_IMAP_PORT: int = 993
    INBOUND_IMAP_USER: str = ""
    INBOUND_IMAP_PASSWORD: str = ""
    INBOUND_IMAP_MAILBOX: str = "INBOX"
    INBOUND_POLL_SECONDS: int = 10
    INBOUND_RECONNECT_SECONDS: int = 5

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CoreSettings()


def configure_logging(level: str | None = None) -> None:
    """Root logging setup shared by the API, the listener and the scripts."""
    raw_level = (level or settings.LOG_LEVEL or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, raw_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
