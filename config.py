from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from a local .env file if present
load_dotenv()


class Settings(BaseSettings):
    zoom_webhook_secret_token: str = Field(..., min_length=1)
    zoom_account_id: str = Field(..., min_length=1)
    zoom_client_id: str = Field(..., min_length=1)
    zoom_client_secret: str = Field(..., min_length=1)

    n8n_webhook_url: str = Field(..., min_length=1)
    n8n_start_webhook_url: Optional[str] = None

    zoom_api_base_url: str = "https://api.zoom.us/v2"
    zoom_oauth_url: str = "https://zoom.us/oauth/token"

    token_timeout_seconds: float = 10.0
    page_timeout_seconds: float = 10.0
    delivery_timeout_seconds: float = 30.0
    start_delivery_timeout_seconds: float = 10.0

    page_size: int = Field(default=300, ge=1, le=300)
    max_pages: int = Field(default=1000, ge=1)

    webhook_timestamp_tolerance_seconds: Optional[int] = Field(default=None, ge=1)
    proxy_api_key: Optional[str] = None

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    @property
    def start_webhook_url(self) -> str:
        return self.n8n_start_webhook_url or self.n8n_webhook_url


def load_settings(**overrides) -> Settings:
    """
    Build the process-wide settings once at startup.

    Raises RuntimeError naming the missing variables so the process refuses to start.
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        missing_keys = [str(err["loc"][0]).upper() for err in exc.errors() if err["loc"]]
        raise RuntimeError(f"Missing or invalid environment variables: {missing_keys}") from exc
