"""Central environment-driven settings for the storefront payment service.

Loaded once at import time. Gateway credentials have no defaults, so a missing
value fails the process at startup instead of on the first checkout
(see `.env.example`).
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


MPESA_BASE_URLS: dict[str, str] = {
    "sandbox": "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "paperpay-api"
    log_level: str = "INFO"
    database_dsn: str
    redis_url: str = ""
    otel_exporter_otlp_endpoint: str = ""

    mpesa_consumer_key: str
    mpesa_consumer_secret: str
    mpesa_business_short_code: str
    mpesa_passkey: str
    mpesa_environment: Literal["sandbox", "production"]
    mpesa_callback_url: str
    mpesa_timeout_seconds: float = 10.0
    mpesa_account_reference: str = "PastPapers"
    mpesa_transaction_desc: str = "Past papers purchase"

    status_cache_ttl_seconds: int = 3600
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def mpesa_base_url(self) -> str:
        return MPESA_BASE_URLS[self.mpesa_environment]


settings = CommonSettings()
