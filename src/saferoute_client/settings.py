"""
saferoute_client.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for every component.
- Resolve the API base URL once, with local-development fallbacks per platform.
- Offer a cached settings instance for application entry points.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

Platform = Literal["android", "ios", "web", "desktop"]

# Local development only. The android emulator reaches the host loopback through 10.0.2.2.
_DEV_API_BASE_URLS: dict[str, str] = {
    "android": "http://10.0.2.2:20000",
    "ios": "http://localhost:20000",
    "web": "http://localhost:20000",
    "desktop": "http://localhost:20000",
}

AUTH0_DOMAIN_PLACEHOLDER = "YOUR_AUTH0_DOMAIN"
AUTH0_CLIENT_ID_PLACEHOLDER = "YOUR_AUTH0_CLIENT_ID"


class Settings(BaseSettings):
    """
    Constructed once at application start and passed by reference to every component.
    Tests build it directly with fake values.
    """

    model_config = SettingsConfigDict(env_prefix="SAFEROUTE_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "saferoute-client"
    log_level: str = "INFO"

    # Runtime target; drives base URL fallbacks and the default storage backend.
    platform: Platform = "desktop"

    # Backend API
    api_base_url: str | None = None
    request_timeout_s: float = Field(default=15.0, gt=0)

    # Identity provider (Auth0 tenant). Domain is a bare host name, no scheme.
    auth0_domain: str = AUTH0_DOMAIN_PLACEHOLDER
    auth0_client_id: str = AUTH0_CLIENT_ID_PLACEHOLDER
    auth0_audience: str | None = None
    auth0_realm: str = "Username-Password-Authentication"
    auth0_scope: str = "openid profile email offline_access"
    auth0_redirect_uri: str = "saferouteapp://auth/callback"
    token_refresh_leeway_s: int = Field(default=60, ge=0)

    # Credential storage
    storage_backend: Literal["auto", "keyring", "sql", "memory"] = "auto"
    keyring_service: str = "saferouteapp"
    storage_database_url: str = Field(
        default="sqlite+aiosqlite:///./saferoute_storage.db", repr=False
    )

    @model_validator(mode="after")
    def require_prod_base_url(self) -> Settings:
        # Fallback loopback URLs are a dev convenience and must never ship to prod.
        if self.env == "prod" and not self.api_base_url:
            raise ValueError("SAFEROUTE_API_BASE_URL must be set when env=prod")
        return self

    @property
    def api_base_url_resolved(self) -> str:
        base = self.api_base_url or _DEV_API_BASE_URLS[self.platform]
        return base.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for every component that asks.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Nothing in this package reads os.environ directly; everything flows through `Settings`.
