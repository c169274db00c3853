"""
saferoute_client.identity.provider

HTTP client for the external identity provider (Auth0 tenant).

Responsibilities:
- Resource-owner password grant and refresh-token grant against `/oauth/token`.
- Fetch the user profile from `/userinfo`.
- Database-connection signup via `/dbconnections/signup`.
- Build the interactive `/authorize` URL (the browser flow itself is external).
- Report provider availability as an explicit init result instead of failing lazily.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict

from saferoute_client.errors import IdentityError, IdentityProviderUnavailable
from saferoute_client.settings import (
    AUTH0_CLIENT_ID_PLACEHOLDER,
    AUTH0_DOMAIN_PLACEHOLDER,
    Settings,
)


class TokenSet(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str | None = None
    id_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None
    scope: str | None = None


class UserProfile(BaseModel):
    # Providers add arbitrary claims; keep them all so the stored profile round-trips.
    model_config = ConfigDict(extra="allow")

    sub: str
    email: str | None = None
    name: str | None = None
    picture: str | None = None


def _error_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _login_error(data: dict[str, Any]) -> IdentityError:
    code = data.get("error")
    if code == "invalid_grant":
        return IdentityError("Invalid email or password", code=code)
    if code == "access_denied":
        return IdentityError("Account access has been denied", code=code)
    message = data.get("error_description") or data.get("message") or "Login failed. Please try again."
    return IdentityError(str(message), code=code)


def _signup_error(data: dict[str, Any]) -> IdentityError:
    code = data.get("code")
    if code == "invalid_signup":
        return IdentityError("This email is already registered", code=code)
    if code == "invalid_password":
        return IdentityError(
            str(data.get("description") or "Password does not meet requirements"), code=code
        )
    if data.get("name") == "PasswordStrengthError":
        return IdentityError(
            str(data.get("message") or "Password does not meet strength requirements"),
            code="PasswordStrengthError",
        )
    message = data.get("description") or data.get("message") or "Registration failed. Please try again."
    return IdentityError(str(message), code=code)


class IdentityProviderClient:
    def __init__(self, *, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http
        self._base_url = f"https://{settings.auth0_domain}"

    async def _token_request(self, payload: dict[str, Any]) -> TokenSet:
        payload = {"client_id": self._settings.auth0_client_id, **payload}
        if self._settings.auth0_audience:
            payload.setdefault("audience", self._settings.auth0_audience)
        r = await self._http.post(f"{self._base_url}/oauth/token", json=payload)
        if not r.is_success:
            raise _login_error(_error_payload(r))
        return TokenSet.model_validate(r.json())

    async def password_grant(self, *, username: str, password: str) -> TokenSet:
        return await self._token_request(
            {
                "grant_type": "password",
                "username": username.strip(),
                "password": password,
                "scope": self._settings.auth0_scope,
                "realm": self._settings.auth0_realm,
            }
        )

    async def refresh(self, *, refresh_token: str) -> TokenSet:
        return await self._token_request(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )

    async def userinfo(self, *, access_token: str) -> UserProfile:
        r = await self._http.get(
            f"{self._base_url}/userinfo",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not r.is_success:
            raise IdentityError("Failed to fetch user information", code=str(r.status_code))
        return UserProfile.model_validate(r.json())

    async def signup(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str | None = None,
    ) -> dict[str, Any]:
        metadata = {"first_name": first_name.strip(), "last_name": last_name.strip()}
        if phone and phone.strip():
            metadata["phone"] = phone.strip()
        r = await self._http.post(
            f"{self._base_url}/dbconnections/signup",
            json={
                "client_id": self._settings.auth0_client_id,
                "email": email.strip(),
                "password": password,
                "connection": self._settings.auth0_realm,
                "user_metadata": metadata,
            },
        )
        if not r.is_success:
            raise _signup_error(_error_payload(r))
        return r.json()

    def authorize_url(self, *, show_signup: bool = False, state: str | None = None) -> str:
        params: dict[str, str] = {
            "response_type": "code",
            "client_id": self._settings.auth0_client_id,
            "redirect_uri": self._settings.auth0_redirect_uri,
            "scope": self._settings.auth0_scope,
            # Always prompt, so cached provider sessions never skip the login screen.
            "prompt": "login",
        }
        if self._settings.auth0_audience:
            params["audience"] = self._settings.auth0_audience
        if show_signup:
            params["screen_hint"] = "signup"
        if state:
            params["state"] = state
        return str(httpx.URL(f"{self._base_url}/authorize", params=params))


@dataclass(frozen=True, slots=True)
class IdentityProviderInit:
    status: Literal["available", "unavailable"]
    client: IdentityProviderClient | None = None
    reason: str | None = None

    @property
    def available(self) -> bool:
        return self.status == "available"

    def require(self) -> IdentityProviderClient:
        if self.client is None:
            raise IdentityProviderUnavailable(
                f"Identity provider is not available: {self.reason or 'not configured'}"
            )
        return self.client


def create_identity_provider(*, settings: Settings, http: httpx.AsyncClient) -> IdentityProviderInit:
    domain = settings.auth0_domain.strip()
    client_id = settings.auth0_client_id.strip()
    if not domain or domain == AUTH0_DOMAIN_PLACEHOLDER:
        return IdentityProviderInit(status="unavailable", reason="auth0_domain is not configured")
    if not client_id or client_id == AUTH0_CLIENT_ID_PLACEHOLDER:
        return IdentityProviderInit(status="unavailable", reason="auth0_client_id is not configured")
    if "://" in domain:
        return IdentityProviderInit(
            status="unavailable", reason="auth0_domain must be a host name without a scheme"
        )
    return IdentityProviderInit(
        status="available", client=IdentityProviderClient(settings=settings, http=http)
    )


# --- Module Notes -----------------------------------------------------------
# Network failures (`httpx.TransportError`) propagate unchanged, same as the dispatcher.
