"""
saferoute_client.identity.session

Authenticated session lifecycle on top of the identity provider and credential store.

Responsibilities:
- Restore the signed-in user from storage at startup.
- Password login: persist tokens and profile, then verify the backend accepts them.
- Logout: remove every stored credential.
- Hand out the current access token, refreshing it when its JWT claims say it expired.
"""

from __future__ import annotations

import httpx

from saferoute_client.errors import SafeRouteError
from saferoute_client.http.dispatcher import AuthenticatedRequestDispatcher
from saferoute_client.identity.provider import IdentityProviderInit, TokenSet, UserProfile
from saferoute_client.identity.tokens import access_token_expired
from saferoute_client.observability.logging import get_logger
from saferoute_client.settings import Settings
from saferoute_client.storage.credentials import CredentialKey, CredentialStore

log = get_logger(__name__)

# Protected endpoint used to confirm the backend accepts freshly issued tokens.
BACKEND_VERIFY_ENDPOINT = "/v1/users/me"


class AuthSession:
    def __init__(
        self,
        *,
        settings: Settings,
        store: CredentialStore,
        provider: IdentityProviderInit,
        dispatcher: AuthenticatedRequestDispatcher,
    ) -> None:
        self._settings = settings
        self._store = store
        self._provider = provider
        self._dispatcher = dispatcher
        self.user: UserProfile | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    async def restore(self) -> UserProfile | None:
        # Trust local storage at startup; an expired session shows up on the first 401.
        data = await self._store.get_json(CredentialKey.user)
        if data is None:
            self.user = None
            return None
        try:
            self.user = UserProfile.model_validate(data)
        except ValueError:
            log.warning("identity_stored_user_invalid")
            self.user = None
        return self.user

    async def _save_tokens(self, tokens: TokenSet) -> None:
        await self._store.set(CredentialKey.access_token, tokens.access_token)
        if tokens.refresh_token:
            await self._store.set(CredentialKey.refresh_token, tokens.refresh_token)

    async def login(self, *, email: str, password: str) -> UserProfile:
        client = self._provider.require()

        tokens = await client.password_grant(username=email, password=password)
        await self._save_tokens(tokens)

        user = await client.userinfo(access_token=tokens.access_token)
        self.user = user
        await self._store.set_json(CredentialKey.user, user.model_dump(mode="json"))
        log.info("identity_login_succeeded", sub=user.sub)

        try:
            await self._dispatcher.get(BACKEND_VERIFY_ENDPOINT)
        except (SafeRouteError, httpx.HTTPError) as e:
            # Verification failure never fails a provider-approved login.
            log.warning("identity_backend_verification_failed", error=repr(e))

        return user

    async def logout(self) -> None:
        await self._store.remove(CredentialKey.access_token)
        await self._store.remove(CredentialKey.refresh_token)
        await self._store.remove(CredentialKey.user)
        self.user = None
        log.info("identity_logout")

    async def get_access_token(self) -> str | None:
        token = await self._store.get(CredentialKey.access_token)
        if token is None:
            return None
        if not access_token_expired(token, leeway_s=self._settings.token_refresh_leeway_s):
            return token

        refresh_token = await self._store.get(CredentialKey.refresh_token)
        if not refresh_token or not self._provider.available:
            return token

        try:
            tokens = await self._provider.require().refresh(refresh_token=refresh_token)
        except (SafeRouteError, httpx.HTTPError, ValueError) as e:
            log.warning("identity_token_refresh_failed", error=repr(e))
            return None

        await self._save_tokens(tokens)
        log.info("identity_token_refreshed")
        return tokens.access_token


# --- Module Notes -----------------------------------------------------------
# The interactive (browser) login flow is out of scope; callers can open
# `IdentityProviderClient.authorize_url()` and feed resulting tokens through the store.
