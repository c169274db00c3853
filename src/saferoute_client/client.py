"""
saferoute_client.client

Composition root for the client core.

Responsibilities:
- Build every component from a single `Settings` instance.
- Select and initialize the storage backend once at startup.
- Own (and close) shared infrastructure: the HTTP client and the storage backend.
"""

from __future__ import annotations

from types import TracebackType

import httpx

from saferoute_client.health import ServiceDefinition, ServiceStatus, check_services
from saferoute_client.http.dispatcher import AuthenticatedRequestDispatcher
from saferoute_client.identity.provider import IdentityProviderInit, create_identity_provider
from saferoute_client.identity.session import AuthSession
from saferoute_client.observability.logging import configure_logging, get_logger
from saferoute_client.settings import Settings
from saferoute_client.storage.backends import StorageBackend, select_backend
from saferoute_client.storage.credentials import CredentialStore
from saferoute_client.storage.device import DeviceIdProvider

log = get_logger(__name__)


class SafeRouteClient:
    def __init__(
        self,
        *,
        settings: Settings,
        http: httpx.AsyncClient,
        backend: StorageBackend,
        owns_http: bool,
    ) -> None:
        self.settings = settings
        self._http = http
        self._backend = backend
        self._owns_http = owns_http

        self.store = CredentialStore(backend)
        self.device_ids = DeviceIdProvider(self.store)
        self.dispatcher = AuthenticatedRequestDispatcher(
            settings=settings, http=http, store=self.store, device_ids=self.device_ids
        )
        self.identity: IdentityProviderInit = create_identity_provider(settings=settings, http=http)
        self.session = AuthSession(
            settings=settings,
            store=self.store,
            provider=self.identity,
            dispatcher=self.dispatcher,
        )

    @classmethod
    async def create(
        cls,
        settings: Settings,
        *,
        http: httpx.AsyncClient | None = None,
        backend: StorageBackend | None = None,
    ) -> SafeRouteClient:
        # Configure structured logging once, before any component logs.
        configure_logging(service_name=settings.service_name, level=settings.log_level)

        backend = backend or select_backend(settings)
        await backend.init()

        owns_http = http is None
        if http is None:
            # The dispatcher applies its own deadline; this is only the transport-level cap.
            http = httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout_s))

        client = cls(settings=settings, http=http, backend=backend, owns_http=owns_http)
        if not client.identity.available:
            log.warning("identity_provider_unavailable", reason=client.identity.reason)
        await client.session.restore()
        log.info("client_ready", storage=backend.name, base_url=client.dispatcher.base_url)
        return client

    async def check_health(self, services: list[ServiceDefinition]) -> list[ServiceStatus]:
        return await check_services(
            self._http, services, default_timeout_s=self.settings.request_timeout_s
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()
        await self._backend.aclose()

    async def __aenter__(self) -> SafeRouteClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


# --- Module Notes -----------------------------------------------------------
# One SafeRouteClient per process. Components hold references to each other, so
# building a second one would split the device-id cache.
