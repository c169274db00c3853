"""
tests.conftest

Shared pytest fixtures.

Responsibilities:
- Provide test settings, an in-memory credential store, a request recorder,
  and a dispatcher wired to that recorder.
"""

from __future__ import annotations

import pytest

from saferoute_client.http.dispatcher import AuthenticatedRequestDispatcher
from saferoute_client.settings import Settings
from saferoute_client.storage.backends import MemoryStorageBackend
from saferoute_client.storage.credentials import CredentialStore
from tests.doubles import API_BASE_URL, AUTH0_DOMAIN, Recorder, build_dispatcher


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="test",
        api_base_url=API_BASE_URL,
        auth0_domain=AUTH0_DOMAIN,
        auth0_client_id="client-123",
        storage_backend="memory",
        request_timeout_s=2.0,
    )


@pytest.fixture
def store() -> CredentialStore:
    return CredentialStore(MemoryStorageBackend())


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def dispatcher(
    settings: Settings, store: CredentialStore, recorder: Recorder
) -> AuthenticatedRequestDispatcher:
    return build_dispatcher(settings, store, recorder)


# --- Module Notes -----------------------------------------------------------
# Fixtures are synchronous; async tests use `@pytest.mark.asyncio` explicitly.
