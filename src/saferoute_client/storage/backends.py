"""
saferoute_client.storage.backends

Storage backend protocol, concrete backends, and one-time backend selection.

Responsibilities:
- Define the async `StorageBackend` protocol the credential store depends on.
- Provide an in-memory backend and an OS-keystore backend (via `keyring`).
- Pick the backend once at startup from settings plus a capability check.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

import keyring
import keyring.errors
from keyring.backend import KeyringBackend
from keyring.backends import fail

from saferoute_client.errors import StorageBackendUnavailable
from saferoute_client.observability.logging import get_logger
from saferoute_client.settings import Settings
from saferoute_client.storage.sql import SqlStorageBackend

log = get_logger(__name__)


class StorageBackend(Protocol):
    """
    Raw persistence. Implementations may raise on any failure; the credential
    store is responsible for downgrading errors to "absent".
    """

    name: str

    async def init(self) -> None: ...

    async def aclose(self) -> None: ...

    async def get_item(self, key: str) -> str | None: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...


class MemoryStorageBackend:
    name = "memory"

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    async def init(self) -> None:
        return None

    async def aclose(self) -> None:
        return None

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class KeyringStorageBackend:
    """
    OS-backed secure storage (macOS Keychain, Windows Credential Locker, Secret Service).
    Each logical key is stored as a username under a single service name.
    """

    name = "keyring"

    def __init__(self, *, service: str, backend: KeyringBackend | None = None) -> None:
        self._service = service
        self._backend = backend or keyring.get_keyring()

    @staticmethod
    def is_available(backend: KeyringBackend | None = None) -> bool:
        kr = backend or keyring.get_keyring()
        # The "fail" keyring is what keyring resolves to when no usable store exists.
        if isinstance(kr, fail.Keyring):
            return False
        return kr.priority >= 1

    async def init(self) -> None:
        return None

    async def aclose(self) -> None:
        return None

    async def get_item(self, key: str) -> str | None:
        # keyring is blocking (D-Bus / Keychain IPC); keep it off the event loop.
        return await asyncio.to_thread(self._backend.get_password, self._service, key)

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._backend.set_password, self._service, key, value)

    async def remove_item(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._backend.delete_password, self._service, key)
        except keyring.errors.PasswordDeleteError:
            # Already absent.
            return None


def select_backend(
    settings: Settings, *, keyring_backend: KeyringBackend | None = None
) -> StorageBackend:
    """
    Capability check performed once at startup; callers never branch on platform again.
    """

    choice = settings.storage_backend

    if choice == "memory":
        backend: StorageBackend = MemoryStorageBackend()
    elif choice == "sql":
        backend = SqlStorageBackend(database_url=settings.storage_database_url)
    elif choice == "keyring":
        if not KeyringStorageBackend.is_available(keyring_backend):
            raise StorageBackendUnavailable("No usable OS keyring backend is available")
        backend = KeyringStorageBackend(service=settings.keyring_service, backend=keyring_backend)
    elif settings.platform == "web":
        backend = SqlStorageBackend(database_url=settings.storage_database_url)
    elif KeyringStorageBackend.is_available(keyring_backend):
        backend = KeyringStorageBackend(service=settings.keyring_service, backend=keyring_backend)
    else:
        log.warning("storage_keyring_unavailable", fallback="sql")
        backend = SqlStorageBackend(database_url=settings.storage_database_url)

    log.info("storage_backend_selected", backend=backend.name, requested=choice)
    return backend


# --- Module Notes -----------------------------------------------------------
# Backends never enumerate keys; the protocol deliberately has no listing operation.
