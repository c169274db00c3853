"""
saferoute_client.storage.device

Stable per-install device identifier.

Responsibilities:
- Read the persisted identifier or generate a UUIDv4 on first use.
- Fall back to a process-local identifier (not persisted) when storage cannot be read.
- Guarantee single-flight generation: concurrent first callers share one value,
  and exactly one write reaches the store.
"""

from __future__ import annotations

import asyncio
import uuid

from saferoute_client.observability.logging import get_logger
from saferoute_client.storage.credentials import CredentialKey, CredentialStore

log = get_logger(__name__)


class DeviceIdProvider:
    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._cached: str | None = None
        self._lock = asyncio.Lock()

    async def get(self) -> str:
        if self._cached is not None:
            return self._cached

        async with self._lock:
            # Another caller may have finished while we waited on the lock.
            if self._cached is not None:
                return self._cached

            readable, device_id = await self._store.lookup(CredentialKey.device_id)
            if not readable:
                # A stored id may still exist; never overwrite it from a failed read.
                device_id = str(uuid.uuid4())
                log.warning("device_id_read_failed", persisted=False)
            elif not device_id:
                device_id = str(uuid.uuid4())
                persisted = await self._store.set(CredentialKey.device_id, device_id)
                log.info("device_id_generated", persisted=persisted)

            # Cached even when persisting failed, so the id stays stable for this process.
            self._cached = device_id
            return device_id

    def reset(self) -> None:
        self._cached = None


def device_name(platform: str) -> str:
    return f"{platform[:1].upper()}{platform[1:]} Device"


# --- Module Notes -----------------------------------------------------------
# The provider must be shared: one instance per process, injected into the dispatcher.
