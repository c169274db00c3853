"""
saferoute_client.storage.credentials

Credential store over a platform-selected storage backend.

Responsibilities:
- Provide get/set/remove over named secrets (tokens, serialized user profile).
- Downgrade every backend failure to "absent" (reads) or `False` (writes), logged, never raised.
- Define the logical key names shared by the dispatcher and the auth session.
"""

from __future__ import annotations

import enum
import json
from typing import Any

from saferoute_client.observability.logging import get_logger
from saferoute_client.storage.backends import StorageBackend

log = get_logger(__name__)


class CredentialKey(enum.StrEnum):
    # Stored key names are a persistence contract; do not rename.
    user = "auth0_user"
    access_token = "auth0_access_token"
    refresh_token = "auth0_refresh_token"
    device_id = "saferoute_device_id"


class CredentialStore:
    """
    Storage unavailability degrades to "user must re-authenticate", so nothing here
    raises on backend errors. `None` is the not-found value.
    """

    def __init__(self, backend: StorageBackend) -> None:
        self._backend = backend

    @property
    def backend_name(self) -> str:
        return self._backend.name

    async def lookup(self, key: str) -> tuple[bool, str | None]:
        """
        Like `get`, but reports whether the backend answered: `(False, None)` means the
        read failed, `(True, None)` means the key is absent.
        """
        try:
            return True, await self._backend.get_item(str(key))
        except Exception as e:
            log.warning("credential_store_read_failed", key=str(key), error=repr(e))
            return False, None

    async def get(self, key: str) -> str | None:
        _, value = await self.lookup(key)
        return value

    async def set(self, key: str, value: str) -> bool:
        try:
            await self._backend.set_item(str(key), value)
        except Exception as e:
            log.warning("credential_store_write_failed", key=str(key), error=repr(e))
            return False
        return True

    async def remove(self, key: str) -> bool:
        try:
            await self._backend.remove_item(str(key))
        except Exception as e:
            log.warning("credential_store_remove_failed", key=str(key), error=repr(e))
            return False
        return True

    async def get_json(self, key: str) -> dict[str, Any] | None:
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            log.warning("credential_store_invalid_json", key=str(key))
            return None
        return value if isinstance(value, dict) else None

    async def set_json(self, key: str, value: dict[str, Any]) -> bool:
        return await self.set(key, json.dumps(value))


# --- Module Notes -----------------------------------------------------------
# Values are opaque strings. Expiry is the identity provider's concern and is only
# detected when a downstream call is rejected (or via JWT claims in `identity.tokens`).
