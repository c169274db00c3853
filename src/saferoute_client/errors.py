"""
saferoute_client.errors

Typed error taxonomy for the client core.

Responsibilities:
- Classify HTTP-level failures (non-2xx) with status and a truncated body.
- Signal dispatch deadlines as a distinct, catchable timeout.
- Surface unavailable storage backends and identity-provider failures.

Network failures are not wrapped: `httpx.TransportError` propagates as-is.
Storage read/write failures never reach callers (see `storage.credentials`).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

# Response bodies kept on ApiError for diagnostics.
MAX_ERROR_BODY_CHARS = 512

AUTH_REJECTION_STATUSES = frozenset({401, 403})


class SafeRouteError(Exception):
    pass


class ApiError(SafeRouteError):
    """
    Raised by the dispatcher for every non-2xx response.
    The raw response stays attached so callers can still inspect headers.
    """

    def __init__(
        self,
        *,
        status: int,
        method: str,
        url: str,
        body: str = "",
        response: httpx.Response | None = None,
    ) -> None:
        super().__init__(f"API request failed with status {status}: {method} {url}")
        self.status = status
        self.method = method
        self.url = url
        self.body = body[:MAX_ERROR_BODY_CHARS]
        self.response = response

    @property
    def is_auth_rejection(self) -> bool:
        # Expired/invalid tokens surface as 401/403; re-authentication is the caller's job.
        return self.status in AUTH_REJECTION_STATUSES


class DispatchTimeoutError(SafeRouteError, TimeoutError):
    def __init__(self, *, timeout_s: float, method: str, url: str) -> None:
        super().__init__(f"Timed out after {int(timeout_s * 1000)} ms: {method} {url}")
        self.timeout_s = timeout_s
        self.method = method
        self.url = url


class StorageBackendUnavailable(SafeRouteError):
    pass


class IdentityError(SafeRouteError):
    """
    Identity-provider failure carrying a message safe to show to the user.
    """

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class IdentityProviderUnavailable(IdentityError):
    pass


# --- Module Notes -----------------------------------------------------------
# Keep this module dependency-free at runtime so every layer can import it.
