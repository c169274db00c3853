"""
saferoute_client.http.dispatcher

Authenticated request dispatch against the SafeRoute backend API.

Responsibilities:
- Normalize endpoints and join them to the base URL resolved once from settings.
- Decorate every request the same way: default content type, bearer token,
  device identifier (unless auth decoration is skipped).
- Apply a uniform per-dispatch deadline.
- Return 2xx responses uninterpreted; raise `ApiError` for everything else.
"""

from __future__ import annotations

import asyncio
import enum
import json
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from saferoute_client.errors import ApiError, DispatchTimeoutError
from saferoute_client.observability.logging import get_logger, redact_headers
from saferoute_client.settings import Settings
from saferoute_client.storage.credentials import CredentialKey, CredentialStore
from saferoute_client.storage.device import DeviceIdProvider

log = get_logger(__name__)

JSON_CONTENT_TYPE = "application/json"
DEVICE_ID_HEADER = "X-Device-Id"


class HttpMethod(enum.StrEnum):
    get = "GET"
    post = "POST"
    put = "PUT"
    delete = "DELETE"


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    """
    The logical request a caller wants to make.

    `body` is serialized to JSON; `content` is sent as-is. At most one may be given.
    """

    endpoint: str
    method: HttpMethod = HttpMethod.get
    body: Any = None
    content: bytes | str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    skip_auth: bool = False
    timeout_s: float | None = None


def normalize_endpoint(endpoint: str) -> str:
    # Exactly one leading separator, whatever the caller passed.
    return "/" + endpoint.lstrip("/")


def _encode_body(descriptor: RequestDescriptor) -> bytes | str | None:
    if descriptor.body is not None and descriptor.content is not None:
        raise ValueError("pass either a structured body or raw content, not both")
    if descriptor.body is not None:
        return json.dumps(descriptor.body).encode("utf-8")
    return descriptor.content


def _json_or_none(response: httpx.Response) -> Any:
    if not response.content:
        return None
    return response.json()


class AuthenticatedRequestDispatcher:
    """
    Single decoration point for every backend call in the application.

    No retries, no deduplication: each dispatch is independent. Network failures
    surface as `httpx.TransportError`.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        http: httpx.AsyncClient,
        store: CredentialStore,
        device_ids: DeviceIdProvider,
    ) -> None:
        self._http = http
        self._store = store
        self._device_ids = device_ids
        # Resolved once per process; later env changes are deliberately ignored.
        self._base_url = settings.api_base_url_resolved
        self._timeout_s = settings.request_timeout_s

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, endpoint: str) -> str:
        return f"{self._base_url}{normalize_endpoint(endpoint)}"

    async def _assemble_headers(self, descriptor: RequestDescriptor) -> httpx.Headers:
        headers = httpx.Headers(dict(descriptor.headers))

        if "content-type" not in headers:
            headers["Content-Type"] = JSON_CONTENT_TYPE

        if descriptor.skip_auth:
            # Skipped requests never carry credentials, even caller-supplied ones.
            headers.pop("authorization", None)
            return headers

        # Sequential on purpose: each read is a storage round-trip that may fail independently.
        token = await self._store.get(CredentialKey.access_token)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        device_id = await self._device_ids.get()
        if device_id:
            headers[DEVICE_ID_HEADER] = device_id

        return headers

    async def dispatch(self, descriptor: RequestDescriptor) -> httpx.Response:
        method = HttpMethod(descriptor.method).value
        url = self.url_for(descriptor.endpoint)
        content = _encode_body(descriptor)
        timeout_s = self._timeout_s if descriptor.timeout_s is None else descriptor.timeout_s
        if timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {timeout_s}")
        headers = await self._assemble_headers(descriptor)

        log.info("api_request", method=method, url=url, headers=redact_headers(headers))

        started = time.perf_counter()
        try:
            async with asyncio.timeout(timeout_s):
                response = await self._http.request(method, url, headers=headers, content=content)
        except TimeoutError as e:
            raise DispatchTimeoutError(timeout_s=timeout_s, method=method, url=url) from e

        log.info(
            "api_response",
            method=method,
            url=url,
            status=response.status_code,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )

        if not response.is_success:
            raise ApiError(
                status=response.status_code,
                method=method,
                url=url,
                body=response.text,
                response=response,
            )
        return response

    async def request(
        self,
        endpoint: str,
        *,
        method: HttpMethod | str = HttpMethod.get,
        body: Any = None,
        content: bytes | str | None = None,
        headers: Mapping[str, str] | None = None,
        skip_auth: bool = False,
        timeout_s: float | None = None,
    ) -> httpx.Response:
        return await self.dispatch(
            RequestDescriptor(
                endpoint=endpoint,
                method=HttpMethod(method.upper()),
                body=body,
                content=content,
                headers=headers or {},
                skip_auth=skip_auth,
                timeout_s=timeout_s,
            )
        )

    # Verb wrappers. GET/DELETE take no body; POST/PUT take a structured body.

    async def get(
        self,
        endpoint: str,
        *,
        headers: Mapping[str, str] | None = None,
        skip_auth: bool = False,
        timeout_s: float | None = None,
    ) -> httpx.Response:
        return await self.request(
            endpoint, method=HttpMethod.get, headers=headers, skip_auth=skip_auth, timeout_s=timeout_s
        )

    async def delete(
        self,
        endpoint: str,
        *,
        headers: Mapping[str, str] | None = None,
        skip_auth: bool = False,
        timeout_s: float | None = None,
    ) -> httpx.Response:
        return await self.request(
            endpoint,
            method=HttpMethod.delete,
            headers=headers,
            skip_auth=skip_auth,
            timeout_s=timeout_s,
        )

    async def post(
        self,
        endpoint: str,
        body: Any,
        *,
        headers: Mapping[str, str] | None = None,
        skip_auth: bool = False,
        timeout_s: float | None = None,
    ) -> httpx.Response:
        return await self.request(
            endpoint,
            method=HttpMethod.post,
            body=body,
            headers=headers,
            skip_auth=skip_auth,
            timeout_s=timeout_s,
        )

    async def put(
        self,
        endpoint: str,
        body: Any,
        *,
        headers: Mapping[str, str] | None = None,
        skip_auth: bool = False,
        timeout_s: float | None = None,
    ) -> httpx.Response:
        return await self.request(
            endpoint,
            method=HttpMethod.put,
            body=body,
            headers=headers,
            skip_auth=skip_auth,
            timeout_s=timeout_s,
        )

    # JSON helpers: same dispatch, parsed payload (None for an empty body).

    async def get_json(self, endpoint: str, **options: Any) -> Any:
        return _json_or_none(await self.get(endpoint, **options))

    async def delete_json(self, endpoint: str, **options: Any) -> Any:
        return _json_or_none(await self.delete(endpoint, **options))

    async def post_json(self, endpoint: str, body: Any, **options: Any) -> Any:
        return _json_or_none(await self.post(endpoint, body, **options))

    async def put_json(self, endpoint: str, body: Any, **options: Any) -> Any:
        return _json_or_none(await self.put(endpoint, body, **options))


# --- Module Notes -----------------------------------------------------------
# Response payloads are never validated here; typed parsing belongs to the caller so the
# dispatcher stays usable for endpoints returning arbitrary content types.
