"""
tests.test_dispatcher

Authenticated request dispatcher tests.

Responsibilities:
- Endpoint normalization and base URL joining.
- Header decoration (content type, bearer token, device id) and skip-auth behavior.
- Body serialization, uniform error convention, deadlines, and transport errors.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from saferoute_client.errors import ApiError, DispatchTimeoutError, MAX_ERROR_BODY_CHARS
from saferoute_client.http.dispatcher import (
    AuthenticatedRequestDispatcher,
    HttpMethod,
    RequestDescriptor,
    normalize_endpoint,
)
from saferoute_client.settings import Settings
from saferoute_client.storage.credentials import CredentialKey, CredentialStore
from tests.doubles import API_BASE_URL, Recorder, SlowCountingBackend, build_dispatcher


@pytest.mark.parametrize(
    ("endpoint", "expected"),
    [
        ("users/update", "/users/update"),
        ("/users/update", "/users/update"),
        ("//users/update", "/users/update"),
        ("v1/users/me", "/v1/users/me"),
        ("", "/"),
    ],
)
def test_normalize_endpoint_produces_single_leading_separator(endpoint: str, expected: str) -> None:
    assert normalize_endpoint(endpoint) == expected


def test_base_url_trailing_slash_is_stripped(store: CredentialStore, recorder: Recorder) -> None:
    settings = Settings(env="test", api_base_url="http://api.test/", storage_backend="memory")
    dispatcher = build_dispatcher(settings, store, recorder)

    assert dispatcher.url_for("users") == "http://api.test/users"


@pytest.mark.asyncio
async def test_get_with_stored_token_sends_bearer_and_json_content_type(
    dispatcher: AuthenticatedRequestDispatcher, store: CredentialStore, recorder: Recorder
) -> None:
    await store.set(CredentialKey.access_token, "abc123")

    response = await dispatcher.get("/v1/users/me")

    assert response.status_code == 200
    sent = recorder.last
    assert sent.method == "GET"
    assert str(sent.url) == f"{API_BASE_URL}/v1/users/me"
    assert sent.headers["Authorization"] == "Bearer abc123"
    assert sent.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_post_without_leading_separator_serializes_body(
    dispatcher: AuthenticatedRequestDispatcher, recorder: Recorder
) -> None:
    await dispatcher.post("users/update", {"name": "Jane"})

    sent = recorder.last
    assert sent.method == "POST"
    assert str(sent.url).endswith("/users/update")
    assert "//users" not in str(sent.url)
    assert json.loads(sent.content) == {"name": "Jane"}
    assert sent.content == json.dumps({"name": "Jane"}).encode("utf-8")


@pytest.mark.asyncio
async def test_no_token_still_sends_without_authorization(
    dispatcher: AuthenticatedRequestDispatcher, recorder: Recorder
) -> None:
    response = await dispatcher.get("/v1/routes")

    assert response.status_code == 200
    assert len(recorder.requests) == 1
    assert "Authorization" not in recorder.last.headers


@pytest.mark.asyncio
async def test_skip_auth_never_sends_authorization_or_device_id(
    dispatcher: AuthenticatedRequestDispatcher, store: CredentialStore, recorder: Recorder
) -> None:
    await store.set(CredentialKey.access_token, "abc123")

    await dispatcher.get("/public", skip_auth=True)
    await dispatcher.get("/public", skip_auth=True, headers={"Authorization": "Bearer caller"})

    for sent in recorder.requests:
        assert "Authorization" not in sent.headers
        assert "X-Device-Id" not in sent.headers
        assert sent.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_stored_token_overrides_caller_authorization(
    dispatcher: AuthenticatedRequestDispatcher, store: CredentialStore, recorder: Recorder
) -> None:
    await store.set(CredentialKey.access_token, "stored")

    await dispatcher.get("/v1/users/me", headers={"authorization": "Bearer caller"})

    assert recorder.last.headers.get_list("Authorization") == ["Bearer stored"]


@pytest.mark.asyncio
async def test_caller_content_type_is_kept(
    dispatcher: AuthenticatedRequestDispatcher, recorder: Recorder
) -> None:
    await dispatcher.request(
        "/v1/feedback/upload",
        method="PUT",
        content=b"raw-bytes",
        headers={"content-type": "application/octet-stream"},
    )

    sent = recorder.last
    assert sent.method == "PUT"
    assert sent.headers.get_list("Content-Type") == ["application/octet-stream"]
    assert sent.content == b"raw-bytes"


@pytest.mark.asyncio
async def test_device_id_header_is_stable_across_requests(
    dispatcher: AuthenticatedRequestDispatcher, store: CredentialStore, recorder: Recorder
) -> None:
    await dispatcher.get("/a")
    await dispatcher.delete("/b")

    first, second = recorder.requests
    assert first.headers["X-Device-Id"] == second.headers["X-Device-Id"]
    assert first.headers["X-Device-Id"] == await store.get(CredentialKey.device_id)
    assert second.method == "DELETE"
    assert second.content == b""


@pytest.mark.asyncio
async def test_concurrent_first_use_generates_one_device_id(settings: Settings) -> None:
    backend = SlowCountingBackend()
    recorder = Recorder()
    dispatcher = build_dispatcher(settings, CredentialStore(backend), recorder)

    await asyncio.gather(*(dispatcher.get(f"/v1/ping/{i}") for i in range(10)))

    ids = {r.headers["X-Device-Id"] for r in recorder.requests}
    assert len(recorder.requests) == 10
    assert len(ids) == 1
    assert backend.writes == {CredentialKey.device_id.value: 1}


@pytest.mark.asyncio
async def test_non_2xx_raises_api_error_with_status_and_truncated_body(
    settings: Settings, store: CredentialStore
) -> None:
    body = "x" * (MAX_ERROR_BODY_CHARS + 100)
    dispatcher = build_dispatcher(settings, store, lambda request: httpx.Response(401, text=body))

    with pytest.raises(ApiError) as excinfo:
        await dispatcher.get("/v1/users/me")

    err = excinfo.value
    assert err.status == 401
    assert err.method == "GET"
    assert err.url == f"{API_BASE_URL}/v1/users/me"
    assert len(err.body) == MAX_ERROR_BODY_CHARS
    assert err.is_auth_rejection
    assert err.response is not None and err.response.status_code == 401


@pytest.mark.asyncio
async def test_server_error_is_not_auth_rejection(settings: Settings, store: CredentialStore) -> None:
    dispatcher = build_dispatcher(settings, store, lambda request: httpx.Response(503))

    with pytest.raises(ApiError) as excinfo:
        await dispatcher.post("/v1/feedback/submit", {"rating": 5})

    assert excinfo.value.status == 503
    assert not excinfo.value.is_auth_rejection


@pytest.mark.asyncio
async def test_transport_errors_propagate_without_retry(
    settings: Settings, store: CredentialStore
) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.ConnectError("connection refused", request=request)

    dispatcher = build_dispatcher(settings, store, handler)

    with pytest.raises(httpx.ConnectError):
        await dispatcher.get("/v1/users/me")
    assert calls == 1


@pytest.mark.asyncio
async def test_dispatch_deadline_raises_timeout_error(settings: Settings, store: CredentialStore) -> None:
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200)

    dispatcher = build_dispatcher(settings, store, slow)  # type: ignore[arg-type]

    with pytest.raises(DispatchTimeoutError) as excinfo:
        await dispatcher.get("/v1/slow", timeout_s=0.05)

    assert isinstance(excinfo.value, TimeoutError)
    assert excinfo.value.timeout_s == 0.05


@pytest.mark.asyncio
async def test_non_positive_timeout_override_is_rejected_not_defaulted(
    dispatcher: AuthenticatedRequestDispatcher, recorder: Recorder
) -> None:
    for bad in (0, 0.0, -1.0):
        with pytest.raises(ValueError, match="timeout_s must be positive"):
            await dispatcher.get("/v1/slow", timeout_s=bad)
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_json_helpers_parse_payload_or_return_none(
    settings: Settings, store: CredentialStore
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json={"id": 7, "echo": json.loads(request.content or b"null")})

    dispatcher = build_dispatcher(settings, store, handler)

    assert await dispatcher.get_json("/v1/items/7") == {"id": 7, "echo": None}
    assert await dispatcher.put_json("/v1/items/7", {"a": 1}) == {"id": 7, "echo": {"a": 1}}
    assert await dispatcher.post_json("/v1/items", [1, 2]) == {"id": 7, "echo": [1, 2]}
    assert await dispatcher.delete_json("/v1/items/7") is None


@pytest.mark.asyncio
async def test_body_and_content_are_mutually_exclusive(
    dispatcher: AuthenticatedRequestDispatcher, recorder: Recorder
) -> None:
    with pytest.raises(ValueError):
        await dispatcher.dispatch(
            RequestDescriptor(endpoint="/x", method=HttpMethod.post, body={"a": 1}, content=b"a")
        )
    assert recorder.requests == []


# --- Module Notes -----------------------------------------------------------
# Requests are observed at the transport boundary, which is exactly what the backend sees.
