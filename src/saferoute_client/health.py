"""
saferoute_client.health

HTTP health probes for the services the app depends on.

Responsibilities:
- Probe a service URL under a deadline and capture request/response snapshots.
- Classify the outcome as `ok` or `error` with a short, human-readable message.
- Run several probes concurrently.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Literal

import httpx

from saferoute_client.observability.logging import get_logger

log = get_logger(__name__)

ERROR_BODY_CHARS = 120


@dataclass(frozen=True, slots=True)
class ServiceDefinition:
    name: str
    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    timeout_s: float | None = None


@dataclass(frozen=True, slots=True)
class ServiceStatus:
    name: str
    state: Literal["ok", "error"]
    request: dict[str, Any]
    response: dict[str, Any] | None = None
    error: str | None = None


def truncate(value: str, max_len: int) -> str:
    return value if len(value) <= max_len else f"{value[: max_len - 1]}…"


async def check_http_service(
    http: httpx.AsyncClient,
    service: ServiceDefinition,
    *,
    default_timeout_s: float,
) -> ServiceStatus:
    headers = {"Accept": "application/json", **service.headers}
    request = {"url": service.url, "method": service.method, "headers": headers}
    timeout_s = service.timeout_s or default_timeout_s

    try:
        async with asyncio.timeout(timeout_s):
            r = await http.request(service.method, service.url, headers=headers)
    except TimeoutError:
        error = f"Timed out after {int(timeout_s * 1000)} ms"
        log.warning("health_check_failed", service=service.name, error=error)
        return ServiceStatus(name=service.name, state="error", request=request, error=error)
    except httpx.HTTPError as e:
        error = str(e) or type(e).__name__
        log.warning("health_check_failed", service=service.name, error=error)
        return ServiceStatus(name=service.name, state="error", request=request, error=error)

    body = r.text
    response = {
        "status": r.status_code,
        "reason": r.reason_phrase,
        "headers": dict(r.headers),
        "body": body,
    }
    if not r.is_success:
        error = f"HTTP {r.status_code}"
        if body:
            error = f"{error} - {truncate(body, ERROR_BODY_CHARS)}"
        log.warning("health_check_failed", service=service.name, error=error)
        return ServiceStatus(
            name=service.name, state="error", request=request, response=response, error=error
        )

    return ServiceStatus(name=service.name, state="ok", request=request, response=response)


async def check_services(
    http: httpx.AsyncClient,
    services: Iterable[ServiceDefinition],
    *,
    default_timeout_s: float,
) -> list[ServiceStatus]:
    # Probes are independent; one slow service must not delay the others' results.
    return list(
        await asyncio.gather(
            *(check_http_service(http, s, default_timeout_s=default_timeout_s) for s in services)
        )
    )


# --- Module Notes -----------------------------------------------------------
# Probes hit absolute URLs and carry no credentials, so they bypass the dispatcher.
