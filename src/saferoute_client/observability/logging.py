"""
saferoute_client.observability.logging

Structured logging configuration for the client core.

Responsibilities:
- Configure `structlog` for JSON logs.
- Provide a small wrapper for obtaining bound loggers.
- Redact bearer tokens from header sets before they are logged.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from typing import Any

import structlog

# Number of token characters kept visible in logs.
TOKEN_VISIBLE_PREFIX = 8


def configure_logging(*, service_name: str, level: str) -> None:
    """
    Structured JSON logs on stdout; call once at process startup.
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    # Header names are matched case-insensitively; the output keeps the caller's casing.
    redacted: dict[str, str] = {}
    authorization: str | None = None
    for name, value in headers.items():
        if name.lower() == "authorization":
            authorization = value
            continue
        redacted[name] = value

    if authorization is None:
        redacted["Authorization"] = "MISSING"
    else:
        scheme, sep, token = authorization.partition(" ")
        if sep:
            redacted["Authorization"] = f"{scheme} {token[:TOKEN_VISIBLE_PREFIX]}..."
        else:
            # No scheme: the whole value is the secret.
            redacted["Authorization"] = f"{authorization[:TOKEN_VISIBLE_PREFIX]}..."
    return redacted


# --- Module Notes -----------------------------------------------------------
# The dispatcher is the main consumer of `redact_headers`; keep the output shape flat
# so it renders as a single JSON object per request.
