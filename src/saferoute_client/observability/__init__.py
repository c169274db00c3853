"""
saferoute_client.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Redaction helpers so credentials never reach log sinks.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Request-scoped context is bound by callers through structlog contextvars if needed.
