"""
saferoute_client.identity

Identity-provider integration package.

Responsibilities:
- Provider HTTP client and explicit availability result.
- Session lifecycle (login/logout/restore/token refresh).
- Access-token claim inspection.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The session writes credentials; the dispatcher only ever reads them.
