"""
saferoute_client.identity.tokens

Access-token claim inspection.

Responsibilities:
- Read registered claims from a JWT access token without verifying its signature.
- Decide whether a stored token is expired (with leeway) so it can be refreshed.

Note:
- Signature verification is the resource server's job; the client only needs `exp`.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import jwt
from jwt import InvalidTokenError


def unverified_claims(token: str) -> dict[str, Any] | None:
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except InvalidTokenError:
        # Opaque (non-JWT) access tokens are valid; they just carry no claims.
        return None


def access_token_expired(token: str, *, leeway_s: int = 0, now: datetime | None = None) -> bool:
    claims = unverified_claims(token)
    if not claims or "exp" not in claims:
        return False
    current = now or datetime.now(tz=UTC)
    return int(claims["exp"]) <= int(current.timestamp()) + leeway_s


# --- Module Notes -----------------------------------------------------------
# Used by `identity.session.AuthSession.get_access_token` for on-demand refresh.
