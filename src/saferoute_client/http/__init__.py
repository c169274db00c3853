"""
saferoute_client.http

Backend API access package.

Responsibilities:
- Provide the authenticated request dispatcher used by every backend call site.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Identity-provider traffic does not go through the dispatcher (see `identity.provider`).
