"""
saferoute_client.storage

Credential storage package.

Responsibilities:
- Storage backends (memory, OS keyring, SQL) and startup selection.
- Credential store with a never-raise failure policy.
- Device identifier generation.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Higher layers depend on `CredentialStore`, never on a backend directly.
