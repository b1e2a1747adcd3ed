"""ID generation utility."""

import secrets


def gen_id(prefix: str) -> str:
    """Generate prefixed random IDs: msg_xxx, toolu_xxx, ses_xxx."""
    return f"{prefix}{secrets.token_urlsafe(12)}"
