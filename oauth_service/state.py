"""
State values for CSRF protection. Shared by the relay and the popup flow.
"""
import secrets

# 16 bytes -> 32 hex characters
STATE_BYTES = 16


def generate_state() -> str:
    """Opaque, unguessable correlation value; fresh on every call."""
    return secrets.token_hex(STATE_BYTES)
