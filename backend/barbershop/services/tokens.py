"""Customer capability tokens: the only credential a customer ever holds."""

import hmac
import secrets

TOKEN_BYTES = 32


def new_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def matches(expected: str | None, supplied: str | None) -> bool:
    """Constant-time comparison; a missing value never matches."""
    if not expected or not supplied:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))
