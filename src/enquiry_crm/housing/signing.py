"""HMAC-SHA256 request signing for the Housing.com API.

Each request carries ``hash = hex(HMAC-SHA256(encryption_key, current_time))``
where current_time is the request's epoch-seconds timestamp as a string.
"""

from __future__ import annotations

import hashlib
import hmac


def sign(secret: str, message: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of message keyed by secret."""
    return hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def sign_request_timestamp(secret: str, epoch_seconds: str) -> str:
    """Sign the request timestamp sent as ``current_time``."""
    return sign(secret, epoch_seconds)


__all__ = ["sign", "sign_request_timestamp"]
