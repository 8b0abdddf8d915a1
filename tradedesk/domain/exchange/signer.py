"""
Request signing for authenticated exchange calls.

The exchange authenticates a request by an HMAC-SHA256 of its canonical
query string, keyed with the credential secret and hex-encoded.
"""

import hashlib
import hmac

from tradedesk.domain.exchange.errors import SigningError


def sign(query_string: str, secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of `query_string` keyed by `secret`.

    Args:
        query_string: Canonical, already url-encoded query string.
        secret: The credential's API secret.

    Raises:
        SigningError: If no secret is available.
    """
    if not secret:
        raise SigningError("Cannot sign request: API secret is missing")
    return hmac.new(
        secret.encode("utf-8"),
        query_string.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
