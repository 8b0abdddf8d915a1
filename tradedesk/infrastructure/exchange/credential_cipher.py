"""
Adapter: encryption of stored API credentials.

API keys and secrets are stored as Fernet tokens. The Fernet key is
derived from the configured credential secret, so rotating that secret
makes previously stored credentials unreadable.
"""

import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from tradedesk.domain.exchange.errors import CredentialCipherError

TOKEN_PREFIX = "v1:"


class CredentialCipher:
    """Encrypts and decrypts credential material with a derived Fernet key."""

    def __init__(self, secret: Optional[str]) -> None:
        self._secret = (secret or "").strip()
        self._fernet: Optional[Fernet] = None

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            if not self._secret:
                raise CredentialCipherError(
                    "CREDENTIAL_ENCRYPTION_SECRET is not configured"
                )
            digest = hashlib.sha256(self._secret.encode("utf-8")).digest()
            self._fernet = Fernet(base64.urlsafe_b64encode(digest))
        return self._fernet

    def encrypt(self, plaintext: str) -> str:
        token = self._get_fernet().encrypt(plaintext.encode("utf-8")).decode("utf-8")
        return f"{TOKEN_PREFIX}{token}"

    def decrypt(self, stored: str) -> str:
        """Return the plaintext of a stored token.

        Raises:
            CredentialCipherError: If the value was not produced by this
                cipher or the secret changed since.
        """
        if not stored or not stored.startswith(TOKEN_PREFIX):
            raise CredentialCipherError("Stored credential has an unknown format")
        try:
            return (
                self._get_fernet()
                .decrypt(stored[len(TOKEN_PREFIX):].encode("utf-8"))
                .decode("utf-8")
            )
        except InvalidToken as exc:
            raise CredentialCipherError("Failed to decrypt stored credential") from exc


def mask_api_key(api_key: str) -> str:
    """Show only the first and last four characters of a key."""
    if not api_key or len(api_key) < 8:
        return "•" * 16
    return f"{api_key[:4]}{'•' * (len(api_key) - 8)}{api_key[-4:]}"
