"""
Domain-specific errors for the exchange bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""

from typing import Optional


class ExchangeDomainError(Exception):
    """Base error for all exchange domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class MissingParameterError(ExchangeDomainError):
    """Raised when a request lacks a parameter its endpoint requires.

    Detected locally, before anything is sent to the exchange.
    """

    def __init__(self, endpoint: str, parameter: str) -> None:
        super().__init__(
            f'The "{parameter}" parameter is required for endpoint {endpoint}'
        )
        self.endpoint = endpoint
        self.parameter = parameter


class SigningError(ExchangeDomainError):
    """Raised when a request cannot be signed (no secret available)."""


class ExchangeApiError(ExchangeDomainError):
    """Raised when the exchange rejects a request or cannot be reached.

    Attributes:
        code: Machine error code returned by the exchange, if any.
        status_code: HTTP status of the response, if any.
        endpoint: Path of the endpoint that failed.
    """

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code
        self.endpoint = endpoint


class ExchangeTransportError(ExchangeApiError):
    """Raised when the exchange could not be reached (network error, timeout)."""


class MalformedPayloadError(ExchangeDomainError):
    """Raised when a remote record is missing fields or has unparsable values."""

    def __init__(self, kind: str, reason: str) -> None:
        super().__init__(f"Malformed {kind} payload: {reason}")
        self.kind = kind
        self.reason = reason


class CredentialNotFoundError(ExchangeDomainError):
    """Raised when a credential does not exist for the requesting owner."""

    def __init__(self, credential_id: str) -> None:
        super().__init__(f"Credential not found: {credential_id}")
        self.credential_id = credential_id


class NoActiveCredentialError(ExchangeDomainError):
    """Raised when an owner has no active credential to talk to the exchange."""

    def __init__(self, owner_id: str) -> None:
        super().__init__(f"No active credential for owner: {owner_id}")
        self.owner_id = owner_id


class DuplicateCredentialError(ExchangeDomainError):
    """Raised when an owner already has a credential for the same exchange."""

    def __init__(self, owner_id: str, exchange: str) -> None:
        super().__init__(
            f"A credential for exchange '{exchange}' already exists for this owner"
        )
        self.owner_id = owner_id
        self.exchange = exchange


class CredentialCipherError(ExchangeDomainError):
    """Raised when stored credential material cannot be encrypted or decrypted."""


class TradingPairNotFoundError(ExchangeDomainError):
    """Raised when a trading pair does not exist for the requesting owner."""

    def __init__(self, pair_id: str) -> None:
        super().__init__(f"Trading pair not found: {pair_id}")
        self.pair_id = pair_id


class DuplicateTradingPairError(ExchangeDomainError):
    """Raised when an owner already tracks a symbol."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Trading pair {symbol} is already registered")
        self.symbol = symbol


class UnsupportedSymbolError(ExchangeDomainError):
    """Raised when a symbol is not part of the tradable universe."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Symbol {symbol} is not tradable on the exchange")
        self.symbol = symbol


class InvalidInputError(ExchangeDomainError):
    """Raised when a command carries a blank or otherwise unusable value."""
