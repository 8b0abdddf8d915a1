"""
Centralized error handlers for FastAPI.

Maps exchange domain errors to HTTP responses.
No stack traces, keys or raw exchange payloads are exposed to clients.
All error responses use the ErrorResponse schema.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tradedesk.domain.exchange.errors import (
    CredentialCipherError,
    CredentialNotFoundError,
    DuplicateCredentialError,
    DuplicateTradingPairError,
    ExchangeApiError,
    ExchangeDomainError,
    InvalidInputError,
    MissingParameterError,
    NoActiveCredentialError,
    SigningError,
    TradingPairNotFoundError,
    UnsupportedSymbolError,
)
from tradedesk.shared.errors.exceptions import AuthenticationRequiredError

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_401 = 401
HTTP_404 = 404
HTTP_500 = 500


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(AuthenticationRequiredError)
    async def handle_unauthenticated(
        _request: Request, exc: AuthenticationRequiredError
    ) -> JSONResponse:
        logger.warning("Rejected request without owner identity")
        return _error_response(HTTP_401, "Not authenticated", exc.message)

    @app.exception_handler(CredentialNotFoundError)
    async def handle_credential_not_found(
        _request: Request, exc: CredentialNotFoundError
    ) -> JSONResponse:
        logger.warning("Credential not found: %s", exc.credential_id)
        return _error_response(HTTP_404, "Credential not found")

    @app.exception_handler(NoActiveCredentialError)
    async def handle_no_active_credential(
        _request: Request, exc: NoActiveCredentialError
    ) -> JSONResponse:
        logger.warning("No active credential for owner: %s", exc.owner_id)
        return _error_response(
            HTTP_404, "No active credential", "Register an API key first"
        )

    @app.exception_handler(TradingPairNotFoundError)
    async def handle_pair_not_found(
        _request: Request, exc: TradingPairNotFoundError
    ) -> JSONResponse:
        logger.warning("Trading pair not found: %s", exc.pair_id)
        return _error_response(HTTP_404, "Trading pair not found")

    @app.exception_handler(DuplicateCredentialError)
    async def handle_duplicate_credential(
        _request: Request, exc: DuplicateCredentialError
    ) -> JSONResponse:
        logger.warning("Duplicate credential for exchange %s", exc.exchange)
        return _error_response(HTTP_400, "Duplicate credential", exc.message)

    @app.exception_handler(DuplicateTradingPairError)
    async def handle_duplicate_pair(
        _request: Request, exc: DuplicateTradingPairError
    ) -> JSONResponse:
        logger.warning("Duplicate trading pair: %s", exc.symbol)
        return _error_response(HTTP_400, "Duplicate trading pair", exc.message)

    @app.exception_handler(UnsupportedSymbolError)
    async def handle_unsupported_symbol(
        _request: Request, exc: UnsupportedSymbolError
    ) -> JSONResponse:
        logger.warning("Unsupported symbol: %s", exc.symbol)
        return _error_response(HTTP_400, "Unsupported symbol", exc.message)

    @app.exception_handler(InvalidInputError)
    async def handle_invalid_input(
        _request: Request, exc: InvalidInputError
    ) -> JSONResponse:
        logger.warning("Invalid input: %s", exc.message)
        return _error_response(HTTP_400, "Invalid input", exc.message)

    @app.exception_handler(MissingParameterError)
    async def handle_missing_parameter(
        _request: Request, exc: MissingParameterError
    ) -> JSONResponse:
        logger.warning("Missing parameter %s for %s", exc.parameter, exc.endpoint)
        return _error_response(HTTP_400, "Missing parameter", exc.message)

    @app.exception_handler(ExchangeApiError)
    async def handle_exchange_api(
        _request: Request, exc: ExchangeApiError
    ) -> JSONResponse:
        logger.error(
            "Exchange error reached the boundary: endpoint=%s code=%s status=%s",
            exc.endpoint,
            exc.code,
            exc.status_code,
        )
        return _error_response(HTTP_500, "Exchange request failed", exc.message)

    @app.exception_handler(SigningError)
    async def handle_signing(_request: Request, exc: SigningError) -> JSONResponse:
        logger.error("Request signing failed: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(CredentialCipherError)
    async def handle_cipher(
        _request: Request, exc: CredentialCipherError
    ) -> JSONResponse:
        logger.error("Credential cipher failure: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(ExchangeDomainError)
    async def handle_exchange_domain(
        _request: Request, exc: ExchangeDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled exchange domain errors."""
        logger.error("Unhandled exchange domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
