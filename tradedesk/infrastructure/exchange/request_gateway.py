"""
Adapter: HTTP gateway to the exchange REST API.

Issues public and signed calls over a shared httpx client and turns
every non-2xx response or transport failure into an ExchangeApiError.
The gateway never retries and never swallows an error.
"""

import logging
import time
from typing import Any, Callable, Mapping, Optional
from urllib.parse import urlencode

import httpx

from tradedesk.domain.exchange.errors import (
    ExchangeApiError,
    ExchangeTransportError,
    MissingParameterError,
)
from tradedesk.domain.exchange.signer import sign

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.binance.com"
API_KEY_HEADER = "X-MBX-APIKEY"

# Endpoints the exchange rejects without a symbol; checked locally.
SYMBOL_REQUIRED_ENDPOINTS = frozenset({"/api/v3/allOrders", "/api/v3/myTrades"})

KNOWN_ERROR_MESSAGES: dict[int, str] = {
    -2013: "Account not found, check your API credentials",
    -2015: "Invalid API key, rejected permission or IP",
    -1022: "Invalid signature, check your API secret",
    -1121: "Invalid symbol, check the symbol parameter",
}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def serialize_params(params: Mapping[str, Any]) -> str:
    """Build the canonical query string, keeping parameter order."""
    return urlencode(
        [(key, _format_value(value)) for key, value in params.items() if value is not None]
    )


def _redacted(params: Mapping[str, Any]) -> dict[str, Any]:
    redacted = dict(params)
    if "signature" in redacted:
        redacted["signature"] = "***"
    return redacted


class RequestGateway:
    """Transport for public and signed exchange calls.

    Args:
        client: Shared httpx client. One is created when omitted.
        timeout: Per-call deadline in seconds, used for a created client.
        recv_window: recvWindow sent with signed requests, if any.
        clock: Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
        recv_window: Optional[int] = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._client = client or httpx.Client(timeout=timeout)
        self._recv_window = recv_window
        self._clock = clock

    def close(self) -> None:
        self._client.close()

    def public_request(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        base_url: str = DEFAULT_BASE_URL,
    ) -> Any:
        """Issue an unauthenticated GET and return the parsed JSON body.

        Raises:
            ExchangeApiError: On a non-2xx response or an unreadable body.
            ExchangeTransportError: If the exchange cannot be reached.
        """
        query = serialize_params(params or {})
        url = f"{base_url.rstrip('/')}{endpoint}"
        if query:
            url = f"{url}?{query}"

        logger.debug("Public request GET %s params=%s", endpoint, dict(params or {}))
        response = self._send("GET", url, endpoint, headers={})
        return self._parse(response, endpoint)

    def signed_request(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]],
        method: str,
        api_key: str,
        api_secret: str,
        base_url: str = DEFAULT_BASE_URL,
    ) -> Any:
        """Issue an authenticated call and return the parsed JSON body.

        Appends `timestamp` (and `recvWindow` when configured) to the
        parameters, signs the resulting query string with the secret,
        appends the signature and sends the key in the API-key header.

        Raises:
            MissingParameterError: If the endpoint needs a symbol and none
                was given. Raised before any network call.
            SigningError: If the secret is missing.
            ExchangeApiError: On a non-2xx response or an unreadable body.
            ExchangeTransportError: If the exchange cannot be reached.
        """
        params = dict(params or {})
        if endpoint in SYMBOL_REQUIRED_ENDPOINTS and not params.get("symbol"):
            raise MissingParameterError(endpoint, "symbol")

        if self._recv_window:
            params["recvWindow"] = self._recv_window
        params["timestamp"] = self._clock()

        query = serialize_params(params)
        signature = sign(query, api_secret)
        url = f"{base_url.rstrip('/')}{endpoint}?{query}&signature={signature}"

        method = method.upper().strip()
        logger.debug(
            "Signed request %s %s params=%s",
            method,
            endpoint,
            _redacted({**params, "signature": signature}),
        )
        response = self._send(method, url, endpoint, headers={API_KEY_HEADER: api_key})
        return self._parse(response, endpoint)

    def _send(
        self, method: str, url: str, endpoint: str, headers: dict[str, str]
    ) -> httpx.Response:
        try:
            return self._client.request(method, url, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Exchange unreachable: %s %s error=%s", method, endpoint, exc)
            raise ExchangeTransportError(
                f"Exchange request failed: {exc}", endpoint=endpoint
            ) from exc

    def _parse(self, response: httpx.Response, endpoint: str) -> Any:
        if response.is_error:
            raise self._error_from(response, endpoint)
        try:
            return response.json()
        except ValueError as exc:
            raise ExchangeApiError(
                "Exchange returned an unreadable response",
                status_code=response.status_code,
                endpoint=endpoint,
            ) from exc

    def _error_from(self, response: httpx.Response, endpoint: str) -> ExchangeApiError:
        try:
            data = response.json() or {}
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        code = data.get("code")
        message = data.get("msg") or response.text or "Unknown exchange error"

        logger.warning(
            "Exchange API error: %s status=%s code=%s msg=%s",
            endpoint,
            response.status_code,
            code,
            message,
        )

        if code in KNOWN_ERROR_MESSAGES:
            message = f"Error {code}: {KNOWN_ERROR_MESSAGES[code]}"

        return ExchangeApiError(
            message,
            code=code,
            status_code=response.status_code,
            endpoint=endpoint,
        )
