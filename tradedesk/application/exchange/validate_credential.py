"""
Use case: Probe which capabilities a credential actually has.

Input: owner id and credential id
Output: CapabilityReport
Side effects: One signed exchange call per capability. When the key is
    valid, the detected capabilities are written back to the credential.
Failure cases: CredentialNotFoundError propagates. Exchange rejections are
    part of the outcome, never raised.
"""

import logging
from typing import Any, Callable, Optional

from tradedesk.application.exchange.dtos import CapabilityReport
from tradedesk.domain.exchange.entities import Capability, ExchangeCredential
from tradedesk.domain.exchange.errors import ExchangeApiError, MalformedPayloadError
from tradedesk.domain.exchange.ports import CredentialRepository, ExchangePort

logger = logging.getLogger(__name__)

# Exchange error code -> message shown to the owner.
HUMANIZED_CODES: dict[int, str] = {
    -2014: "Invalid API key",
    -2015: "Invalid API key, or the server IP address or permissions are not allowed",
    -1022: "Invalid signature, the API secret is incorrect",
}

# Used when the exchange sent no code.
HUMANIZED_ERRORS: tuple[tuple[str, str], ...] = (
    ("Invalid API-key", "Invalid API key"),
    ("Invalid signature", "Invalid signature, the API secret is incorrect"),
)


def humanize_error(message: str, code: Optional[int] = None) -> str:
    """Return a short explanation for common rejections, else `message`."""
    if code in HUMANIZED_CODES:
        return HUMANIZED_CODES[code]
    for fragment, friendly in HUMANIZED_ERRORS:
        if fragment in message:
            return friendly
    return message or "Could not validate the API key"


class ValidateCredentialUseCase:
    """Detects the capabilities of a credential by calling the exchange.

    The spot probe decides validity. Every other probe is independent:
    its failure only clears its own flag.
    """

    def __init__(
        self, credential_repo: CredentialRepository, exchange: ExchangePort
    ) -> None:
        self._credential_repo = credential_repo
        self._exchange = exchange

    def _probes(
        self,
    ) -> tuple[tuple[Capability, Callable[[ExchangeCredential], Any]], ...]:
        return (
            (Capability.MARGIN, self._exchange.get_margin_account),
            (Capability.FUTURES, self._exchange.get_futures_account),
            (Capability.WITHDRAW, self._exchange.get_withdraw_config),
        )

    def execute(self, owner_id: str, credential_id: str) -> CapabilityReport:
        """Run every probe against the same credential.

        Args:
            owner_id: Owner of the credential.
            credential_id: Credential to probe.

        Returns:
            The probe outcome. `valid` is False when the spot account
            cannot be read, in which case no other probe is attempted.
        """
        credential = self._credential_repo.get(credential_id, owner_id)
        permissions = {capability: False for capability in Capability}

        try:
            self._exchange.get_account_balances(credential)
        except (ExchangeApiError, MalformedPayloadError) as exc:
            logger.warning(
                "Credential %s failed validation: %s", credential_id, exc.message
            )
            return CapabilityReport(
                valid=False,
                permissions=permissions,
                error_message=humanize_error(
                    exc.message, exc.code if isinstance(exc, ExchangeApiError) else None
                ),
            )
        permissions[Capability.SPOT] = True

        for capability, probe in self._probes():
            try:
                probe(credential)
                permissions[capability] = True
            except (ExchangeApiError, MalformedPayloadError) as exc:
                logger.info(
                    "Credential %s lacks %s capability: %s",
                    credential_id,
                    capability.value,
                    exc.message,
                )

        granted = frozenset(c for c, ok in permissions.items() if ok)
        self._credential_repo.update_capabilities(credential_id, owner_id, granted)
        logger.info(
            "Credential %s validated: %s",
            credential_id,
            sorted(c.value for c in granted),
        )
        return CapabilityReport(valid=True, permissions=permissions)
