"""
Use cases: manage exchange credentials.

Input: CreateCredentialCommand, UpdateCapabilitiesCommand, or owner/credential ids
Output: CredentialSummary (the secret is never returned)
Side effects: Writes to the credentials table.
Failure cases: DuplicateCredentialError, CredentialNotFoundError,
    NoActiveCredentialError, CredentialCipherError, InvalidInputError.
"""

import logging
from typing import Optional

from tradedesk.application.exchange.dtos import (
    CreateCredentialCommand,
    UpdateCapabilitiesCommand,
)
from tradedesk.domain.exchange.entities import CredentialSummary, ExchangeCredential
from tradedesk.domain.exchange.errors import InvalidInputError, NoActiveCredentialError
from tradedesk.domain.exchange.ports import CredentialRepository

logger = logging.getLogger(__name__)


def resolve_credential(
    repo: CredentialRepository,
    owner_id: str,
    credential_id: Optional[str] = None,
) -> ExchangeCredential:
    """Return the requested credential, or the owner's first active one.

    Raises:
        CredentialNotFoundError: If `credential_id` is unknown for the owner.
        NoActiveCredentialError: If no id is given and the owner has none.
    """
    if credential_id:
        return repo.get(credential_id, owner_id)

    active = repo.list_active(owner_id)
    if not active:
        raise NoActiveCredentialError(owner_id)
    return repo.get(active[0].id, owner_id)


class CreateCredentialUseCase:
    """Registers a credential, one per (owner, exchange)."""

    def __init__(self, credential_repo: CredentialRepository) -> None:
        self._credential_repo = credential_repo

    def execute(self, command: CreateCredentialCommand) -> CredentialSummary:
        """Encrypt and store the key pair.

        Raises:
            InvalidInputError: If the key, secret or name is blank.
            DuplicateCredentialError: If the owner already has a credential
                for this exchange.
        """
        if not command.api_key.strip() or not command.api_secret.strip():
            raise InvalidInputError("API key and secret are required")
        if not command.name.strip():
            raise InvalidInputError("Credential name is required")

        logger.info(
            "Registering %s credential for owner=%s",
            command.exchange.value,
            command.owner_id,
        )
        return self._credential_repo.create(
            owner_id=command.owner_id,
            name=command.name.strip(),
            exchange=command.exchange,
            api_key=command.api_key.strip(),
            api_secret=command.api_secret.strip(),
            capabilities=command.capabilities,
        )


class ListCredentialsUseCase:
    def __init__(self, credential_repo: CredentialRepository) -> None:
        self._credential_repo = credential_repo

    def execute(self, owner_id: str) -> list[CredentialSummary]:
        return self._credential_repo.list_active(owner_id)


class GetCredentialUseCase:
    def __init__(self, credential_repo: CredentialRepository) -> None:
        self._credential_repo = credential_repo

    def execute(self, owner_id: str, credential_id: str) -> CredentialSummary:
        return self._credential_repo.get_summary(credential_id, owner_id)


class UpdateCapabilitiesUseCase:
    """Replaces the declared capabilities of a credential."""

    def __init__(self, credential_repo: CredentialRepository) -> None:
        self._credential_repo = credential_repo

    def execute(self, command: UpdateCapabilitiesCommand) -> CredentialSummary:
        """Raises InvalidInputError when no capability is given."""
        if not command.capabilities:
            raise InvalidInputError("At least one capability is required")
        return self._credential_repo.update_capabilities(
            command.credential_id, command.owner_id, command.capabilities
        )


class DeleteCredentialUseCase:
    def __init__(self, credential_repo: CredentialRepository) -> None:
        self._credential_repo = credential_repo

    def execute(self, owner_id: str, credential_id: str) -> None:
        self._credential_repo.delete(credential_id, owner_id)
