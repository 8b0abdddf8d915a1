"""
Adapter: credential repository.

Implements CredentialRepository port.
Stores API credentials in the credentials table with the key and
secret encrypted by the CredentialCipher.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from tradedesk.domain.exchange.entities import (
    Capability,
    CredentialSummary,
    ExchangeCredential,
    ExchangeVariant,
)
from tradedesk.domain.exchange.errors import (
    CredentialNotFoundError,
    DuplicateCredentialError,
)
from tradedesk.domain.exchange.ports import CredentialRepository
from tradedesk.infrastructure.exchange.credential_cipher import (
    CredentialCipher,
    mask_api_key,
)
from tradedesk.infrastructure.exchange.tables import credentials

logger = logging.getLogger(__name__)


def _capabilities(raw: Any) -> frozenset[Capability]:
    found = set()
    for value in raw or []:
        try:
            found.add(Capability(value))
        except ValueError:
            logger.warning("Ignoring unknown stored capability %r", value)
    return frozenset(found)


def _to_summary(row: Any) -> CredentialSummary:
    return CredentialSummary(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        exchange=ExchangeVariant(row.exchange),
        masked_key=row.masked_key,
        capabilities=_capabilities(row.capabilities),
        active=row.active,
        created_at=row.created_at,
    )


class CredentialRepositoryAdapter(CredentialRepository):
    """SQL implementation of the credential store.

    Implements the CredentialRepository port defined in the domain layer.
    """

    def __init__(self, engine: Engine, cipher: CredentialCipher) -> None:
        self._engine = engine
        self._cipher = cipher

    def _scope(self, credential_id: str, owner_id: str):
        return and_(credentials.c.id == credential_id, credentials.c.owner_id == owner_id)

    def _fetch_row(self, credential_id: str, owner_id: str) -> Any:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(credentials).where(self._scope(credential_id, owner_id))
            ).first()
        if row is None:
            raise CredentialNotFoundError(credential_id)
        return row

    def create(
        self,
        owner_id: str,
        name: str,
        exchange: ExchangeVariant,
        api_key: str,
        api_secret: str,
        capabilities: frozenset[Capability],
    ) -> CredentialSummary:
        """Encrypt and persist a new credential.

        Checks the (owner, exchange) pair first; the unique constraint
        only backs that check up against concurrent inserts.

        Raises:
            DuplicateCredentialError: If the owner already has a credential
                for this exchange.
        """
        values = {
            "id": str(uuid4()),
            "owner_id": owner_id,
            "name": name,
            "exchange": exchange.value,
            "encrypted_key": self._cipher.encrypt(api_key),
            "encrypted_secret": self._cipher.encrypt(api_secret),
            "masked_key": mask_api_key(api_key),
            "capabilities": sorted(c.value for c in capabilities),
            "active": True,
            "created_at": datetime.now(timezone.utc),
        }

        try:
            with self._engine.begin() as conn:
                existing = conn.execute(
                    select(credentials.c.id).where(
                        and_(
                            credentials.c.owner_id == owner_id,
                            credentials.c.exchange == exchange.value,
                        )
                    )
                ).first()
                if existing is not None:
                    raise DuplicateCredentialError(owner_id, exchange.value)
                conn.execute(insert(credentials).values(**values))
        except IntegrityError as exc:
            raise DuplicateCredentialError(owner_id, exchange.value) from exc

        logger.info("Created credential id=%s exchange=%s", values["id"], exchange.value)
        return CredentialSummary(
            id=values["id"],
            owner_id=owner_id,
            name=name,
            exchange=exchange,
            masked_key=values["masked_key"],
            capabilities=frozenset(capabilities),
            active=True,
            created_at=values["created_at"],
        )

    def get(self, credential_id: str, owner_id: str) -> ExchangeCredential:
        """Return the credential with its key and secret decrypted."""
        row = self._fetch_row(credential_id, owner_id)
        return ExchangeCredential(
            credential_id=row.id,
            owner_id=row.owner_id,
            exchange=ExchangeVariant(row.exchange),
            api_key=self._cipher.decrypt(row.encrypted_key),
            api_secret=self._cipher.decrypt(row.encrypted_secret),
            capabilities=_capabilities(row.capabilities),
        )

    def get_summary(self, credential_id: str, owner_id: str) -> CredentialSummary:
        return _to_summary(self._fetch_row(credential_id, owner_id))

    def list_active(self, owner_id: str) -> list[CredentialSummary]:
        query = (
            select(credentials)
            .where(and_(credentials.c.owner_id == owner_id, credentials.c.active.is_(True)))
            .order_by(credentials.c.created_at.asc(), credentials.c.id.asc())
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_to_summary(row) for row in rows]

    def update_capabilities(
        self,
        credential_id: str,
        owner_id: str,
        capabilities: frozenset[Capability],
    ) -> CredentialSummary:
        with self._engine.begin() as conn:
            result = conn.execute(
                update(credentials)
                .where(self._scope(credential_id, owner_id))
                .values(capabilities=sorted(c.value for c in capabilities))
            )
        if result.rowcount == 0:
            raise CredentialNotFoundError(credential_id)
        logger.info(
            "Updated capabilities of credential id=%s: %s",
            credential_id,
            sorted(c.value for c in capabilities),
        )
        return self.get_summary(credential_id, owner_id)

    def delete(self, credential_id: str, owner_id: str) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(
                delete(credentials).where(self._scope(credential_id, owner_id))
            )
        if result.rowcount == 0:
            raise CredentialNotFoundError(credential_id)
        logger.info("Deleted credential id=%s", credential_id)
