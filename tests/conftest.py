"""
Shared fixtures for the TradeDesk test suite.

Repositories run against an in-memory SQLite database. The exchange
port is always a MagicMock; no test reaches the network.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from tradedesk.domain.exchange.entities import (
    Capability,
    ExchangeCredential,
    ExchangeOrder,
    ExchangeTrade,
    ExchangeVariant,
    Side,
)
from tradedesk.domain.exchange.ports import ExchangePort
from tradedesk.infrastructure.exchange.credential_cipher import CredentialCipher
from tradedesk.infrastructure.exchange.credential_repository import (
    CredentialRepositoryAdapter,
)
from tradedesk.infrastructure.exchange.ledger_repository import (
    RemoteExecutionRepositoryAdapter,
    RemoteOrderRepositoryAdapter,
)
from tradedesk.infrastructure.exchange.tables import metadata
from tradedesk.infrastructure.exchange.trading_pair_repository import (
    TradingPairRepositoryAdapter,
)

OWNER = "owner-1"
PLACED_AT = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine() -> Engine:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher("test-encryption-secret")


@pytest.fixture
def credential_repo(engine: Engine, cipher: CredentialCipher) -> CredentialRepositoryAdapter:
    return CredentialRepositoryAdapter(engine=engine, cipher=cipher)


@pytest.fixture
def pair_repo(engine: Engine) -> TradingPairRepositoryAdapter:
    return TradingPairRepositoryAdapter(engine=engine)


@pytest.fixture
def order_repo(engine: Engine) -> RemoteOrderRepositoryAdapter:
    return RemoteOrderRepositoryAdapter(engine=engine)


@pytest.fixture
def execution_repo(engine: Engine) -> RemoteExecutionRepositoryAdapter:
    return RemoteExecutionRepositoryAdapter(engine=engine)


@pytest.fixture
def exchange() -> MagicMock:
    return MagicMock(spec=ExchangePort)


@pytest.fixture
def credential() -> ExchangeCredential:
    return ExchangeCredential(
        credential_id="cred-1",
        owner_id=OWNER,
        exchange=ExchangeVariant.BINANCE,
        api_key="test-api-key-123456",
        api_secret="test-api-secret",
        capabilities=frozenset({Capability.SPOT}),
    )


@pytest.fixture
def stored_credential(credential_repo: CredentialRepositoryAdapter) -> ExchangeCredential:
    """A credential persisted for OWNER, returned decrypted."""
    summary = credential_repo.create(
        owner_id=OWNER,
        name="Main account",
        exchange=ExchangeVariant.BINANCE,
        api_key="test-api-key-123456",
        api_secret="test-api-secret",
        capabilities=frozenset({Capability.SPOT}),
    )
    return credential_repo.get(summary.id, OWNER)


@pytest.fixture
def make_order() -> Callable[..., ExchangeOrder]:
    def _make(
        order_id: str,
        symbol: str = "BTCUSDT",
        status: str = "FILLED",
        side: Side = Side.BUY,
        filled: str = "0.5",
        quote: str = "25000",
    ) -> ExchangeOrder:
        return ExchangeOrder(
            exchange_order_id=order_id,
            symbol=symbol,
            side=side,
            kind="LIMIT",
            status=status,
            limit_price=Decimal("50000"),
            requested_qty=Decimal("0.5"),
            filled_qty=Decimal(filled),
            cumulative_quote_qty=Decimal(quote),
            placed_at=PLACED_AT,
            time_in_force="GTC",
        )

    return _make


@pytest.fixture
def make_trade() -> Callable[..., ExchangeTrade]:
    def _make(
        trade_id: str,
        order_id: str,
        symbol: str = "BTCUSDT",
        side: Side = Side.BUY,
        price: str = "50000",
        quantity: str = "0.5",
    ) -> ExchangeTrade:
        return ExchangeTrade(
            exchange_trade_id=trade_id,
            exchange_order_id=order_id,
            symbol=symbol,
            side=side,
            price=Decimal(price),
            quantity=Decimal(quantity),
            quote_quantity=Decimal(price) * Decimal(quantity),
            fee=Decimal("0.25"),
            fee_asset="BNB",
            is_maker=False,
            executed_at=PLACED_AT,
        )

    return _make
