"""
SQLAlchemy table definitions for the exchange context.

Portable between PostgreSQL (production) and SQLite (tests).
Uniqueness of natural keys is declared here and relied upon only
as a backstop: the sync use case deduplicates before inserting.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    Numeric,
    String,
    Table,
    UniqueConstraint,
    func,
)

metadata = MetaData()

AMOUNT = Numeric(36, 18)

credentials = Table(
    "credentials",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("owner_id", String(64), nullable=False),
    Column("name", String(120), nullable=False),
    Column("exchange", String(32), nullable=False),
    Column("encrypted_key", String(512), nullable=False),
    Column("encrypted_secret", String(512), nullable=False),
    Column("masked_key", String(128), nullable=False),
    Column("capabilities", JSON, nullable=False),
    Column("active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("owner_id", "exchange", name="uq_credentials_owner_exchange"),
)

trading_pairs = Table(
    "trading_pairs",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("owner_id", String(64), nullable=False),
    Column("symbol", String(32), nullable=False),
    Column("active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("owner_id", "symbol", name="uq_trading_pairs_owner_symbol"),
)

strategies = Table(
    "strategies",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("owner_id", String(64), nullable=False),
    Column("name", String(120), nullable=False),
    Column("symbol", String(32), nullable=False),
    Column("type", String(32), nullable=False),
    Column("active", Boolean, nullable=False, default=False),
    Column("config", JSON, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

remote_orders = Table(
    "remote_orders",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("owner_id", String(64), nullable=False),
    Column("exchange_order_id", String(64), nullable=False),
    Column("client_order_id", String(64), nullable=True),
    Column("strategy_id", String(36), ForeignKey("strategies.id"), nullable=True),
    Column("symbol", String(32), nullable=False),
    Column("side", String(4), nullable=False),
    Column("type", String(32), nullable=False),
    Column("status", String(32), nullable=False),
    Column("price", AMOUNT, nullable=False),
    Column("quantity", AMOUNT, nullable=False),
    Column("executed_qty", AMOUNT, nullable=False),
    Column("cumulative_quote_qty", AMOUNT, nullable=False),
    Column("time_in_force", String(8), nullable=True),
    Column("stop_price", AMOUNT, nullable=True),
    Column("placed_at", DateTime(timezone=True), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("owner_id", "exchange_order_id", name="uq_remote_orders_owner_order"),
)

remote_executions = Table(
    "remote_executions",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("owner_id", String(64), nullable=False),
    Column("order_id", String(36), ForeignKey("remote_orders.id"), nullable=False),
    Column("exchange_trade_id", String(64), nullable=False),
    Column("symbol", String(32), nullable=False),
    Column("side", String(4), nullable=False),
    Column("price", AMOUNT, nullable=False),
    Column("quantity", AMOUNT, nullable=False),
    Column("quote_quantity", AMOUNT, nullable=False),
    Column("fee", AMOUNT, nullable=False),
    Column("fee_asset", String(16), nullable=False),
    Column("is_maker", Boolean, nullable=False),
    Column("executed_at", DateTime(timezone=True), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("owner_id", "exchange_trade_id", name="uq_remote_executions_owner_trade"),
)

Index("ix_remote_executions_owner_time", remote_executions.c.owner_id, remote_executions.c.executed_at)
