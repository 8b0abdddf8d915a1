"""
TradeDesk: exchange account dashboard backend.

Application package root. This is a modular monolith using
hexagonal architecture (ports & adapters) with domain-driven design.

Bounded contexts:
    - exchange: Signed exchange access, credential capabilities,
      balances, market data, trade-history reconciliation, valuation.

Layers:
    - domain: Pure business logic, entities, ports (ABCs), errors.
    - application: Use cases and services orchestrating the ports.
    - infrastructure: Adapters (HTTP gateway, SQL repositories, cipher).
    - interfaces: FastAPI routers, Pydantic schemas.
    - shared: Cross-cutting concerns (errors, security, logging).
"""
