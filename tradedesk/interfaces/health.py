"""
Liveness endpoint.

Answers without touching the database or the exchange, so a probe
never spends exchange rate limit.
"""

from fastapi import APIRouter

from tradedesk.core.config import settings
from tradedesk.domain.exchange.entities import ExchangeVariant
from tradedesk.interfaces.exchange.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
def health_check() -> HealthResponse:
    return HealthResponse(
        status="ok",
        service=settings.project_name,
        version=settings.version,
        exchanges=[variant.value for variant in ExchangeVariant],
    )
