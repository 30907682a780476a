"""
Health check endpoint.
"""

import structlog
from fastapi import APIRouter, Depends

from src.api.dependencies import get_sync_service, get_token_manager
from src.api.models import HealthResponse
from src.services.sync_service import SyncService
from src.tracking.tokens import TokenManager

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Report polling loop state, checkpoint and token presence.",
)
async def health_check(
    service: SyncService | None = Depends(get_sync_service),
    token_manager: TokenManager = Depends(get_token_manager),
) -> HealthResponse:
    token_present = token_manager.has_credential()

    if service is None:
        return HealthResponse(status="idle", running=False, token_present=token_present)

    state = await service.health_check()
    last_cycle = state["last_cycle"]
    healthy = (
        state["running"]
        and token_present
        and state["identity_resolved"]
        and bool(state["destinations"])
        and (last_cycle is None or last_cycle["status"] == "completed")
    )

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        running=state["running"],
        last_checked=state["last_checked"],
        identity_resolved=state["identity_resolved"],
        destinations=state["destinations"],
        token_present=token_present,
        last_cycle=last_cycle,
    )
