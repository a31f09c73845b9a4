"""
Back-office maintenance routes.
"""
from typing import Annotated

from fastapi import APIRouter, Depends

from app.core.database import DbSession
from app.core.logging import get_logger
from app.routers.deps import require_staff
from app.schemas.download import BackfillResponse
from app.services.access import Actor
from app.services.entitlements import EntitlementGenerator

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/downloads/backfill", response_model=BackfillResponse)
async def backfill_download_tokens(
    session: DbSession,
    actor: Annotated[Actor, Depends(require_staff)],
) -> BackfillResponse:
    """Issue missing download tokens for every paid order."""
    orders_processed, tokens_generated = await EntitlementGenerator(session).backfill_paid_orders()
    logger.info(
        "Download token backfill requested",
        actor_role=actor.role.value,
        orders_processed=orders_processed,
        tokens_generated=tokens_generated,
    )
    return BackfillResponse(
        orders_processed=orders_processed,
        tokens_generated=tokens_generated,
    )
