"""
Inbound payment gateway webhooks.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Header, Request, status
from fastapi.responses import JSONResponse

from app.core.database import DbSession
from app.core.logging import get_logger
from app.core.security import verify_paymaya_signature
from app.schemas.payment import WebhookAck
from app.services.webhook_reconciler import reconcile_webhook

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/paymaya", response_model=WebhookAck)
async def paymaya_webhook(
    request: Request,
    session: DbSession,
    x_paymaya_signature: Annotated[Optional[str], Header()] = None,
):
    """
    PayMaya payment notifications.

    Answers 200 for every delivery it can authenticate, including ones it
    cannot act on, so the gateway stops retrying. Only a bad signature gets
    a 401.
    """
    body = await request.body()

    if not verify_paymaya_signature(x_paymaya_signature, body):
        logger.warning("PayMaya webhook with invalid signature")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "message": "Invalid signature"},
        )

    return await reconcile_webhook(session, body)
