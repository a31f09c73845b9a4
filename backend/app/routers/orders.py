"""
Order API routes.
"""
import math
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.database import DbSession
from app.core.logging import get_logger
from app.schemas.order import (
    OrderCreate,
    OrderEnvelope,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderStatusValue,
    Pagination,
    PaymentStatusValue,
)
from app.routers.deps import CurrentActor
from app.services.order_service import OrderService

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


async def get_order_service(session: DbSession) -> OrderService:
    """Dependency to get the order service."""
    return OrderService(session)


OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]


@router.post("", response_model=OrderEnvelope, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderEnvelope:
    """
    Place an order from the storefront cart.

    Public endpoint. A customer bearer token attaches the order to the
    customer; otherwise ``guest_email`` is required.
    """
    order = await service.create_order(payload, actor)
    return OrderEnvelope(
        message="Order created successfully",
        order=OrderResponse.model_validate(order),
    )


@router.get("", response_model=OrderListResponse)
async def list_orders(
    actor: CurrentActor,
    service: OrderServiceDep,
    guest_email: Optional[str] = Query(None, description="Required for guests"),
    order_status: Optional[OrderStatusValue] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatusValue] = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(15, ge=1, le=100, description="Items per page"),
) -> OrderListResponse:
    """List orders visible to the caller, newest first."""
    orders, total = await service.list_orders(
        actor,
        guest_email=guest_email,
        status=order_status,
        payment_status=payment_status,
        page=page,
        per_page=per_page,
    )
    return OrderListResponse(
        orders=[OrderResponse.model_validate(order) for order in orders],
        pagination=Pagination(
            current_page=page,
            last_page=max(1, math.ceil(total / per_page)),
            per_page=per_page,
            total=total,
        ),
    )


@router.get("/number/{order_number}", response_model=OrderEnvelope)
async def get_order_by_number(
    order_number: str,
    actor: CurrentActor,
    service: OrderServiceDep,
    guest_email: Optional[str] = Query(None),
) -> OrderEnvelope:
    """Order lookup used by the payment return page."""
    order = await service.get_visible_order(
        actor,
        order_number=order_number,
        guest_email=guest_email,
    )
    return OrderEnvelope(order=OrderResponse.model_validate(order))


@router.get("/{order_id}", response_model=OrderEnvelope)
async def get_order(
    order_id: int,
    actor: CurrentActor,
    service: OrderServiceDep,
    guest_email: Optional[str] = Query(None),
) -> OrderEnvelope:
    """Get a single order."""
    order = await service.get_visible_order(
        actor,
        order_id=order_id,
        guest_email=guest_email,
    )
    return OrderEnvelope(order=OrderResponse.model_validate(order))


@router.put("/{order_id}/status", response_model=OrderEnvelope)
async def update_order_status(
    order_id: int,
    update: OrderStatusUpdate,
    actor: CurrentActor,
    service: OrderServiceDep,
) -> OrderEnvelope:
    """Back-office status override. Admin and personnel only."""
    order = await service.update_status(actor, order_id, update)
    return OrderEnvelope(
        message="Order status updated successfully",
        order=OrderResponse.model_validate(order),
    )
