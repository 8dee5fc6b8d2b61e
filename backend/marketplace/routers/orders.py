from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.models.order import CheckoutRequest, OrderResponse, OrderStatusUpdate
from marketplace.models_sqlalchemy import get_db
from marketplace.services.auth import RequestContext, get_current_context
from marketplace.services.order_service import OrderService
from marketplace.utils.logger import audit_logger

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("", response_model=List[OrderResponse])
async def list_orders(
    status: Optional[str] = Query(None),
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    return OrderService(db).list_orders(ctx.actor, status=status)


@router.post("", response_model=OrderResponse)
async def create_order(
    payload: CheckoutRequest,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    return OrderService(db).checkout(ctx.user.id, payload.vendor_id, payload.shipping_address)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    return OrderService(db).get_order(ctx.actor, order_id)


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    order = OrderService(db).update_status(ctx.actor, order_id, payload.status)
    audit_logger.log_event(
        "order_status",
        f"Order {order.id} moved to {order.status.value}",
        actor_id=ctx.user.id,
        target_id=order.id,
    )
    return order
