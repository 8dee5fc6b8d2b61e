from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.models.common import MessageResponse
from marketplace.models.order import CartAddRequest, CartItemResponse, CartUpdateRequest
from marketplace.models_sqlalchemy import get_db
from marketplace.services.auth import RequestContext, get_current_context
from marketplace.services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("", response_model=List[CartItemResponse])
async def get_cart(ctx: RequestContext = Depends(get_current_context), db: Session = Depends(get_db)):
    return CartService(db).list_items(ctx.user.id)


@router.post("", response_model=CartItemResponse)
async def add_to_cart(
    payload: CartAddRequest,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    return CartService(db).add_item(
        ctx.user.id,
        payload.product_id,
        quantity=payload.quantity,
        size=payload.size,
        color=payload.color,
    )


@router.put("/{product_id}", response_model=CartItemResponse)
async def update_cart_item(
    product_id: str,
    payload: CartUpdateRequest,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    return CartService(db).update_quantity(
        ctx.user.id,
        product_id,
        payload.quantity,
        size=payload.size,
        color=payload.color,
    )


@router.delete("/{product_id}", response_model=MessageResponse)
async def remove_cart_item(
    product_id: str,
    size: Optional[str] = Query(None),
    color: Optional[str] = Query(None),
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    CartService(db).remove_item(ctx.user.id, product_id, size=size, color=color)
    return MessageResponse(message="Item removed from cart")


@router.delete("", response_model=MessageResponse)
async def clear_cart(ctx: RequestContext = Depends(get_current_context), db: Session = Depends(get_db)):
    CartService(db).clear(ctx.user.id)
    return MessageResponse(message="Cart cleared")
