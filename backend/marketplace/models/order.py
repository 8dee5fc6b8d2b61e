from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from marketplace.models.catalog import ProductResponse
from marketplace.models.common import ApiModel, Money, RequestModel
from marketplace.models_sqlalchemy.models import OrderStatus


class CartAddRequest(RequestModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    size: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=50)


class CartUpdateRequest(RequestModel):
    # Range is checked by the cart service so the error reads the same on every path.
    quantity: int
    size: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=50)


class CartItemResponse(ApiModel):
    id: str
    user_id: str
    product_id: str
    quantity: int
    size: Optional[str] = None
    color: Optional[str] = None
    product: Optional[ProductResponse] = None

    @field_validator("size", "color", mode="before")
    @classmethod
    def _blank_as_none(cls, value):
        return value or None


class CheckoutRequest(RequestModel):
    vendor_id: str
    shipping_address: Optional[Dict[str, Any]] = None


class OrderItemResponse(ApiModel):
    id: str
    product_id: str
    quantity: int
    price: Money


class OrderResponse(ApiModel):
    id: str
    customer_id: str
    vendor_id: str
    total: Money
    status: OrderStatus
    shipping_address: Optional[Dict[str, Any]] = None
    items: List[OrderItemResponse] = []
    created_at: datetime
    updated_at: datetime


class OrderStatusUpdate(RequestModel):
    status: str
