from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field
from typing_extensions import Annotated

from marketplace.models.common import ApiModel, Money, RequestModel

Price = Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=2)]


class CategoryCreate(RequestModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    parent_id: Optional[str] = None
    is_global: bool = False
    # Sellers always write to their own store; super admins may target any vendor.
    vendor_id: Optional[str] = None
    status: str = "active"


class CategoryUpdate(RequestModel):
    # Scope (vendor / global) is fixed at creation time.
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    parent_id: Optional[str] = None
    status: Optional[str] = None


class CategoryResponse(ApiModel):
    id: str
    name: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    vendor_id: Optional[str] = None
    is_global: bool
    status: str
    created_by: Optional[str] = None
    created_at: datetime


class VariantCreate(RequestModel):
    sku: str = Field(min_length=1, max_length=100)
    mrp: Price
    selling_price: Price
    purchase_price: Price
    stock: int = Field(default=0, ge=0)
    size: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=50)
    status: str = "active"


class VariantResponse(ApiModel):
    id: str
    sku: str
    mrp: Money
    selling_price: Money
    purchase_price: Money
    stock: int
    size: Optional[str] = None
    color: Optional[str] = None
    status: str


class ProductCreate(RequestModel):
    vendor_id: Optional[str] = None
    category_id: Optional[str] = None
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    price: Price
    image_url: Optional[str] = None
    stock: int = Field(default=0, ge=0)
    is_active: bool = True
    variants: List[VariantCreate] = Field(default_factory=list)


class ProductUpdate(RequestModel):
    category_id: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Price] = None
    image_url: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    # When present, replaces the product's variants.
    variants: Optional[List[VariantCreate]] = None


class ProductResponse(ApiModel):
    id: str
    vendor_id: str
    category_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: Money
    image_url: Optional[str] = None
    stock: int
    is_active: bool
    variants: List[VariantResponse] = []
    created_at: datetime
