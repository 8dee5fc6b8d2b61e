from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.models.catalog import ProductCreate, ProductResponse, ProductUpdate
from marketplace.models.common import MessageResponse
from marketplace.models_sqlalchemy import get_db
from marketplace.services.auth import RequestContext, get_current_context
from marketplace.services.catalog_service import ProductService

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=List[ProductResponse])
async def list_products(
    vendor_id: Optional[str] = Query(None, alias="vendorId"),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    db: Session = Depends(get_db),
):
    return ProductService(db).list_products(vendor_id=vendor_id, category_id=category_id)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, db: Session = Depends(get_db)):
    return ProductService(db).get_product(product_id)


@router.post("", response_model=ProductResponse)
async def create_product(
    payload: ProductCreate,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    return ProductService(db).create_product(ctx.actor, payload.model_dump())


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    return ProductService(db).update_product(ctx.actor, product_id, payload.model_dump(exclude_unset=True))


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: str,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    ProductService(db).delete_product(ctx.actor, product_id)
    return MessageResponse(message="Product deleted successfully")
