from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.models.catalog import CategoryCreate, CategoryResponse, CategoryUpdate
from marketplace.models.common import MessageResponse
from marketplace.models_sqlalchemy import get_db
from marketplace.services.auth import RequestContext, get_current_context
from marketplace.services.catalog_service import CategoryService

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=List[CategoryResponse])
async def list_categories(
    vendor_id: Optional[str] = Query(None, alias="vendorId"),
    is_global: Optional[bool] = Query(None, alias="isGlobal"),
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    return CategoryService(db).list_categories(ctx.actor, vendor_id=vendor_id, is_global=is_global)


@router.post("", response_model=CategoryResponse)
async def create_category(
    payload: CategoryCreate,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    return CategoryService(db).create_category(ctx.actor, payload.model_dump())


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    payload: CategoryUpdate,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    return CategoryService(db).update_category(ctx.actor, category_id, payload.model_dump(exclude_unset=True))


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: str,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    CategoryService(db).delete_category(ctx.actor, category_id)
    return MessageResponse(message="Category deleted successfully")
