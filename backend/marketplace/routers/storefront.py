from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from marketplace.models.catalog import CategoryResponse, ProductResponse
from marketplace.models.vendor import StorefrontResponse, StorefrontVendor
from marketplace.models_sqlalchemy import get_db
from marketplace.services.catalog_service import CategoryService, ProductService
from marketplace.services.domain_router import resolve_vendor

router = APIRouter(prefix="/api/storefront", tags=["storefront"])


@router.get("/by-domain", response_model=StorefrontResponse)
async def get_storefront_by_domain(
    request: Request,
    domain: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Public store payload for the vendor serving ``domain`` (or the Host header)."""
    hostname = domain or request.headers.get("host")
    vendor = resolve_vendor(db, hostname)

    products = [p for p in ProductService(db).list_products(vendor_id=vendor.id) if p.is_active]
    categories = CategoryService(db).list_for_vendor(vendor.id)
    custom_domain = vendor.custom_domain.domain if vendor.custom_domain is not None else None

    return StorefrontResponse(
        vendor=StorefrontVendor(
            id=vendor.id,
            name=vendor.name,
            description=vendor.description,
            domain=vendor.domain,
            custom_domain=custom_domain,
        ),
        products=[ProductResponse.model_validate(p) for p in products],
        categories=[CategoryResponse.model_validate(c) for c in categories],
    )
