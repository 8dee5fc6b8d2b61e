from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.errors import NotFoundError
from marketplace.models.vendor import VendorCreate, VendorResponse, VendorUpdate
from marketplace.models_sqlalchemy import get_db
from marketplace.services.auth import RequestContext, get_current_context, super_admin_required
from marketplace.services.vendor_service import VendorService
from marketplace.utils.logger import audit_logger

router = APIRouter(prefix="/api/vendors", tags=["vendors"])
admin_router = APIRouter(prefix="/api/admin/vendors", tags=["vendors"])


@router.get("", response_model=List[VendorResponse])
async def list_vendors(_: RequestContext = Depends(super_admin_required), db: Session = Depends(get_db)):
    return VendorService(db).list_vendors()


@router.post("", response_model=VendorResponse)
async def create_vendor(
    payload: VendorCreate,
    ctx: RequestContext = Depends(super_admin_required),
    db: Session = Depends(get_db),
):
    fields = payload.model_dump(exclude={"owner_email"})
    vendor = VendorService(db).create_vendor(ctx.actor, payload.owner_email.lower(), fields)
    audit_logger.log_event(
        "vendor_create",
        f"Vendor {vendor.name} created",
        actor_id=ctx.user.id,
        target_id=vendor.id,
        details={"owner_id": vendor.owner_id, "domain": vendor.domain},
    )
    return vendor


@router.get("/my", response_model=VendorResponse)
async def get_my_vendor(ctx: RequestContext = Depends(get_current_context), db: Session = Depends(get_db)):
    vendor = VendorService(db).get_vendor_by_owner(ctx.user.id)
    if vendor is None:
        raise NotFoundError("Vendor not found")
    return vendor


@router.get("/{vendor_id}", response_model=VendorResponse)
async def get_vendor(
    vendor_id: str,
    _: RequestContext = Depends(super_admin_required),
    db: Session = Depends(get_db),
):
    return VendorService(db).get_vendor(vendor_id)


@router.patch("/{vendor_id}", response_model=VendorResponse)
async def update_vendor(
    vendor_id: str,
    payload: VendorUpdate,
    ctx: RequestContext = Depends(super_admin_required),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_unset=True)
    vendor = VendorService(db).update_vendor(vendor_id, updates)
    audit_logger.log_event(
        "vendor_update",
        f"Vendor {vendor.name} updated",
        actor_id=ctx.user.id,
        target_id=vendor.id,
        details={"fields": sorted(updates)},
    )
    return vendor


@admin_router.post("/{vendor_id}/generate-subdomain", response_model=VendorResponse)
async def generate_subdomain(
    vendor_id: str,
    ctx: RequestContext = Depends(super_admin_required),
    db: Session = Depends(get_db),
):
    vendor = VendorService(db).generate_subdomain(vendor_id)
    audit_logger.log_event(
        "vendor_subdomain",
        f"Subdomain {vendor.domain} assigned",
        actor_id=ctx.user.id,
        target_id=vendor.id,
    )
    return vendor
