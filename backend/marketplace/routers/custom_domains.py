from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.models.common import MessageResponse
from marketplace.models.vendor import CustomDomainCreate, CustomDomainResponse, CustomDomainUpdate
from marketplace.models_sqlalchemy import get_db
from marketplace.services.auth import RequestContext, super_admin_required
from marketplace.services.vendor_service import CustomDomainService
from marketplace.utils.logger import audit_logger

router = APIRouter(prefix="/api/admin/custom-domains", tags=["custom-domains"])


@router.get("", response_model=List[CustomDomainResponse])
async def list_custom_domains(_: RequestContext = Depends(super_admin_required), db: Session = Depends(get_db)):
    return CustomDomainService(db).list_domains()


@router.post("", response_model=CustomDomainResponse)
async def create_custom_domain(
    payload: CustomDomainCreate,
    ctx: RequestContext = Depends(super_admin_required),
    db: Session = Depends(get_db),
):
    record = CustomDomainService(db).create_domain(
        ctx.actor,
        payload.domain,
        vendor_id=payload.vendor_id,
        ssl_enabled=payload.ssl_enabled,
    )
    audit_logger.log_event(
        "custom_domain_create",
        f"Custom domain {record.domain} registered",
        actor_id=ctx.user.id,
        target_id=record.id,
        details={"vendor_id": record.vendor_id},
    )
    return record


@router.put("/{domain_id}", response_model=CustomDomainResponse)
async def update_custom_domain(
    domain_id: str,
    payload: CustomDomainUpdate,
    ctx: RequestContext = Depends(super_admin_required),
    db: Session = Depends(get_db),
):
    record = CustomDomainService(db).update_domain(domain_id, payload.model_dump(exclude_unset=True))
    audit_logger.log_event(
        "custom_domain_update",
        f"Custom domain {record.domain} updated",
        actor_id=ctx.user.id,
        target_id=record.id,
        details={"status": record.status.value, "vendor_id": record.vendor_id},
    )
    return record


@router.delete("/{domain_id}", response_model=MessageResponse)
async def delete_custom_domain(
    domain_id: str,
    ctx: RequestContext = Depends(super_admin_required),
    db: Session = Depends(get_db),
):
    CustomDomainService(db).delete_domain(domain_id)
    audit_logger.log_event("custom_domain_delete", f"Custom domain {domain_id} deleted", actor_id=ctx.user.id, target_id=domain_id)
    return MessageResponse(message="Domain deleted successfully")
