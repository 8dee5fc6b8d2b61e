from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.errors import ConflictError, NotFoundError, ValidationError
from marketplace.models_sqlalchemy.models import CustomDomain, CustomDomainStatus, UserRole, Vendor
from marketplace.services.domain_router import normalize_host
from marketplace.services.tenancy import Actor
from marketplace.services.user_service import UserService
from marketplace.utils.logger import logger


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]", "-", (name or "").lower())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


class VendorService:

    def __init__(self, db: Session):
        self.db = db

    def list_vendors(self) -> List[Vendor]:
        return self.db.query(Vendor).order_by(Vendor.created_at.asc()).all()

    def get_vendor(self, vendor_id: str) -> Vendor:
        vendor = self.db.query(Vendor).filter(Vendor.id == vendor_id).first()
        if vendor is None:
            raise NotFoundError("Vendor not found")
        return vendor

    def get_vendor_by_owner(self, owner_id: str) -> Optional[Vendor]:
        return (
            self.db.query(Vendor)
            .filter(Vendor.owner_id == owner_id)
            .order_by(Vendor.created_at.asc())
            .first()
        )

    def _ensure_domain_free(self, domain: Optional[str], vendor_id: Optional[str] = None) -> None:
        if not domain:
            return
        query = self.db.query(Vendor).filter(Vendor.domain == domain)
        if vendor_id:
            query = query.filter(Vendor.id != vendor_id)
        if query.first() is not None:
            raise ConflictError("Domain is already in use")

    def create_vendor(self, actor: Actor, owner_email: str, fields: Dict[str, Any]) -> Vendor:
        """Create a store for ``owner_email``; the owner is found or created and made a seller."""
        domain = normalize_host(fields["domain"]) if fields.get("domain") else None
        self._ensure_domain_free(domain)

        users = UserService(self.db)
        owner = users.get_user_by_email(owner_email)
        if owner is None:
            owner = users.create_user(
                email=owner_email,
                role=UserRole.seller,
                is_email_verified=False,
                is_deletable=True,
                created_by=actor.id,
                commit=False,
            )
        elif owner.role not in (UserRole.seller, UserRole.super_admin):
            logger.info(f"Promoting {owner.email} from {owner.role.value} to seller")
            owner.role = UserRole.seller

        if self.get_vendor_by_owner(owner.id) is not None:
            self.db.rollback()
            raise ConflictError("This owner already has a store")

        vendor = Vendor(
            id=str(uuid.uuid4()),
            owner_id=owner.id,
            name=fields["name"],
            description=fields.get("description"),
            domain=domain,
            plan=fields.get("plan") or "basic",
            status=fields.get("status") or "active",
            subscription_status=fields.get("subscription_status") or "trial",
            created_by=actor.id,
            created_at=datetime.utcnow(),
        )
        self.db.add(vendor)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Vendor conflicts with an existing store")
        self.db.refresh(vendor)
        logger.info(f"Created vendor {vendor.id} ({vendor.name}) owned by {owner.email}")
        return vendor

    def update_vendor(self, vendor_id: str, updates: Dict[str, Any]) -> Vendor:
        vendor = self.get_vendor(vendor_id)
        if "domain" in updates:
            domain = normalize_host(updates["domain"]) if updates["domain"] else None
            self._ensure_domain_free(domain, vendor.id)
            updates = dict(updates, domain=domain)
        for key, value in updates.items():
            if value is None and key not in {"description", "domain"}:
                continue
            if hasattr(vendor, key):
                setattr(vendor, key, value)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Domain is already in use")
        self.db.refresh(vendor)
        return vendor

    def generate_subdomain(self, vendor_id: str, base_domain: Optional[str] = None) -> Vendor:
        vendor = self.get_vendor(vendor_id)
        slug = slugify(vendor.name)
        if not slug:
            raise ValidationError("Vendor name cannot be turned into a subdomain")
        domain = f"{slug}.{base_domain or settings.PLATFORM_BASE_DOMAIN}"
        return self.update_vendor(vendor.id, {"domain": domain})


class CustomDomainService:

    def __init__(self, db: Session):
        self.db = db

    def list_domains(self) -> List[CustomDomain]:
        return self.db.query(CustomDomain).order_by(CustomDomain.created_at.asc()).all()

    def get_domain(self, domain_id: str) -> CustomDomain:
        domain = self.db.query(CustomDomain).filter(CustomDomain.id == domain_id).first()
        if domain is None:
            raise NotFoundError("Domain not found")
        return domain

    def _link(self, domain: CustomDomain, vendor_id: Optional[str]) -> None:
        """Point ``domain`` at ``vendor_id`` and keep vendor.custom_domain_id in step."""
        if domain.vendor_id and domain.vendor_id != vendor_id:
            previous = self.db.query(Vendor).filter(Vendor.id == domain.vendor_id).first()
            if previous is not None and previous.custom_domain_id == domain.id:
                previous.custom_domain_id = None

        if vendor_id:
            vendor = self.db.query(Vendor).filter(Vendor.id == vendor_id).first()
            if vendor is None:
                raise NotFoundError("Vendor not found")
            if vendor.custom_domain_id and vendor.custom_domain_id != domain.id:
                # A vendor points at one custom domain; the old one is detached.
                old = self.db.query(CustomDomain).filter(CustomDomain.id == vendor.custom_domain_id).first()
                if old is not None:
                    old.vendor_id = None
            vendor.custom_domain_id = domain.id
        domain.vendor_id = vendor_id

    def create_domain(self, actor: Actor, domain: str, vendor_id: Optional[str] = None, ssl_enabled: bool = False) -> CustomDomain:
        host = normalize_host(domain)
        if self.db.query(CustomDomain).filter(CustomDomain.domain == host).first() is not None:
            raise ConflictError("Domain is already registered")

        record = CustomDomain(
            id=str(uuid.uuid4()),
            domain=host,
            status=CustomDomainStatus.pending,
            ssl_enabled=ssl_enabled,
            created_by=actor.id,
            created_at=datetime.utcnow(),
        )
        self.db.add(record)
        self.db.flush()
        try:
            self._link(record, vendor_id)
            self.db.commit()
        except NotFoundError:
            self.db.rollback()
            raise
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Domain is already registered")
        self.db.refresh(record)
        logger.info(f"Registered custom domain {host} for vendor {vendor_id}")
        return record

    def update_domain(self, domain_id: str, updates: Dict[str, Any]) -> CustomDomain:
        record = self.get_domain(domain_id)
        if updates.get("domain"):
            host = normalize_host(updates["domain"])
            clash = (
                self.db.query(CustomDomain)
                .filter(CustomDomain.domain == host, CustomDomain.id != record.id)
                .first()
            )
            if clash is not None:
                raise ConflictError("Domain is already registered")
            record.domain = host
        if "status" in updates and updates["status"] is not None:
            record.status = CustomDomainStatus(updates["status"])
        if "ssl_enabled" in updates and updates["ssl_enabled"] is not None:
            record.ssl_enabled = updates["ssl_enabled"]
        try:
            if "vendor_id" in updates:
                self._link(record, updates["vendor_id"])
            self.db.commit()
        except NotFoundError:
            self.db.rollback()
            raise
        self.db.refresh(record)
        return record

    def delete_domain(self, domain_id: str) -> bool:
        record = self.get_domain(domain_id)
        self._link(record, None)
        self.db.flush()
        self.db.delete(record)
        self.db.commit()
        logger.info(f"Deleted custom domain {domain_id}")
        return True
