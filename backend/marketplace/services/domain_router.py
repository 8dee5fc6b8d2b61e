from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.orm import Session

from marketplace.errors import NotFoundError, ValidationError
from marketplace.models_sqlalchemy.models import CustomDomain, CustomDomainStatus, Vendor
from marketplace.utils.logger import logger


def normalize_host(hostname: Optional[str]) -> str:
    """Strip the port and lower-case the host; raise when nothing is left."""
    host = (hostname or "").strip().split(":")[0].strip().lower()
    if not host:
        raise ValidationError("Domain not specified")
    return host


def resolve_vendor_for_host(hostname: Optional[str], lookup: Callable[[str], Optional[Vendor]]) -> Vendor:
    """Map an inbound host to a vendor.

    Tier 1 looks the full host up exactly; tier 2 retries with the first label
    ("shop.example.com" -> "shop"). No wildcard or suffix matching is done, so
    multi-level hosts only ever resolve through their first label.
    """
    host = normalize_host(hostname)

    vendor = lookup(host)
    if vendor is None and "." in host:
        subdomain = host.split(".")[0]
        if subdomain:
            vendor = lookup(subdomain)

    if vendor is None:
        raise NotFoundError("Store not found")
    return vendor


def make_vendor_lookup(db: Session) -> Callable[[str], Optional[Vendor]]:
    def _lookup(value: str) -> Optional[Vendor]:
        domain = (
            db.query(CustomDomain)
            .filter(
                CustomDomain.domain == value,
                CustomDomain.status != CustomDomainStatus.inactive,
                CustomDomain.vendor_id.isnot(None),
            )
            .first()
        )
        if domain is not None:
            vendor = db.query(Vendor).filter(Vendor.id == domain.vendor_id).first()
            if vendor is not None:
                return vendor
        return db.query(Vendor).filter(Vendor.domain == value).first()

    return _lookup


def resolve_vendor(db: Session, hostname: Optional[str]) -> Vendor:
    vendor = resolve_vendor_for_host(hostname, make_vendor_lookup(db))
    logger.info(f"Resolved host {hostname!r} to vendor {vendor.id}")
    return vendor
