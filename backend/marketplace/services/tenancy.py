"""Tenancy resolver: the single place that decides who may touch what.

``authorize`` is pure. Callers resolve the actor (effective identity plus the
vendor it owns) and describe the target resource; routers and services then
call ``ensure_allowed`` before every mutating or scoped read operation.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from marketplace.errors import PermissionDenied
from marketplace.models_sqlalchemy.models import UserRole


class Action(str, enum.Enum):
    change_role = "change_role"
    delete_user = "delete_user"
    # Admin console (user list, impersonation).
    admin_access = "admin_access"
    # Platform management (vendors, custom domains, audit log).
    platform_manage = "platform_manage"
    write_product = "write_product"
    write_vendor_category = "write_vendor_category"
    write_global_category = "write_global_category"
    update_order_status = "update_order_status"
    read_order = "read_order"


VENDOR_SCOPED_WRITES = {
    Action.write_product,
    Action.write_vendor_category,
    Action.update_order_status,
}


@dataclass(frozen=True)
class Actor:
    id: str
    role: UserRole
    # Vendor owned by the actor (resolved by owner_id); None for non-sellers
    # and for sellers without a store.
    vendor_id: Optional[str] = None


@dataclass(frozen=True)
class Resource:
    id: Optional[str] = None
    vendor_id: Optional[str] = None
    # customer_id for orders.
    owner_id: Optional[str] = None
    is_deletable: bool = True


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


def allow() -> Decision:
    return Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


def authorize(actor: Optional[Actor], action: Action, resource: Optional[Resource] = None) -> Decision:
    resource = resource or Resource()
    if actor is None:
        return deny("Authentication required")

    # Account mutations are reserved even from the blanket super_admin grant.
    if action == Action.change_role:
        if actor.role != UserRole.super_admin:
            return deny("Only super admins can change user roles")
        return allow()

    if action == Action.delete_user:
        if actor.role != UserRole.super_admin:
            return deny("Only super admins can delete users")
        if resource.id == actor.id:
            return deny("Cannot delete yourself")
        if not resource.is_deletable:
            return deny("User cannot be deleted")
        return allow()

    if actor.role == UserRole.super_admin:
        return allow()

    if action == Action.admin_access:
        if actor.role == UserRole.admin:
            return allow()
        return deny("Admin access required")

    if action == Action.update_order_status and actor.role == UserRole.admin:
        return allow()

    if action in VENDOR_SCOPED_WRITES:
        if actor.role != UserRole.seller:
            return deny("Access denied")
        if actor.vendor_id is None:
            return deny("Vendor not found")
        if resource.vendor_id != actor.vendor_id:
            return deny("Access denied")
        return allow()

    if action == Action.write_global_category:
        return deny("Only super admins can manage global categories")

    if action == Action.read_order:
        if actor.role == UserRole.admin:
            return allow()
        if resource.owner_id is not None and resource.owner_id == actor.id:
            return allow()
        if actor.role == UserRole.seller and actor.vendor_id is not None and resource.vendor_id == actor.vendor_id:
            return allow()
        return deny("Order not found")

    return deny("Access denied")


def ensure_allowed(actor: Optional[Actor], action: Action, resource: Optional[Resource] = None) -> None:
    decision = authorize(actor, action, resource)
    if not decision:
        raise PermissionDenied(decision.reason)


@dataclass(frozen=True)
class CategoryScope:
    """Which categories a listing may return."""

    all: bool = False
    include_global: bool = False
    vendor_id: Optional[str] = None

    @property
    def empty(self) -> bool:
        return not (self.all or self.include_global or self.vendor_id)


def category_read_scope(actor: Optional[Actor]) -> CategoryScope:
    if actor is None:
        return CategoryScope()
    if actor.role == UserRole.super_admin:
        return CategoryScope(all=True)
    if actor.role == UserRole.seller:
        return CategoryScope(include_global=True, vendor_id=actor.vendor_id)
    return CategoryScope()


@dataclass(frozen=True)
class OrderScope:
    """Orders visible to an actor: everything, or own purchases OR own store's orders."""

    all: bool = False
    customer_id: Optional[str] = None
    vendor_id: Optional[str] = None

    @property
    def empty(self) -> bool:
        return not (self.all or self.customer_id or self.vendor_id)


def order_read_scope(actor: Optional[Actor]) -> OrderScope:
    if actor is None:
        return OrderScope()
    if actor.role in (UserRole.super_admin, UserRole.admin):
        return OrderScope(all=True)
    if actor.role == UserRole.seller:
        # A seller without a store only sees its own purchases.
        return OrderScope(customer_id=actor.id, vendor_id=actor.vendor_id)
    return OrderScope(customer_id=actor.id)
