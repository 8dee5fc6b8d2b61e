from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from marketplace.errors import ConflictError, NotFoundError, PermissionDenied, ValidationError
from marketplace.models_sqlalchemy.models import Category, Product, ProductVariant, UserRole, Vendor
from marketplace.services.tenancy import Action, Actor, Resource, category_read_scope, ensure_allowed
from marketplace.utils.logger import logger


class CategoryService:

    def __init__(self, db: Session):
        self.db = db

    def get_category(self, category_id: str) -> Category:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if category is None:
            raise NotFoundError("Category not found")
        return category

    def list_categories(
        self,
        actor: Optional[Actor],
        vendor_id: Optional[str] = None,
        is_global: Optional[bool] = None,
    ) -> List[Category]:
        """Categories visible to ``actor``.

        Super admins see everything (optionally filtered), sellers see global
        categories plus their own store's, everybody else gets an empty list.
        """
        scope = category_read_scope(actor)
        if scope.empty:
            return []

        query = self.db.query(Category)
        if scope.all:
            if vendor_id is not None:
                query = query.filter(Category.vendor_id == vendor_id)
            if is_global is not None:
                query = query.filter(Category.is_global.is_(is_global))
        else:
            clauses = []
            if scope.include_global:
                clauses.append(Category.is_global.is_(True))
            if scope.vendor_id:
                clauses.append(Category.vendor_id == scope.vendor_id)
            query = query.filter(or_(*clauses))
        return query.order_by(Category.is_global.desc(), Category.name.asc()).all()

    def list_for_vendor(self, vendor_id: str) -> List[Category]:
        return (
            self.db.query(Category)
            .filter(Category.vendor_id == vendor_id)
            .order_by(Category.name.asc())
            .all()
        )

    def _check_parent(self, parent_id: Optional[str], vendor_id: Optional[str]) -> None:
        if not parent_id:
            return
        parent = self.db.query(Category).filter(Category.id == parent_id).first()
        if parent is None or not (parent.is_global or parent.vendor_id == vendor_id):
            raise ValidationError("Invalid parent category")

    def create_category(self, actor: Actor, fields: Dict[str, Any]) -> Category:
        if fields.get("is_global"):
            ensure_allowed(actor, Action.write_global_category)
            vendor_id = None
        else:
            vendor_id = fields.get("vendor_id") or actor.vendor_id
            if vendor_id is None:
                if actor.role == UserRole.seller:
                    raise PermissionDenied("Vendor not found")
                raise ValidationError("vendorId is required")
            ensure_allowed(actor, Action.write_vendor_category, Resource(vendor_id=vendor_id))
            if self.db.query(Vendor).filter(Vendor.id == vendor_id).first() is None:
                raise NotFoundError("Vendor not found")

        self._check_parent(fields.get("parent_id"), vendor_id)

        category = Category(
            id=str(uuid.uuid4()),
            name=fields["name"],
            description=fields.get("description"),
            parent_id=fields.get("parent_id"),
            vendor_id=vendor_id,
            is_global=vendor_id is None,
            status=fields.get("status") or "active",
            created_by=actor.id,
            created_at=datetime.utcnow(),
        )
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        logger.info(f"Created {'global' if category.is_global else 'vendor'} category {category.id} by {actor.id}")
        return category

    def _ensure_can_write(self, actor: Actor, category: Category) -> None:
        if category.is_global:
            ensure_allowed(actor, Action.write_global_category, Resource(id=category.id))
        else:
            ensure_allowed(actor, Action.write_vendor_category, Resource(id=category.id, vendor_id=category.vendor_id))

    def update_category(self, actor: Actor, category_id: str, updates: Dict[str, Any]) -> Category:
        category = self.get_category(category_id)
        self._ensure_can_write(actor, category)

        if updates.get("parent_id"):
            if updates["parent_id"] == category.id:
                raise ValidationError("A category cannot be its own parent")
            self._check_parent(updates["parent_id"], category.vendor_id)

        for key, value in updates.items():
            if key in {"name", "status"} and value is None:
                continue
            if key in {"name", "description", "parent_id", "status"}:
                setattr(category, key, value)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete_category(self, actor: Actor, category_id: str) -> bool:
        category = self.get_category(category_id)
        self._ensure_can_write(actor, category)
        self.db.delete(category)
        self.db.commit()
        logger.info(f"Deleted category {category_id} by {actor.id}")
        return True


class ProductService:

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Product).options(selectinload(Product.variants))

    def list_products(self, vendor_id: Optional[str] = None, category_id: Optional[str] = None) -> List[Product]:
        query = self._query()
        if vendor_id:
            query = query.filter(Product.vendor_id == vendor_id)
        if category_id:
            query = query.filter(Product.category_id == category_id)
        return query.order_by(Product.created_at.desc()).all()

    def get_product(self, product_id: str) -> Product:
        product = self._query().filter(Product.id == product_id).first()
        if product is None:
            raise NotFoundError("Product not found")
        return product

    def _check_category(self, category_id: Optional[str], vendor_id: str) -> None:
        if not category_id:
            return
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if category is None or not (category.is_global or category.vendor_id == vendor_id):
            raise ValidationError("Invalid category")

    def _build_variants(self, variants: List[Dict[str, Any]]) -> List[ProductVariant]:
        now = datetime.utcnow()
        return [
            ProductVariant(
                id=str(uuid.uuid4()),
                sku=v["sku"],
                mrp=v["mrp"],
                selling_price=v["selling_price"],
                purchase_price=v["purchase_price"],
                stock=v.get("stock") or 0,
                size=v.get("size"),
                color=v.get("color"),
                status=v.get("status") or "active",
                created_at=now,
            )
            for v in variants
        ]

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("A variant with this SKU already exists")

    def create_product(self, actor: Actor, fields: Dict[str, Any]) -> Product:
        vendor_id = fields.get("vendor_id") or actor.vendor_id
        if not vendor_id:
            if actor.role == UserRole.seller:
                raise PermissionDenied("Vendor not found")
            raise ValidationError("vendorId is required")
        ensure_allowed(actor, Action.write_product, Resource(vendor_id=vendor_id))

        if self.db.query(Vendor).filter(Vendor.id == vendor_id).first() is None:
            raise NotFoundError("Vendor not found")
        self._check_category(fields.get("category_id"), vendor_id)

        product = Product(
            id=str(uuid.uuid4()),
            vendor_id=vendor_id,
            category_id=fields.get("category_id"),
            name=fields["name"],
            description=fields.get("description"),
            price=fields["price"],
            image_url=fields.get("image_url"),
            stock=fields.get("stock") or 0,
            is_active=fields.get("is_active", True),
            created_at=datetime.utcnow(),
        )
        product.variants.extend(self._build_variants(fields.get("variants") or []))
        self.db.add(product)
        self._commit()
        logger.info(f"Created product {product.id} for vendor {vendor_id} by {actor.id}")
        return self.get_product(product.id)

    def update_product(self, actor: Actor, product_id: str, updates: Dict[str, Any]) -> Product:
        product = self.get_product(product_id)
        ensure_allowed(actor, Action.write_product, Resource(id=product.id, vendor_id=product.vendor_id))

        if "category_id" in updates:
            self._check_category(updates["category_id"], product.vendor_id)

        for key, value in updates.items():
            if key == "variants" or (value is None and key not in {"category_id", "description", "image_url"}):
                continue
            if key in {"category_id", "name", "description", "price", "image_url", "stock", "is_active"}:
                setattr(product, key, value)

        if updates.get("variants") is not None:
            product.variants.clear()
            self.db.flush()
            product.variants.extend(self._build_variants(updates["variants"]))

        product.updated_at = datetime.utcnow()
        self._commit()
        return self.get_product(product.id)

    def delete_product(self, actor: Actor, product_id: str) -> bool:
        product = self.get_product(product_id)
        ensure_allowed(actor, Action.write_product, Resource(id=product.id, vendor_id=product.vendor_id))
        self.db.delete(product)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Product has orders; deactivate it instead")
        logger.info(f"Deleted product {product_id} by {actor.id}")
        return True
