from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from marketplace.errors import (
    EmptyCartError,
    MarketplaceError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from marketplace.models_sqlalchemy.models import CartItem, Order, OrderItem, OrderStatus, Product, Vendor
from marketplace.services.tenancy import Action, Actor, Resource, authorize, ensure_allowed, order_read_scope
from marketplace.utils.logger import logger
from marketplace.utils.money import sum_lines, to_decimal

VALID_STATUSES = {s.value for s in OrderStatus}


def parse_status(value: Optional[str]) -> OrderStatus:
    normalized = (value or "").strip().lower()
    if normalized not in VALID_STATUSES:
        raise ValidationError("Invalid order status")
    return OrderStatus(normalized)


def snapshot_items(lines: List[CartItem], products: Dict[str, Product]) -> Tuple[List[OrderItem], Any]:
    """Freeze each cart line's current unit price into an OrderItem."""
    items: List[OrderItem] = []
    priced: List[Tuple[Any, int]] = []
    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            raise NotFoundError("Product not found")
        price = to_decimal(product.price)
        priced.append((price, line.quantity))
        items.append(
            OrderItem(
                id=str(uuid.uuid4()),
                product_id=line.product_id,
                quantity=line.quantity,
                price=price,
            )
        )
    return items, sum_lines(priced)


def _insert_order(db: Session, order: Order) -> None:
    db.add(order)
    db.flush()


class OrderService:

    def __init__(self, db: Session):
        self.db = db

    def checkout(self, user_id: str, vendor_id: str, shipping_address: Optional[Dict[str, Any]] = None) -> Order:
        """Turn the user's cart into one order.

        Reading the cart, inserting the order and clearing the cart form one
        transaction; the cart rows are locked so a double submit creates at
        most one order. On any failure the transaction is rolled back and the
        cart is left untouched.
        """
        try:
            vendor = self.db.query(Vendor).filter(Vendor.id == vendor_id).first()
            if vendor is None:
                raise NotFoundError("Vendor not found")

            lines = (
                self.db.query(CartItem)
                .filter(CartItem.user_id == user_id)
                .order_by(CartItem.created_at.asc())
                .with_for_update()
                .all()
            )
            if not lines:
                raise EmptyCartError()

            product_ids = {line.product_id for line in lines}
            products = {p.id: p for p in self.db.query(Product).filter(Product.id.in_(product_ids)).all()}
            items, total = snapshot_items(lines, products)

            now = datetime.utcnow()
            order = Order(
                id=str(uuid.uuid4()),
                customer_id=user_id,
                vendor_id=vendor.id,
                total=total,
                status=OrderStatus.pending,
                shipping_address=shipping_address,
                created_at=now,
                updated_at=now,
            )
            order.items.extend(items)
            _insert_order(self.db, order)

            # Only the lines priced above; anything added concurrently stays in the cart.
            line_ids = [line.id for line in lines]
            self.db.query(CartItem).filter(CartItem.id.in_(line_ids)).delete(synchronize_session=False)
            self.db.commit()
        except MarketplaceError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Checkout failed for user {user_id}: {type(exc).__name__}: {exc}")
            raise PersistenceError("Failed to create order") from exc

        logger.info(f"Order {order.id} created for user {user_id} vendor {vendor_id} total={total}")
        return self.get_order_by_id(order.id)

    def get_order_by_id(self, order_id: str) -> Optional[Order]:
        return (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.id == order_id)
            .first()
        )

    def list_orders(self, actor: Actor, status: Optional[str] = None) -> List[Order]:
        scope = order_read_scope(actor)
        if scope.empty:
            return []

        query = self.db.query(Order).options(selectinload(Order.items))
        if not scope.all:
            clauses = []
            if scope.customer_id:
                clauses.append(Order.customer_id == scope.customer_id)
            if scope.vendor_id:
                clauses.append(Order.vendor_id == scope.vendor_id)
            query = query.filter(or_(*clauses))
        if status:
            query = query.filter(Order.status == parse_status(status))
        return query.order_by(Order.created_at.desc()).all()

    def get_order(self, actor: Actor, order_id: str) -> Order:
        order = self.get_order_by_id(order_id)
        # Invisible orders read as missing so ids of other tenants don't leak.
        if order is None or not authorize(
            actor,
            Action.read_order,
            Resource(id=order.id, vendor_id=order.vendor_id, owner_id=order.customer_id),
        ):
            raise NotFoundError("Order not found")
        return order

    def update_status(self, actor: Actor, order_id: str, new_status: str) -> Order:
        """Move an order to any status of the enum; no transition graph is enforced."""
        status = parse_status(new_status)

        order = self.get_order_by_id(order_id)
        if order is None:
            raise NotFoundError("Order not found")

        ensure_allowed(actor, Action.update_order_status, Resource(id=order.id, vendor_id=order.vendor_id))

        previous = order.status
        order.status = status
        order.updated_at = datetime.utcnow()
        self.db.commit()
        logger.info(f"Order {order.id} status {previous.value} -> {status.value} by {actor.id}")
        return self.get_order_by_id(order.id)
