from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from marketplace.errors import NotFoundError, PersistenceError, ValidationError
from marketplace.models_sqlalchemy.models import CartItem, Product
from marketplace.utils.logger import logger


def normalize_variant(size: Optional[str], color: Optional[str]) -> Tuple[str, str]:
    return (size or "").strip(), (color or "").strip()


class CartService:

    def __init__(self, db: Session):
        self.db = db

    def list_items(self, user_id: str) -> List[CartItem]:
        return (
            self.db.query(CartItem)
            .options(joinedload(CartItem.product).joinedload(Product.variants))
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.created_at.asc())
            .all()
        )

    def _get_line(self, user_id: str, product_id: str, size: str, color: str) -> Optional[CartItem]:
        return (
            self.db.query(CartItem)
            .options(joinedload(CartItem.product))
            .filter(
                CartItem.user_id == user_id,
                CartItem.product_id == product_id,
                CartItem.size == size,
                CartItem.color == color,
            )
            .populate_existing()
            .first()
        )

    def _increment(self, user_id: str, product_id: str, size: str, color: str, quantity: int) -> int:
        # Single UPDATE ... SET quantity = quantity + n so concurrent adds never lose an increment.
        result = self.db.execute(
            update(CartItem)
            .where(
                CartItem.user_id == user_id,
                CartItem.product_id == product_id,
                CartItem.size == size,
                CartItem.color == color,
            )
            .values(quantity=CartItem.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def add_item(
        self,
        user_id: str,
        product_id: str,
        quantity: int = 1,
        size: Optional[str] = None,
        color: Optional[str] = None,
    ) -> CartItem:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        product = self.db.query(Product).filter(Product.id == product_id).first()
        if product is None:
            raise NotFoundError("Product not found")

        size, color = normalize_variant(size, color)

        if self._increment(user_id, product_id, size, color, quantity) == 0:
            self.db.add(
                CartItem(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    product_id=product_id,
                    quantity=quantity,
                    size=size,
                    color=color,
                    created_at=datetime.utcnow(),
                )
            )
            try:
                self.db.commit()
            except IntegrityError:
                # A concurrent add inserted the same line first; merge into it.
                self.db.rollback()
                if self._increment(user_id, product_id, size, color, quantity) == 0:
                    self.db.rollback()
                    raise PersistenceError("Failed to add item to cart")
                self.db.commit()
        else:
            self.db.commit()

        item = self._get_line(user_id, product_id, size, color)
        logger.info(f"Cart line {item.id} for user {user_id} now has quantity {item.quantity}")
        return item

    def _matching_lines(
        self,
        user_id: str,
        product_id: str,
        size: Optional[str],
        color: Optional[str],
    ) -> List[CartItem]:
        query = self.db.query(CartItem).filter(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id,
        )
        if size is not None:
            query = query.filter(CartItem.size == size.strip())
        if color is not None:
            query = query.filter(CartItem.color == color.strip())
        return query.all()

    def update_quantity(
        self,
        user_id: str,
        product_id: str,
        quantity: int,
        size: Optional[str] = None,
        color: Optional[str] = None,
    ) -> CartItem:
        """Set a line's quantity.

        Lines are matched by user and product; ``size``/``color`` narrow the
        match and are required once the product sits in the cart more than once.
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        lines = self._matching_lines(user_id, product_id, size, color)
        if not lines:
            raise NotFoundError("Cart item not found")
        if len(lines) > 1:
            raise ValidationError("Several cart lines match this product; specify size and color")

        line = lines[0]
        line.quantity = quantity
        self.db.commit()
        return self._get_line(user_id, product_id, line.size, line.color)

    def remove_item(
        self,
        user_id: str,
        product_id: str,
        size: Optional[str] = None,
        color: Optional[str] = None,
    ) -> int:
        lines = self._matching_lines(user_id, product_id, size, color)
        if not lines:
            raise NotFoundError("Cart item not found")
        for line in lines:
            self.db.delete(line)
        self.db.commit()
        return len(lines)

    def clear(self, user_id: str) -> int:
        removed = (
            self.db.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return removed
