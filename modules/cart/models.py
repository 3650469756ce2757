"""
Cart Module - Models
=====================
Shopping cart with per-user uniqueness and quantity constraints.

Cart business rules live on the Cart itself and never touch the session:
the service loads the cart, calls a method, then flushes.
"""

from decimal import Decimal

from sqlalchemy import (
    Column, Integer, ForeignKey, DateTime, Numeric,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base
from config.settings import MAX_QTY_PER_ITEM
from common.exceptions import LimitExceededError, NotFoundError, ValidationError
from common.helpers import now_utc


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    total_items = Column(Integer, default=0, server_default="0", nullable=False)
    total_price = Column(Numeric(12, 2), default=0, server_default="0", nullable=False)
    last_updated = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    items = relationship(
        "CartItem", back_populates="cart",
        cascade="all, delete-orphan", order_by="CartItem.id",
    )

    # ------------------------------------------
    # Totals
    # ------------------------------------------

    def recalculate(self):
        """Recompute derived totals from the lines. Called by every mutation."""
        self.total_items = sum(item.quantity for item in self.items)
        self.total_price = sum(
            (Decimal(str(item.price)) * item.quantity for item in self.items),
            Decimal("0"),
        )
        self.last_updated = now_utc()

    def _find_line(self, product_id: int):
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def quantity_of(self, product_id: int) -> int:
        line = self._find_line(product_id)
        return line.quantity if line else 0

    # ------------------------------------------
    # Mutations
    # ------------------------------------------

    def add_item(self, product_id: int, quantity: int, price) -> "CartItem":
        """
        Add `quantity` of a product, merging into an existing line.
        The caller has already checked the product and passes its current price.
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        line = self._find_line(product_id)
        if line:
            new_qty = line.quantity + quantity
            if new_qty > MAX_QTY_PER_ITEM:
                raise LimitExceededError(f"Cannot add more than {MAX_QTY_PER_ITEM} of the same item")
            line.quantity = new_qty
        else:
            if quantity > MAX_QTY_PER_ITEM:
                raise LimitExceededError(f"Cannot add more than {MAX_QTY_PER_ITEM} of the same item")
            line = CartItem(product_id=product_id, quantity=quantity, price=price)
            self.items.append(line)

        self.recalculate()
        return line

    def update_quantity(self, product_id: int, quantity: int):
        """Set a line's quantity. Zero or less removes the line."""
        line = self._find_line(product_id)
        if not line:
            raise NotFoundError("Item not found in cart")

        if quantity > MAX_QTY_PER_ITEM:
            raise LimitExceededError(f"Quantity cannot exceed {MAX_QTY_PER_ITEM} per item")

        if quantity <= 0:
            self.items.remove(line)
        else:
            line.quantity = quantity

        self.recalculate()

    def remove_item(self, product_id: int):
        line = self._find_line(product_id)
        if line:
            self.items.remove(line)
        self.recalculate()

    def clear(self):
        self.items.clear()
        self.recalculate()

    # ------------------------------------------
    # Validation against live products
    # ------------------------------------------

    def validate(self, live_products: dict) -> tuple:
        """
        Reconcile lines against live products ({product_id: Product}).
        A missing key means the product was deleted.

        Returns (is_valid, issues). The cart is only mutated when an issue is found.
        """
        issues = []

        for line in list(reversed(self.items)):
            product = live_products.get(line.product_id)

            if product is None:
                self.items.remove(line)
                issues.append({
                    "type": "product_removed",
                    "product_id": line.product_id,
                    "message": "A product in your cart is no longer available",
                })
                continue

            if not product.is_available:
                self.items.remove(line)
                issues.append({
                    "type": "product_unavailable",
                    "product_id": product.id,
                    "product": product.name,
                    "message": f"{product.name} is currently unavailable",
                })
                continue

            if product.stock < line.quantity:
                if product.stock == 0:
                    self.items.remove(line)
                    issues.append({
                        "type": "out_of_stock",
                        "product_id": product.id,
                        "product": product.name,
                        "message": f"{product.name} is out of stock",
                    })
                    continue

                issues.append({
                    "type": "quantity_reduced",
                    "product_id": product.id,
                    "product": product.name,
                    "old_quantity": line.quantity,
                    "new_quantity": product.stock,
                    "message": f"{product.name} quantity reduced to {product.stock} (limited stock)",
                })
                line.quantity = product.stock

            if Decimal(str(line.price)) != Decimal(str(product.price)):
                issues.append({
                    "type": "price_changed",
                    "product_id": product.id,
                    "product": product.name,
                    "old_price": float(line.price),
                    "new_price": float(product.price),
                    "message": f"{product.name} price has been updated",
                })
                line.price = product.price

        if issues:
            self.recalculate()

        return len(issues) == 0, issues

    def __repr__(self):
        return f"<Cart user={self.user_id} items={self.total_items}>"


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    # Identity reference only; a deleted product surfaces as "product_removed" on validation
    product_id = Column(Integer, nullable=False, index=True)
    quantity = Column(Integer, default=1, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # unit price snapshot at add time

    cart = relationship("Cart", back_populates="items")

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_product"),
        CheckConstraint("quantity >= 1", name="ck_cart_qty"),
    )

    @property
    def line_total(self):
        return Decimal(str(self.price)) * self.quantity
