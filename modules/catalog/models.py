"""
Catalog Module - Models
========================
Product with stock, availability and denormalized rating summary.
"""

import enum

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, DateTime, Text, Index, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base
from common.exceptions import NegativeStockError, ValidationError


class ProductCategory(str, enum.Enum):
    PLANT = "Plant"
    VASE = "Vase"
    SEED = "Seed"
    FLOWER = "Flower"
    VEGETABLES = "Vegetables"
    FERTILIZER = "Fertilizer"
    TOOLS = "Tools"


class StockOperation(str, enum.Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    SET = "set"


# ==========================================
# 📦 Product
# ==========================================

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    old_price = Column(Numeric(10, 2), nullable=True)
    category = Column(String(20), nullable=False, index=True)
    sub_category = Column(String(50), nullable=True)

    # Media is an opaque (public_id, url) pair owned by the image store
    image_url = Column(String, nullable=True)
    image_public_id = Column(String, nullable=True)

    stock = Column(Integer, default=0, server_default="0", nullable=False)
    is_available = Column(Boolean, default=True, server_default="true", nullable=False)

    rating_average = Column(Numeric(3, 2), default=0, server_default="0", nullable=False)
    rating_count = Column(Integer, default=0, server_default="0", nullable=False)

    featured = Column(Boolean, default=False, server_default="false", nullable=False)
    trending = Column(Boolean, default=False, server_default="false", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    reviews = relationship(
        "Review", back_populates="product",
        cascade="all, delete-orphan", order_by="Review.created_at.desc()",
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
        Index("ix_product_available_category", "is_available", "category"),
    )

    @property
    def discount_percentage(self) -> int:
        if not self.old_price or self.price is None:
            return 0
        old, price = float(self.old_price), float(self.price)
        if old > price:
            return round((old - price) / old * 100)
        return 0

    # ------------------------------------------
    # Stock
    # ------------------------------------------

    def adjust_stock(self, delta: int):
        """
        Apply a relative stock change (negative on checkout, positive on cancel).
        Reaching zero marks the product unavailable; restoring from zero
        makes it available again.
        """
        old_stock = self.stock or 0
        new_stock = old_stock + delta
        if new_stock < 0:
            raise NegativeStockError()
        self.stock = new_stock
        if new_stock == 0:
            self.is_available = False
        elif old_stock == 0:
            self.is_available = True

    def set_stock(self, value: int, operation: str = StockOperation.SET.value) -> int:
        """Admin stock edit. Returns the new stock level."""
        try:
            op = StockOperation(operation)
        except ValueError:
            raise ValidationError(f"Invalid stock operation: {operation}")

        current = self.stock or 0
        if op == StockOperation.ADD:
            new_stock = current + value
        elif op == StockOperation.SUBTRACT:
            new_stock = current - value
        else:
            new_stock = value

        if new_stock < 0:
            raise NegativeStockError()

        self.stock = new_stock
        self.is_available = new_stock > 0
        return new_stock

    # ------------------------------------------
    # Ratings
    # ------------------------------------------

    def recompute_rating(self, ratings: list):
        """Plain mean over all stored ratings."""
        self.rating_count = len(ratings)
        self.rating_average = round(sum(ratings) / len(ratings), 2) if ratings else 0

    def __repr__(self):
        return f"<Product {self.name} stock={self.stock}>"
