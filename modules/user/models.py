"""
User Module - User Model
=========================
Shop users and their wishlists. A user is either a regular customer or an admin.
Password handling and token issuance live outside this service.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from config.database import Base


USER_ROLES = ("user", "admin")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # === Identity ===
    full_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(20), nullable=True)

    # === Role ===
    role = Column(String(10), default="user", server_default="user", nullable=False, index=True)
    is_active = Column(Boolean, default=True, server_default="true", nullable=False, index=True)

    # === Audit ===
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_users_created", "created_at"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self):
        return f"<User #{self.id} {self.email} role={self.role}>"


class WishlistItem(Base):
    """A product saved by a user for later. One row per (user, product)."""
    __tablename__ = "wishlist_items"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),
    )
