"""
User Module - Wishlist Service
================================
Toggle products on a user's wishlist and list the saved products.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from common.exceptions import NotFoundError
from modules.catalog.models import Product
from modules.user.models import WishlistItem

logger = logging.getLogger("garden.user")


class WishlistService:

    def toggle(self, db: Session, user_id: int, product_id: int) -> bool:
        """Add the product if absent, remove it if present. Returns True when added."""
        product = db.query(Product.id).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found")

        item = db.query(WishlistItem).filter(
            WishlistItem.user_id == user_id,
            WishlistItem.product_id == product_id,
        ).first()

        if item:
            db.delete(item)
            db.flush()
            logger.info("User #%s removed product #%s from wishlist", user_id, product_id)
            return False

        db.add(WishlistItem(user_id=user_id, product_id=product_id))
        db.flush()
        logger.info("User #%s added product #%s to wishlist", user_id, product_id)
        return True

    def get_wishlist(self, db: Session, user_id: int) -> List[Product]:
        """Saved products that are still available, most recently saved first."""
        return (
            db.query(Product)
            .join(WishlistItem, WishlistItem.product_id == Product.id)
            .filter(WishlistItem.user_id == user_id, Product.is_available == True)
            .order_by(WishlistItem.created_at.desc(), WishlistItem.id.desc())
            .all()
        )


wishlist_service = WishlistService()
