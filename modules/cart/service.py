"""
Cart Module - Service Layer
==============================
Cart management: get/create, add/update/remove items, validation
against live products. Business rules are on the Cart model; this
layer loads products, checks them, and flushes.
"""

import logging
from typing import List, Tuple

from sqlalchemy.orm import Session

from config.settings import MAX_QTY_PER_ITEM
from modules.cart.models import Cart
from modules.catalog.models import Product
from modules.catalog.service import catalog_service
from common.exceptions import (
    InsufficientStockError, NotFoundError, ProductUnavailableError, ValidationError,
)

logger = logging.getLogger("garden.cart")


def serialize_cart(cart: Cart, products: dict = None) -> dict:
    """Cart payload. `products` ({id: Product}) enriches lines with live product info."""
    products = products or {}
    items = []
    for item in cart.items:
        product = products.get(item.product_id)
        items.append({
            "product_id": item.product_id,
            "product": {
                "id": product.id,
                "name": product.name,
                "price": product.price,
                "old_price": product.old_price,
                "image": {"public_id": product.image_public_id, "url": product.image_url},
                "stock": product.stock,
                "is_available": product.is_available,
                "category": product.category,
            } if product else None,
            "quantity": item.quantity,
            "price": item.price,
            "line_total": item.line_total,
        })
    return {
        "items": items,
        "total_items": cart.total_items or 0,
        "total_price": cart.total_price or 0,
        "last_updated": cart.last_updated,
    }


class CartService:

    def get_or_create_cart(self, db: Session, user_id: int) -> Cart:
        """Get existing cart or create new one for user."""
        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart:
            cart = Cart(user_id=user_id, total_items=0, total_price=0)
            db.add(cart)
            db.flush()
        return cart

    def _get_existing_cart(self, db: Session, user_id: int) -> Cart:
        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart:
            raise NotFoundError("Cart not found")
        return cart

    def _check_product(self, db: Session, product_id: int, quantity: int) -> Product:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found")
        if not product.is_available:
            raise ProductUnavailableError(product.name)
        if product.stock < quantity:
            raise InsufficientStockError(message=f"Only {product.stock} items available in stock")
        return product

    def products_for(self, db: Session, cart: Cart) -> dict:
        return catalog_service.get_products_map(db, [item.product_id for item in cart.items])

    # ------------------------------------------
    # Read
    # ------------------------------------------

    def get_cart(self, db: Session, user_id: int) -> Tuple[Cart, dict]:
        """
        Load (or lazily create) the user's cart and silently drop lines whose
        product is gone or unavailable. Returns (cart, products_map).
        """
        cart = self.get_or_create_cart(db, user_id)
        products = self.products_for(db, cart)

        stale = [
            item.product_id for item in cart.items
            if item.product_id not in products or not products[item.product_id].is_available
        ]
        for product_id in stale:
            cart.remove_item(product_id)
        if stale:
            db.flush()
            logger.info("Dropped %d stale line(s) from cart of user #%s", len(stale), user_id)

        return cart, products

    def get_count(self, db: Session, user_id: int) -> int:
        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        return cart.total_items if cart else 0

    # ------------------------------------------
    # Mutations
    # ------------------------------------------

    def add_to_cart(self, db: Session, user_id: int, product_id: int, quantity: int = 1) -> Cart:
        if quantity is None or quantity < 1 or quantity > MAX_QTY_PER_ITEM:
            raise ValidationError(f"Quantity must be between 1 and {MAX_QTY_PER_ITEM}")

        # Stock must cover the merged line, not just this request
        existing = db.query(Cart).filter(Cart.user_id == user_id).first()
        in_cart = existing.quantity_of(product_id) if existing else 0
        product = self._check_product(db, product_id, in_cart + quantity)
        cart = existing or self.get_or_create_cart(db, user_id)
        cart.add_item(product.id, quantity, product.price)
        db.flush()
        return cart

    def update_item(self, db: Session, user_id: int, product_id: int, quantity: int) -> Cart:
        if quantity is None or quantity < 0 or quantity > MAX_QTY_PER_ITEM:
            raise ValidationError(f"Quantity must be between 0 and {MAX_QTY_PER_ITEM}")

        cart = self._get_existing_cart(db, user_id)
        if quantity > 0:
            self._check_product(db, product_id, quantity)

        cart.update_quantity(product_id, quantity)
        db.flush()
        return cart

    def remove_item(self, db: Session, user_id: int, product_id: int) -> Cart:
        cart = self._get_existing_cart(db, user_id)
        cart.remove_item(product_id)
        db.flush()
        return cart

    def clear_cart(self, db: Session, user_id: int) -> Cart:
        cart = self._get_existing_cart(db, user_id)
        cart.clear()
        db.flush()
        return cart

    # ------------------------------------------
    # Validation
    # ------------------------------------------

    def validate_cart(self, db: Session, user_id: int) -> Tuple[bool, List[dict], Cart]:
        """Reconcile the cart with live products and persist any correction."""
        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart or not cart.items:
            return True, [], cart

        products = self.products_for(db, cart)
        is_valid, issues = cart.validate(products)
        if issues:
            db.flush()
            logger.info(
                "Cart of user #%s corrected: %s",
                user_id, ", ".join(issue["type"] for issue in issues),
            )
        return is_valid, issues, cart


cart_service = CartService()
