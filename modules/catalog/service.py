"""
Catalog Module - Service Layer
================================
Product listings, detail lookup and admin stock edits.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from modules.catalog.models import Product, ProductCategory
from modules.review.models import Review
from common.exceptions import NotFoundError, ValidationError

logger = logging.getLogger("garden.catalog")

SORTABLE_FIELDS = {
    "created_at": Product.created_at,
    "price": Product.price,
    "name": Product.name,
    "rating": Product.rating_average,
    "stock": Product.stock,
}

LISTING_LIMIT = 8
SEARCH_LIMIT = 20


# ==========================================
# Serializers
# ==========================================

def serialize_product(product: Product, with_reviews: bool = False) -> dict:
    data = {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "old_price": product.old_price,
        "discount_percentage": product.discount_percentage,
        "category": product.category,
        "sub_category": product.sub_category,
        "image": {"public_id": product.image_public_id, "url": product.image_url},
        "stock": product.stock,
        "is_available": product.is_available,
        "ratings": {"average": product.rating_average, "count": product.rating_count},
        "featured": product.featured,
        "trending": product.trending,
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }
    if with_reviews:
        data["reviews"] = [
            {
                "id": r.id,
                "user": {"id": r.user_id, "full_name": r.user.full_name if r.user else None},
                "rating": r.rating,
                "comment": r.comment,
                "created_at": r.created_at,
            }
            for r in product.reviews
        ]
    return data


class CatalogService:

    # ------------------------------------------
    # Lookups
    # ------------------------------------------

    def get_product(self, db: Session, product_id: int) -> Product:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found")
        return product

    def get_product_detail(self, db: Session, product_id: int) -> Product:
        product = (
            db.query(Product)
            .options(joinedload(Product.reviews).joinedload(Review.user))
            .filter(Product.id == product_id)
            .first()
        )
        if not product:
            raise NotFoundError("Product not found")
        return product

    def get_products_map(self, db: Session, product_ids: List[int], for_update: bool = False) -> dict:
        """Load live products keyed by id. Missing ids are simply absent."""
        if not product_ids:
            return {}
        q = db.query(Product).filter(Product.id.in_(set(product_ids)))
        if for_update:
            q = q.with_for_update()
        return {p.id: p for p in q.all()}

    # ------------------------------------------
    # Listings
    # ------------------------------------------

    def _apply_filters(self, q, category=None, search=None, min_price=None, max_price=None):
        if category and category != "All":
            q = q.filter(Product.category == category)
        if search:
            pattern = f"%{search.strip()}%"
            q = q.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
        if min_price is not None:
            q = q.filter(Product.price >= min_price)
        if max_price is not None:
            q = q.filter(Product.price <= max_price)
        return q

    def list_products(
        self, db: Session, page: int = 1, per_page: int = 10,
        category: Optional[str] = None, search: Optional[str] = None,
        min_price: Optional[float] = None, max_price: Optional[float] = None,
        featured: Optional[bool] = None, trending: Optional[bool] = None,
        sort_by: str = "created_at", sort_order: str = "desc",
    ) -> Tuple[List[Product], int]:
        if category and category != "All" and category not in {c.value for c in ProductCategory}:
            raise ValidationError(f"Invalid category: {category}")

        q = db.query(Product).filter(Product.is_available == True)
        q = self._apply_filters(q, category, search, min_price, max_price)
        if featured is not None:
            q = q.filter(Product.featured == featured)
        if trending is not None:
            q = q.filter(Product.trending == trending)

        total = q.count()

        column = SORTABLE_FIELDS.get(sort_by, Product.created_at)
        order = column.asc() if sort_order == "asc" else column.desc()
        products = q.order_by(order, Product.id.desc()).offset((page - 1) * per_page).limit(per_page).all()
        return products, total

    def get_featured(self, db: Session, limit: int = LISTING_LIMIT) -> List[Product]:
        return db.query(Product).filter(
            Product.featured == True, Product.is_available == True,
        ).order_by(Product.created_at.desc(), Product.id.desc()).limit(limit).all()

    def get_trending(self, db: Session, limit: int = LISTING_LIMIT) -> List[Product]:
        return db.query(Product).filter(
            Product.trending == True, Product.is_available == True,
        ).order_by(Product.rating_average.desc(), Product.id.desc()).limit(limit).all()

    def get_new(self, db: Session, limit: int = LISTING_LIMIT) -> List[Product]:
        return db.query(Product).filter(
            Product.is_available == True,
        ).order_by(Product.created_at.desc(), Product.id.desc()).limit(limit).all()

    def search(
        self, db: Session, q: str, category: Optional[str] = None,
        min_price: Optional[float] = None, max_price: Optional[float] = None,
        limit: int = SEARCH_LIMIT,
    ) -> List[Product]:
        if not q or not q.strip():
            raise ValidationError("Search query is required")
        query = db.query(Product).filter(Product.is_available == True)
        query = self._apply_filters(query, category, q, min_price, max_price)
        return query.order_by(
            Product.rating_average.desc(), Product.created_at.desc(),
        ).limit(limit).all()

    # ------------------------------------------
    # Stock (admin)
    # ------------------------------------------

    def update_stock(self, db: Session, product_id: int, value: int, operation: str = "set") -> Product:
        product = self.get_product(db, product_id)
        old_stock = product.stock
        product.set_stock(value, operation)
        db.flush()
        logger.info(
            "Stock for product #%s changed %s -> %s (%s %s)",
            product.id, old_stock, product.stock, operation, value,
        )
        return product


catalog_service = CatalogService()
