"""
Catalog Module - Product Routes
=================================
Public product listings and detail, review submission,
and admin stock edits.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import DEFAULT_PAGE_SIZE
from common.helpers import clamp_page, build_pagination
from common.responses import success_response
from modules.auth.deps import require_login, require_admin
from modules.catalog.service import catalog_service, serialize_product
from modules.review.service import review_service

router = APIRouter(prefix="/product", tags=["product"])


# ==========================================
# Schemas
# ==========================================

class ReviewIn(BaseModel):
    rating: int
    comment: Optional[str] = Field(default=None, max_length=500)


class StockUpdateIn(BaseModel):
    stock: int
    operation: str = "set"


# ==========================================
# 📋 Listings
# ==========================================

@router.get("")
async def list_products(
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    category: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    featured: Optional[bool] = None,
    trending: Optional[bool] = None,
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
):
    page, limit = clamp_page(page, limit)
    products, total = catalog_service.list_products(
        db, page=page, per_page=limit, category=category, search=search,
        min_price=min_price, max_price=max_price, featured=featured, trending=trending,
        sort_by=sort_by, sort_order=sort_order,
    )
    return success_response(
        "Products fetched successfully",
        [serialize_product(p) for p in products],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/featured")
async def featured_products(limit: int = 8, db: Session = Depends(get_db)):
    products = catalog_service.get_featured(db, limit=max(1, limit))
    return success_response("Featured products fetched successfully", {
        "products": [serialize_product(p) for p in products],
    })


@router.get("/trending")
async def trending_products(limit: int = 8, db: Session = Depends(get_db)):
    products = catalog_service.get_trending(db, limit=max(1, limit))
    return success_response("Trending products fetched successfully", {
        "products": [serialize_product(p) for p in products],
    })


@router.get("/new")
async def new_products(limit: int = 8, db: Session = Depends(get_db)):
    products = catalog_service.get_new(db, limit=max(1, limit))
    return success_response("New products fetched successfully", {
        "products": [serialize_product(p) for p in products],
    })


@router.get("/search")
async def search_products(
    q: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    limit: int = 20,
    db: Session = Depends(get_db),
):
    products = catalog_service.search(
        db, q, category=category, min_price=min_price, max_price=max_price, limit=max(1, limit),
    )
    return success_response("Search results fetched successfully", {
        "products": [serialize_product(p) for p in products],
        "query": q,
        "result_count": len(products),
    })


# ==========================================
# 🔍 Detail
# ==========================================

@router.get("/{product_id}")
async def product_detail(product_id: int, db: Session = Depends(get_db)):
    product = catalog_service.get_product_detail(db, product_id)
    return success_response("Product fetched successfully", {
        "product": serialize_product(product, with_reviews=True),
    })


# ==========================================
# ⭐ Reviews
# ==========================================

@router.post("/{product_id}/review", status_code=201)
async def add_review(
    product_id: int,
    body: ReviewIn,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    review_service.add_review(db, product_id, me.id, body.rating, body.comment)
    db.commit()
    return success_response("Review added successfully", status_code=201)


# ==========================================
# 📦 Stock (admin)
# ==========================================

@router.patch("/{product_id}/stock")
async def update_stock(
    product_id: int,
    body: StockUpdateIn,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    product = catalog_service.update_stock(db, product_id, body.stock, body.operation)
    db.commit()
    return success_response("Product stock updated successfully", {
        "product": {
            "id": product.id,
            "name": product.name,
            "stock": product.stock,
            "is_available": product.is_available,
        },
    })
