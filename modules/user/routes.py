"""
User Routes
=============
Wishlist toggle and listing for the logged-in user.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.database import get_db
from common.responses import success_response
from modules.auth.deps import require_login
from modules.catalog.service import serialize_product
from modules.user.service import wishlist_service

router = APIRouter(prefix="/user", tags=["user"])


# ==========================================
# ❤️ Wishlist
# ==========================================

@router.api_route("/wishlist/{product_id:int}", methods=["POST", "PATCH"])
async def toggle_wishlist(product_id: int, db: Session = Depends(get_db), me=Depends(require_login)):
    added = wishlist_service.toggle(db, me.id, product_id)
    db.commit()
    message = "Product added to wishlist" if added else "Product removed from wishlist"
    return success_response(message, {"product_id": product_id, "in_wishlist": added})


@router.get("/wishlist")
async def get_wishlist(db: Session = Depends(get_db), me=Depends(require_login)):
    products = wishlist_service.get_wishlist(db, me.id)
    return success_response("Wishlist fetched successfully", {
        "wishlist": [serialize_product(p) for p in products],
    })
