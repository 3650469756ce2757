"""
Cart Routes
=============
View cart, add/update/remove lines, clear, count, validate.
All routes require a logged-in user.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from config.database import get_db
from common.responses import success_response
from modules.auth.deps import require_login
from modules.cart.service import cart_service, serialize_cart

router = APIRouter(prefix="/cart", tags=["cart"])


# ==========================================
# Schemas
# ==========================================

class CartAddIn(BaseModel):
    product_id: int
    quantity: int = 1


class CartUpdateIn(BaseModel):
    product_id: int
    quantity: int


class CartRemoveIn(BaseModel):
    product_id: int


# ==========================================
# 🛒 View Cart
# ==========================================

@router.get("")
async def view_cart(db: Session = Depends(get_db), me=Depends(require_login)):
    cart, products = cart_service.get_cart(db, me.id)
    db.commit()
    return success_response("Cart fetched successfully", {"cart": serialize_cart(cart, products)})


@router.get("/count")
async def cart_count(db: Session = Depends(get_db), me=Depends(require_login)):
    return success_response("Cart count fetched successfully", {"count": cart_service.get_count(db, me.id)})


@router.get("/validate")
async def validate_cart(db: Session = Depends(get_db), me=Depends(require_login)):
    is_valid, issues, cart = cart_service.validate_cart(db, me.id)
    if cart is None or (not cart.items and not issues):
        return success_response("Cart is empty", {"is_valid": True, "issues": []})

    db.commit()
    return success_response("Cart validation completed", {
        "is_valid": is_valid,
        "issues": issues,
        "cart": serialize_cart(cart, cart_service.products_for(db, cart)),
    })


# ==========================================
# ➕➖ Mutations
# ==========================================

@router.post("/add")
async def add_to_cart(body: CartAddIn, db: Session = Depends(get_db), me=Depends(require_login)):
    cart = cart_service.add_to_cart(db, me.id, body.product_id, body.quantity)
    db.commit()
    return success_response("Item added to cart successfully", {
        "cart": serialize_cart(cart, cart_service.products_for(db, cart)),
    })


@router.put("/update")
async def update_cart_item(body: CartUpdateIn, db: Session = Depends(get_db), me=Depends(require_login)):
    cart = cart_service.update_item(db, me.id, body.product_id, body.quantity)
    db.commit()
    message = "Item removed from cart" if body.quantity == 0 else "Cart item updated successfully"
    return success_response(message, {
        "cart": serialize_cart(cart, cart_service.products_for(db, cart)),
    })


@router.delete("/remove")
async def remove_cart_item(body: CartRemoveIn, db: Session = Depends(get_db), me=Depends(require_login)):
    cart = cart_service.remove_item(db, me.id, body.product_id)
    db.commit()
    return success_response("Item removed from cart successfully", {
        "cart": serialize_cart(cart, cart_service.products_for(db, cart)),
    })


@router.delete("/clear")
async def clear_cart(db: Session = Depends(get_db), me=Depends(require_login)):
    cart = cart_service.clear_cart(db, me.id)
    db.commit()
    return success_response("Cart cleared successfully", {"cart": serialize_cart(cart)})
