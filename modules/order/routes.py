"""
Order Module - User Routes
============================
Checkout, order history, order detail and user cancellation.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import DEFAULT_PAGE_SIZE
from common.helpers import clamp_page, build_pagination
from common.responses import success_response
from modules.auth.deps import require_login
from modules.order.service import order_service, serialize_order

router = APIRouter(prefix="/order", tags=["order"])


# ==========================================
# Schemas
# ==========================================

class ShippingAddressIn(BaseModel):
    full_name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None


class OrderCreateIn(BaseModel):
    shipping_address: Optional[ShippingAddressIn] = None
    payment_method: Optional[str] = "cod"
    notes: Optional[str] = Field(default=None, max_length=1000)


class OrderCancelIn(BaseModel):
    reason: Optional[str] = Field(default="", max_length=500)


# ==========================================
# ✅ Checkout
# ==========================================

@router.post("", status_code=201)
async def create_order(body: OrderCreateIn, db: Session = Depends(get_db), me=Depends(require_login)):
    address = body.shipping_address.model_dump() if body.shipping_address else None
    order = order_service.create_order(
        db, me.id, address, payment_method=body.payment_method, notes=body.notes,
    )
    db.commit()
    db.refresh(order)
    return success_response("Order created successfully", {"order": serialize_order(order)}, status_code=201)


# ==========================================
# 📋 My Orders
# ==========================================

@router.get("/my-orders")
async def my_orders(
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    page, limit = clamp_page(page, limit)
    orders, total = order_service.get_user_orders(db, me.id, page=page, per_page=limit, status=status)
    return success_response(
        "Orders fetched successfully",
        [serialize_order(o) for o in orders],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/{order_id:int}")
async def order_detail(order_id: int, db: Session = Depends(get_db), me=Depends(require_login)):
    order = order_service.get_order_for_user(db, order_id, me)
    return success_response("Order fetched successfully", {"order": serialize_order(order, include_user=True)})


# ==========================================
# ❌ Cancel
# ==========================================

@router.put("/{order_id:int}/cancel")
async def cancel_order(
    order_id: int,
    body: Optional[OrderCancelIn] = None,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    reason = body.reason if body else ""
    order = order_service.cancel_order(db, order_id, me, reason)
    db.commit()
    db.refresh(order)
    return success_response("Order cancelled successfully", {"order": serialize_order(order)})
