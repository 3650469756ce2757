"""
Order Module - Admin Routes
=============================
Order list with filters, status changes, deletion of cancelled
orders and order statistics.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import DEFAULT_PAGE_SIZE
from common.helpers import clamp_page, build_pagination
from common.responses import success_response
from modules.auth.deps import require_admin
from modules.order.service import order_service, serialize_order

router = APIRouter(prefix="/order", tags=["order-admin"])


# ==========================================
# Schemas
# ==========================================

class StatusUpdateIn(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = ""
    tracking_id: Optional[str] = None
    carrier: Optional[str] = None


# ==========================================
# 📋 List & Stats
# ==========================================

@router.get("")
async def list_orders(
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    status: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    page, limit = clamp_page(page, limit)
    orders, total = order_service.get_all_orders(
        db, page=page, per_page=limit, status=status, search=search,
        start_date=start_date, end_date=end_date,
    )
    return success_response(
        "Orders fetched successfully",
        [serialize_order(o, include_user=True) for o in orders],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/stats")
async def order_stats(period: int = 30, db: Session = Depends(get_db), admin=Depends(require_admin)):
    stats = order_service.get_stats(db, period_days=max(1, period))
    return success_response("Order statistics fetched successfully", {
        "stats": stats,
        "period": f"{period} days",
    })


# ==========================================
# 🔄 Status & Delete
# ==========================================

@router.patch("/{order_id:int}/status")
async def update_order_status(
    order_id: int,
    body: StatusUpdateIn,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    order = order_service.update_status(
        db, order_id, body.status, notes=body.notes,
        tracking_id=body.tracking_id, carrier=body.carrier, changed_by=admin.id,
    )
    db.commit()
    db.refresh(order)
    return success_response("Order status updated successfully", {"order": serialize_order(order)})


@router.delete("/{order_id:int}")
async def delete_order(order_id: int, db: Session = Depends(get_db), admin=Depends(require_admin)):
    order_service.delete_order(db, order_id)
    db.commit()
    return success_response("Order deleted successfully")
