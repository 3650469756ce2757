"""
Admin Module - Dashboard Routes
==================================
Dashboard statistics, order counters, recent activity,
analytics and user role/status management. Admin only.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from config.database import get_db
from common.responses import success_response
from modules.auth.deps import require_admin
from modules.admin.dashboard_service import dashboard_service

router = APIRouter(prefix="/admin", tags=["admin"])


# ==========================================
# Schemas
# ==========================================

class RoleUpdateIn(BaseModel):
    role: str


# ==========================================
# 📊 Dashboard
# ==========================================

@router.get("/dashboard-stats")
async def dashboard_stats(period: int = 30, db: Session = Depends(get_db), admin=Depends(require_admin)):
    stats = dashboard_service.get_dashboard_stats(db, period_days=max(1, period))
    return success_response("Dashboard statistics fetched successfully", {"stats": stats})


@router.get("/orders/new")
async def new_orders_count(db: Session = Depends(get_db), admin=Depends(require_admin)):
    return success_response("New orders count fetched successfully", {
        "count": dashboard_service.get_new_orders_count(db),
    })


@router.get("/orders/pending-count")
async def pending_orders_count(db: Session = Depends(get_db), admin=Depends(require_admin)):
    return success_response("Pending orders count fetched successfully", {
        "count": dashboard_service.get_pending_orders_count(db),
    })


@router.get("/recent-activities")
async def recent_activities(limit: int = 10, db: Session = Depends(get_db), admin=Depends(require_admin)):
    activities = dashboard_service.get_recent_activities(db, limit=max(1, limit))
    return success_response("Recent activities fetched successfully", {"activities": activities})


# ==========================================
# 📈 Analytics
# ==========================================

@router.get("/analytics/sales")
async def sales_analytics(period: int = 30, db: Session = Depends(get_db), admin=Depends(require_admin)):
    period = max(1, period)
    return success_response("Sales analytics fetched successfully", {
        "sales_data": dashboard_service.get_sales_analytics(db, period_days=period),
        "period": f"{period} days",
        "group_by": "day",
    })


@router.get("/analytics/products")
async def product_analytics(period: int = 30, db: Session = Depends(get_db), admin=Depends(require_admin)):
    data = dashboard_service.get_product_analytics(db, period_days=max(1, period))
    return success_response("Product analytics fetched successfully", data)


# ==========================================
# 👤 Users
# ==========================================

@router.patch("/users/{user_id:int}/role")
async def update_user_role(
    user_id: int,
    body: RoleUpdateIn,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    user = dashboard_service.update_user_role(db, user_id, body.role)
    db.commit()
    return success_response("User role updated successfully", {
        "user": {"id": user.id, "full_name": user.full_name, "email": user.email, "role": user.role},
    })


@router.patch("/users/{user_id:int}/status")
async def toggle_user_status(user_id: int, db: Session = Depends(get_db), admin=Depends(require_admin)):
    user = dashboard_service.toggle_user_status(db, user_id)
    db.commit()
    state = "activated" if user.is_active else "deactivated"
    return success_response(f"User {state} successfully", {
        "user": {"id": user.id, "full_name": user.full_name, "email": user.email, "is_active": user.is_active},
    })
