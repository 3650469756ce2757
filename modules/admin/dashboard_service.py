"""
Admin Dashboard Service
=========================
Aggregated statistics for the admin dashboard: overview counts,
period-over-period growth, order counters, recent activity and
sales/product analytics.
"""

from datetime import timedelta
from typing import Dict, Any, List

from sqlalchemy.orm import Session
from sqlalchemy import func as sa_func

from modules.order.models import Order, OrderItem, OrderStatus
from modules.user.models import User, USER_ROLES
from modules.catalog.models import Product
from common.exceptions import NotFoundError, ValidationError
from common.helpers import now_utc

LOW_STOCK_THRESHOLD = 10


def _growth(current, previous) -> float:
    if not previous:
        return 0
    return round((float(current) - float(previous)) / float(previous) * 100, 2)


class DashboardService:

    def _revenue(self, db: Session, start, end=None):
        q = db.query(
            sa_func.coalesce(sa_func.sum(Order.total_amount), 0),
            sa_func.coalesce(sa_func.avg(Order.total_amount), 0),
        ).filter(Order.created_at >= start, Order.status != OrderStatus.CANCELLED.value)
        if end is not None:
            q = q.filter(Order.created_at < end)
        total, average = q.one()
        return float(total or 0), float(average or 0)

    def _top_products(self, db: Session, start, limit: int) -> List[Dict[str, Any]]:
        rows = (
            db.query(
                OrderItem.product_id,
                sa_func.max(OrderItem.name),
                sa_func.sum(OrderItem.quantity).label("total_sold"),
                sa_func.sum(OrderItem.line_total),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .filter(Order.created_at >= start, Order.status != OrderStatus.CANCELLED.value)
            .group_by(OrderItem.product_id)
            .order_by(sa_func.sum(OrderItem.quantity).desc())
            .limit(limit)
            .all()
        )
        return [
            {"product_id": pid, "product_name": name, "total_sold": int(sold or 0), "revenue": float(rev or 0)}
            for pid, name, sold, rev in rows
        ]

    # ------------------------------------------
    # Dashboard
    # ------------------------------------------

    def get_dashboard_stats(self, db: Session, period_days: int = 30) -> Dict[str, Any]:
        now = now_utc()
        start = now - timedelta(days=period_days)
        previous_start = start - timedelta(days=period_days)

        total_users = db.query(User).filter(User.role == "user").count()
        total_products = db.query(Product).count()
        total_orders = db.query(Order).count()

        new_users = db.query(User).filter(User.role == "user", User.created_at >= start).count()
        new_orders = db.query(Order).filter(Order.created_at >= start).count()
        revenue, average_value = self._revenue(db, start)

        previous_users = db.query(User).filter(
            User.role == "user", User.created_at >= previous_start, User.created_at < start,
        ).count()
        previous_orders = db.query(Order).filter(
            Order.created_at >= previous_start, Order.created_at < start,
        ).count()
        previous_revenue, _ = self._revenue(db, previous_start, start)

        status_breakdown = {s.value: 0 for s in OrderStatus}
        for status, count in db.query(Order.status, sa_func.count(Order.id)).group_by(Order.status).all():
            status_breakdown[status] = count

        return {
            "overview": {
                "total_users": total_users,
                "total_products": total_products,
                "total_orders": total_orders,
                "total_revenue": revenue,
            },
            "growth": {
                "new_users": new_users,
                "new_orders": new_orders,
                "user_growth": _growth(new_users, previous_users),
                "order_growth": _growth(new_orders, previous_orders),
                "revenue_growth": _growth(revenue, previous_revenue),
            },
            "orders": {
                "status_breakdown": status_breakdown,
                "average_order_value": round(average_value, 2),
            },
            "top_products": self._top_products(db, start, 5),
            "period": f"{period_days} days",
        }

    def get_new_orders_count(self, db: Session) -> int:
        """Pending orders placed in the last 24 hours."""
        since = now_utc() - timedelta(hours=24)
        return db.query(Order).filter(
            Order.created_at >= since,
            Order.status == OrderStatus.PENDING.value,
        ).count()

    def get_pending_orders_count(self, db: Session) -> int:
        return db.query(Order).filter(
            Order.status.in_([OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value]),
        ).count()

    def get_recent_activities(self, db: Session, limit: int = 10) -> List[Dict[str, Any]]:
        """Latest orders and sign-ups, merged newest first."""
        half = max(1, limit // 2)

        orders = db.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(half).all()
        users = db.query(User).filter(User.role == "user").order_by(
            User.created_at.desc(), User.id.desc(),
        ).limit(half).all()

        activities = [
            {
                "type": "order",
                "id": o.id,
                "title": f"New order {o.order_code}",
                "description": f"Order placed by {o.user.full_name if o.user else 'unknown user'}",
                "amount": float(o.total_amount),
                "status": o.status,
                "timestamp": o.created_at,
                "user": {"full_name": o.user.full_name, "email": o.user.email} if o.user else None,
            }
            for o in orders
        ] + [
            {
                "type": "user",
                "id": u.id,
                "title": "New user registration",
                "description": f"{u.full_name} joined",
                "timestamp": u.created_at,
                "user": {"full_name": u.full_name, "email": u.email},
            }
            for u in users
        ]
        activities.sort(key=lambda a: a["timestamp"].replace(tzinfo=None), reverse=True)
        return activities[:limit]

    # ------------------------------------------
    # Analytics
    # ------------------------------------------

    def get_sales_analytics(self, db: Session, period_days: int = 30) -> List[Dict[str, Any]]:
        """Daily totals for non-cancelled orders."""
        start = now_utc() - timedelta(days=period_days)
        day = sa_func.date(Order.created_at)
        rows = (
            db.query(
                day.label("day"),
                sa_func.sum(Order.total_amount),
                sa_func.count(Order.id),
                sa_func.avg(Order.total_amount),
            )
            .filter(Order.created_at >= start, Order.status != OrderStatus.CANCELLED.value)
            .group_by(day)
            .order_by(day)
            .all()
        )
        return [
            {
                "date": str(d),
                "total_sales": float(total or 0),
                "total_orders": count,
                "average_order_value": round(float(avg or 0), 2),
            }
            for d, total, count, avg in rows
        ]

    def get_product_analytics(self, db: Session, period_days: int = 30) -> Dict[str, Any]:
        start = now_utc() - timedelta(days=period_days)

        category_rows = (
            db.query(
                Product.category,
                sa_func.sum(OrderItem.line_total),
                sa_func.sum(OrderItem.quantity),
                sa_func.count(sa_func.distinct(OrderItem.product_id)),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .join(Product, Product.id == OrderItem.product_id)
            .filter(Order.created_at >= start, Order.status != OrderStatus.CANCELLED.value)
            .group_by(Product.category)
            .order_by(sa_func.sum(OrderItem.line_total).desc())
            .all()
        )

        low_stock = (
            db.query(Product)
            .filter(Product.stock <= LOW_STOCK_THRESHOLD, Product.is_available == True)
            .order_by(Product.stock.asc())
            .limit(10)
            .all()
        )

        return {
            "category_analytics": [
                {
                    "category": category,
                    "total_sales": float(sales or 0),
                    "total_quantity": int(qty or 0),
                    "unique_products": unique,
                }
                for category, sales, qty, unique in category_rows
            ],
            "top_selling_products": self._top_products(db, start, 10),
            "low_stock_products": [
                {"id": p.id, "name": p.name, "stock": p.stock, "category": p.category, "price": float(p.price)}
                for p in low_stock
            ],
            "period": f"{period_days} days",
        }

    # ------------------------------------------
    # User management
    # ------------------------------------------

    def update_user_role(self, db: Session, user_id: int, role: str) -> User:
        if role not in USER_ROLES:
            raise ValidationError("Invalid role. Must be 'user' or 'admin'")
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        user.role = role
        db.flush()
        return user

    def toggle_user_status(self, db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        user.is_active = not user.is_active
        db.flush()
        return user


dashboard_service = DashboardService()
