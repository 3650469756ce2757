"""
Order Module - Service Layer
===============================
Checkout (cart -> order), status transitions with stock restoration,
order queries and statistics.

Checkout runs inside the caller's transaction: products are locked
FOR UPDATE, and the order, stock decrements and cart clear are flushed
together. The route commits once.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import desc, func, or_
from sqlalchemy.orm import Session, selectinload

from config import settings
from common.exceptions import (
    AccessDeniedError, EmptyCartError, InsufficientStockError, InvalidTransitionError,
    NotFoundError, ProductUnavailableError, ValidationError,
)
from common.helpers import now_utc, generate_unique_order_code
from modules.cart.models import Cart
from modules.catalog.service import catalog_service
from modules.order.models import (
    Order, OrderItem, OrderStatus, OrderStatusLog, PaymentMethod,
    USER_CANCELLABLE, MAX_NOTES_LENGTH, MAX_CANCELLATION_REASON_LENGTH,
)

logger = logging.getLogger("garden.order")

REQUIRED_ADDRESS_FIELDS = ("full_name", "street", "city", "state", "zip_code", "phone")


@dataclass(frozen=True)
class CheckoutConfig:
    shipping_cost: Decimal = Decimal("150")
    tax: Decimal = Decimal("0")
    default_country: str = "India"
    expected_delivery_days: int = 7

    @classmethod
    def from_settings(cls) -> "CheckoutConfig":
        return cls(
            shipping_cost=Decimal(str(settings.SHIPPING_COST)),
            tax=Decimal(str(settings.TAX_AMOUNT)),
            default_country=settings.DEFAULT_COUNTRY,
            expected_delivery_days=settings.EXPECTED_DELIVERY_DAYS,
        )


# ==========================================
# Serializers
# ==========================================

def serialize_order(order: Order, include_user: bool = False) -> dict:
    data = {
        "id": order.id,
        "order_code": order.order_code,
        "user_id": order.user_id,
        "items": [
            {
                "product_id": item.product_id,
                "name": item.name,
                "image": item.image,
                "quantity": item.quantity,
                "price": item.price,
                "line_total": item.line_total,
            }
            for item in order.items
        ],
        "shipping_address": {
            "full_name": order.shipping_full_name,
            "street": order.shipping_street,
            "city": order.shipping_city,
            "state": order.shipping_state,
            "zip_code": order.shipping_zip_code,
            "country": order.shipping_country,
            "phone": order.shipping_phone,
        },
        "payment_info": {
            "method": order.payment_method,
            "status": order.payment_status,
            "amount": order.payment_amount,
            "transaction_id": order.payment_transaction_id,
            "paid_at": order.paid_at,
        },
        "status": order.status,
        "subtotal": order.subtotal,
        "shipping_cost": order.shipping_cost,
        "tax": order.tax,
        "total_amount": order.total_amount,
        "total_items": order.total_items,
        "notes": order.notes,
        "expected_delivery": order.expected_delivery,
        "shipped_at": order.shipped_at,
        "delivered_at": order.delivered_at,
        "cancelled_at": order.cancelled_at,
        "cancellation_reason": order.cancellation_reason,
        "tracking_info": {
            "tracking_id": order.tracking_id,
            "carrier": order.carrier,
            "status": order.tracking_status,
            "updated_at": order.tracking_updated_at,
        },
        "refund_amount": order.get_refund_amount(),
        "order_age_days": order.order_age_days,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }
    if include_user and order.user:
        data["user"] = {
            "id": order.user.id,
            "full_name": order.user.full_name,
            "email": order.user.email,
            "phone": order.user.phone,
        }
    return data


class OrderService:

    def __init__(self, config: CheckoutConfig = None):
        self.config = config or CheckoutConfig.from_settings()

    # ==========================================
    # Checkout
    # ==========================================

    def _validate_address(self, shipping_address: Optional[dict]) -> dict:
        address = shipping_address or {}
        missing = [
            field for field in REQUIRED_ADDRESS_FIELDS
            if not str(address.get(field) or "").strip()
        ]
        if missing:
            raise ValidationError(f"Missing shipping address fields: {', '.join(missing)}")
        return address

    def _validate_payment_method(self, payment_method: Optional[str]) -> str:
        method = payment_method or PaymentMethod.COD.value
        try:
            return PaymentMethod(method).value
        except ValueError:
            raise ValidationError(f"Invalid payment method: {method}")

    def create_order(
        self, db: Session, user_id: int, shipping_address: dict,
        payment_method: str = None, notes: str = None,
    ) -> Order:
        """
        Create an order from the user's cart:
        1. Validate address and payment method
        2. Lock and re-check every product (all-or-nothing)
        3. Build item snapshots at the live price
        4. Persist order, decrement stock, clear cart

        Raises ValidationError, EmptyCartError, ProductUnavailableError,
        InsufficientStockError. Nothing is changed when one is raised.
        """
        address = self._validate_address(shipping_address)
        method = self._validate_payment_method(payment_method)
        if notes and len(notes) > MAX_NOTES_LENGTH:
            raise ValidationError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")

        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart or not cart.items:
            raise EmptyCartError()

        products = catalog_service.get_products_map(
            db, [item.product_id for item in cart.items], for_update=True,
        )

        # Validate every line before touching anything
        for item in cart.items:
            product = products.get(item.product_id)
            if not product or not product.is_available:
                raise ProductUnavailableError(product.name if product else "")
            if product.stock < item.quantity:
                raise InsufficientStockError(product.name, product.stock)

        order_items = []
        subtotal = Decimal("0")
        total_items = 0
        for item in cart.items:
            product = products[item.product_id]
            unit_price = Decimal(str(product.price))
            line_total = unit_price * item.quantity
            order_items.append(OrderItem(
                product_id=product.id,
                name=product.name,
                image=product.image_url,
                quantity=item.quantity,
                price=unit_price,
                line_total=line_total,
            ))
            subtotal += line_total
            total_items += item.quantity

        cfg = self.config
        total_amount = subtotal + cfg.shipping_cost + cfg.tax

        order = Order(
            order_code=generate_unique_order_code(db),
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            shipping_full_name=address["full_name"].strip(),
            shipping_street=address["street"].strip(),
            shipping_city=address["city"].strip(),
            shipping_state=address["state"].strip(),
            shipping_zip_code=str(address["zip_code"]).strip(),
            shipping_country=(address.get("country") or cfg.default_country).strip(),
            shipping_phone=str(address["phone"]).strip(),
            payment_method=method,
            payment_amount=total_amount,
            subtotal=subtotal,
            shipping_cost=cfg.shipping_cost,
            tax=cfg.tax,
            total_amount=total_amount,
            total_items=total_items,
            notes=notes or None,
            items=order_items,
        )
        db.add(order)
        db.flush()

        for oi in order_items:
            products[oi.product_id].adjust_stock(-oi.quantity)

        cart.clear()
        db.flush()

        logger.info(
            "Order %s created for user #%s: %d item(s), total=%s",
            order.order_code, user_id, total_items, total_amount,
        )
        return order

    # ==========================================
    # Status transitions
    # ==========================================

    def _restore_stock(self, db: Session, order: Order):
        """Return each item's quantity to its product, skipping deleted products."""
        product_ids = [item.product_id for item in order.items if item.product_id]
        products = catalog_service.get_products_map(db, product_ids, for_update=True)
        for item in order.items:
            product = products.get(item.product_id)
            if product:
                product.adjust_stock(item.quantity)

    def _transition(self, db: Session, order: Order, new_status: str, notes: str = None, changed_by: int = None):
        old_status = order.update_status(new_status, notes, delivery_days=self.config.expected_delivery_days)
        if order.status == OrderStatus.CANCELLED.value:
            self._restore_stock(db, order)
        db.add(OrderStatusLog(
            order_id=order.id,
            from_status=old_status,
            to_status=order.status,
            changed_by=changed_by,
            note=notes or None,
        ))
        db.flush()
        logger.info(
            "Order %s: %s -> %s (by user #%s)",
            order.order_code, old_status, order.status, changed_by,
        )

    def cancel_order(self, db: Session, order_id: int, user, reason: str = "") -> Order:
        """User-initiated cancel: owner only, and only before processing starts."""
        order = self._get_order(db, order_id, for_update=True)
        if order.user_id != user.id and not user.is_admin:
            raise AccessDeniedError()
        if OrderStatus(order.status) not in USER_CANCELLABLE:
            raise InvalidTransitionError("Order cannot be cancelled at this stage")
        if reason and len(reason) > MAX_CANCELLATION_REASON_LENGTH:
            raise ValidationError(
                f"Cancellation reason cannot exceed {MAX_CANCELLATION_REASON_LENGTH} characters"
            )

        self._transition(db, order, OrderStatus.CANCELLED.value, reason or None, changed_by=user.id)
        return order

    def update_status(
        self, db: Session, order_id: int, status: str, notes: str = None,
        tracking_id: str = None, carrier: str = None, changed_by: int = None,
    ) -> Order:
        """Admin status change along any allowed edge, optionally with tracking info."""
        if not status:
            raise ValidationError("Missing required fields: status")
        order = self._get_order(db, order_id, for_update=True)
        self._transition(db, order, status, notes, changed_by=changed_by)
        if tracking_id and carrier:
            order.set_tracking(tracking_id, carrier)
            db.flush()
        return order

    # ==========================================
    # Query
    # ==========================================

    def _get_order(self, db: Session, order_id: int, for_update: bool = False) -> Order:
        q = db.query(Order).filter(Order.id == order_id)
        if for_update:
            q = q.with_for_update()
        order = q.first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def get_order_for_user(self, db: Session, order_id: int, user) -> Order:
        order = self._get_order(db, order_id)
        if order.user_id != user.id and not user.is_admin:
            raise AccessDeniedError()
        return order

    def get_user_orders(
        self, db: Session, user_id: int, page: int = 1, per_page: int = 10, status: str = None,
    ) -> Tuple[List[Order], int]:
        q = db.query(Order).filter(Order.user_id == user_id)
        if status:
            q = q.filter(Order.status == status)
        total = q.count()
        orders = (
            q.options(selectinload(Order.items))
            .order_by(desc(Order.created_at), desc(Order.id))
            .offset((page - 1) * per_page).limit(per_page).all()
        )
        return orders, total

    def get_all_orders(
        self, db: Session, page: int = 1, per_page: int = 10, status: str = None,
        search: str = None, start_date: datetime = None, end_date: datetime = None,
    ) -> Tuple[List[Order], int]:
        q = db.query(Order)
        if status:
            q = q.filter(Order.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            q = q.filter(or_(
                Order.order_code.ilike(pattern),
                Order.shipping_full_name.ilike(pattern),
                Order.shipping_phone.ilike(pattern),
            ))
        if start_date:
            q = q.filter(Order.created_at >= start_date)
        if end_date:
            q = q.filter(Order.created_at <= end_date)

        total = q.count()
        orders = (
            q.options(selectinload(Order.items), selectinload(Order.user))
            .order_by(desc(Order.created_at), desc(Order.id))
            .offset((page - 1) * per_page).limit(per_page).all()
        )
        return orders, total

    def delete_order(self, db: Session, order_id: int):
        order = self._get_order(db, order_id, for_update=True)
        if order.status != OrderStatus.CANCELLED.value:
            raise InvalidTransitionError("Only cancelled orders can be deleted")
        db.delete(order)
        db.flush()
        logger.info("Order %s deleted", order.order_code)

    # ==========================================
    # Statistics
    # ==========================================

    def get_stats(self, db: Session, period_days: int = 30) -> dict:
        since = now_utc() - timedelta(days=period_days)
        base = db.query(Order).filter(Order.created_at >= since)

        total_orders, total_revenue, average_value = base.with_entities(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0),
            func.coalesce(func.avg(Order.total_amount), 0),
        ).one()

        counts = dict(
            base.with_entities(Order.status, func.count(Order.id)).group_by(Order.status).all()
        )

        return {
            "total_orders": total_orders or 0,
            "total_revenue": float(total_revenue or 0),
            "average_order_value": round(float(average_value or 0), 2),
            **{f"{s.value}_orders": counts.get(s.value, 0) for s in OrderStatus},
        }


# Singleton
order_service = OrderService()
