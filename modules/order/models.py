"""
Order Module - Models
======================
Order with a full snapshot per item, shipping and payment info,
and an explicit status state machine.

Orders are only mutated through Order.update_status(); the service
layer owns loading, stock restoration and persistence.
"""

import enum
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Numeric, Text, ForeignKey, DateTime, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base
from common.exceptions import InvalidTransitionError, ValidationError
from common.helpers import now_utc, as_utc


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    COD = "cod"
    UPI = "upi"
    NETBANKING = "netbanking"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

# Statuses from which the owning user may cancel
USER_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

EXPECTED_DELIVERY_DAYS = 7
MAX_NOTES_LENGTH = 1000
MAX_CANCELLATION_REASON_LENGTH = 500


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_code = Column(String(40), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False, index=True)

    # Shipping address
    shipping_full_name = Column(String(100), nullable=False)
    shipping_street = Column(String(255), nullable=False)
    shipping_city = Column(String(100), nullable=False)
    shipping_state = Column(String(100), nullable=False)
    shipping_zip_code = Column(String(20), nullable=False)
    shipping_country = Column(String(100), nullable=False)
    shipping_phone = Column(String(20), nullable=False)

    # Payment
    payment_method = Column(String(20), default=PaymentMethod.COD.value, nullable=False)
    payment_status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False)
    payment_amount = Column(Numeric(12, 2), nullable=True)
    payment_transaction_id = Column(String, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Totals
    subtotal = Column(Numeric(12, 2), nullable=False)
    shipping_cost = Column(Numeric(10, 2), default=0, nullable=False)
    tax = Column(Numeric(10, 2), default=0, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    total_items = Column(Integer, nullable=False)

    notes = Column(Text, nullable=True)

    # Lifecycle
    expected_delivery = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    # Tracking
    tracking_id = Column(String, nullable=True)
    carrier = Column(String, nullable=True)
    tracking_status = Column(String, nullable=True)
    tracking_updated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")
    status_logs = relationship(
        "OrderStatusLog", back_populates="order",
        cascade="all, delete-orphan", order_by="OrderStatusLog.id",
    )

    __table_args__ = (
        Index("ix_orders_user_created", "user_id", "created_at"),
        Index("ix_orders_status_created", "status", "created_at"),
    )

    # ------------------------------------------
    # State machine
    # ------------------------------------------

    def can_transition_to(self, new_status) -> bool:
        try:
            target = OrderStatus(new_status)
        except ValueError:
            return False
        return target in ORDER_TRANSITIONS[OrderStatus(self.status)]

    def update_status(self, new_status, notes: str = None, delivery_days: int = EXPECTED_DELIVERY_DAYS) -> str:
        """
        Move to `new_status` and apply its side effects.
        Stock restoration on cancel is the caller's job.
        Returns the previous status.
        """
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError(f"Invalid order status: {new_status}")

        current = OrderStatus(self.status)
        if target not in ORDER_TRANSITIONS[current]:
            raise InvalidTransitionError(f"Cannot change status from {current.value} to {target.value}")

        if notes and len(notes) > MAX_CANCELLATION_REASON_LENGTH and target == OrderStatus.CANCELLED:
            raise ValidationError(
                f"Cancellation reason cannot exceed {MAX_CANCELLATION_REASON_LENGTH} characters"
            )

        now = now_utc()
        self.status = target.value

        if target == OrderStatus.CONFIRMED:
            if not self.expected_delivery:
                self.expected_delivery = now + timedelta(days=delivery_days)
        elif target == OrderStatus.SHIPPED:
            self.shipped_at = now
        elif target == OrderStatus.DELIVERED:
            self.delivered_at = now
            self.payment_status = PaymentStatus.PAID.value
            self.paid_at = now
        elif target == OrderStatus.CANCELLED:
            self.cancelled_at = now
            self.cancellation_reason = notes or None

        return current.value

    def set_tracking(self, tracking_id: str, carrier: str):
        self.tracking_id = tracking_id
        self.carrier = carrier
        self.tracking_status = self.status
        self.tracking_updated_at = now_utc()

    # ------------------------------------------
    # Derived
    # ------------------------------------------

    def get_refund_amount(self) -> Decimal:
        """Refund applies only to paid orders cancelled before shipping."""
        if (
            self.status == OrderStatus.CANCELLED.value
            and self.payment_status == PaymentStatus.PAID.value
            and not self.shipped_at
        ):
            return Decimal(str(self.total_amount))
        return Decimal("0")

    @property
    def order_age_days(self) -> int:
        created = as_utc(self.created_at)
        if not created:
            return 0
        return (now_utc() - created).days

    def __repr__(self):
        return f"<Order {self.order_code} status={self.status}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    # Snapshot at time of purchase
    name = Column(String(100), nullable=False)
    image = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")


class OrderStatusLog(Base):
    """Audit trail: one row per successful status transition."""
    __tablename__ = "order_status_logs"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status = Column(String(20), nullable=False)
    to_status = Column(String(20), nullable=False)
    changed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="status_logs")
