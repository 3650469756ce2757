"""
Garden Shop - Shared Helpers
=============================
Pure utility functions with NO module dependencies.
"""

import math
import secrets
import time
from datetime import datetime, timezone
from typing import Optional

from config.settings import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def safe_int(value: Optional[str]) -> Optional[int]:
    """Safely convert a string to int. Returns None on failure."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None


def clamp_page(page: int, per_page: int) -> tuple[int, int]:
    """Normalize pagination args to page >= 1 and 1 <= per_page <= MAX_PAGE_SIZE."""
    page = max(1, page or 1)
    per_page = per_page or DEFAULT_PAGE_SIZE
    per_page = max(1, min(per_page, MAX_PAGE_SIZE))
    return page, per_page


def build_pagination(page: int, per_page: int, total: int) -> dict:
    total_pages = math.ceil(total / per_page) if per_page else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_items": total,
        "items_per_page": per_page,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


# ==========================================
# Order Code Generator
# ==========================================

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_order_code() -> str:
    """ORD- + base36 millisecond timestamp + 6 random base36 chars, uppercased."""
    stamp = to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"ORD-{stamp}{suffix}".upper()


def generate_unique_order_code(db, max_retries: int = 10) -> str:
    """Generate a unique order code (checks DB for collision)."""
    from modules.order.models import Order
    for _ in range(max_retries):
        code = generate_order_code()
        exists = db.query(Order.id).filter(Order.order_code == code).first()
        if not exists:
            return code
    raise RuntimeError("Failed to generate unique order code after retries")
