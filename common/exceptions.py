"""
Garden Shop - Custom Exceptions
================================
Business-level exceptions that can be caught and converted to HTTP responses.
Each kind carries the HTTP status it is rendered with.
"""

from fastapi import status


class ShopError(Exception):
    """Base exception for all business logic errors."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Something went wrong."):
        self.message = message
        super().__init__(self.message)


class ValidationError(ShopError):
    """Raised for missing or malformed input."""
    pass


class NotFoundError(ShopError):
    """Raised when a requested resource doesn't exist."""
    status_code = status.HTTP_404_NOT_FOUND


class AccessDeniedError(ShopError):
    """Raised when an ownership or role check fails."""
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class LimitExceededError(ShopError):
    """Raised when a cart line would exceed the per-item quantity cap."""
    pass


class InsufficientStockError(ShopError):
    """Raised when product stock is lower than the requested quantity."""
    def __init__(self, product_name: str = "", available: int = None, message: str = None):
        if message:
            msg = message
        elif product_name and available is not None:
            msg = f"Insufficient stock for {product_name}. Available: {available}"
        elif product_name:
            msg = f"Insufficient stock for {product_name}"
        else:
            msg = "Insufficient stock"
        super().__init__(msg)


class ProductUnavailableError(ShopError):
    """Raised when a product is deleted or marked unavailable."""
    def __init__(self, product_name: str = ""):
        super().__init__(f"Product {product_name or 'Unknown'} is not available")


class EmptyCartError(ShopError):
    """Raised on checkout with a missing or empty cart."""
    def __init__(self):
        super().__init__("Cart is empty")


class InvalidTransitionError(ShopError):
    """Raised when an order status change is not allowed."""
    pass


class NegativeStockError(ShopError):
    """Raised when a stock adjustment would go below zero."""
    def __init__(self):
        super().__init__("Stock cannot be negative")


class DuplicateReviewError(ShopError):
    """Raised when a user reviews the same product twice."""
    def __init__(self):
        super().__init__("You have already reviewed this product")
