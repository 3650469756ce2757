"""
Review Service - Business Logic
==================================
One review per user per product; the product's rating summary is
recomputed after every insert.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from modules.review.models import Review
from modules.catalog.models import Product
from common.exceptions import DuplicateReviewError, NotFoundError, ValidationError

logger = logging.getLogger("garden.review")

MAX_COMMENT_LENGTH = 500


class ReviewService:

    def add_review(
        self, db: Session, product_id: int, user_id: int,
        rating: int, comment: Optional[str] = None,
    ) -> Review:
        if rating is None or rating < 1 or rating > 5:
            raise ValidationError("Rating must be between 1 and 5")
        comment = (comment or "").strip()
        if len(comment) > MAX_COMMENT_LENGTH:
            raise ValidationError(f"Comment cannot exceed {MAX_COMMENT_LENGTH} characters")

        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found")

        existing = db.query(Review.id).filter(
            Review.product_id == product_id,
            Review.user_id == user_id,
        ).first()
        if existing:
            raise DuplicateReviewError()

        review = Review(product_id=product_id, user_id=user_id, rating=int(rating), comment=comment)
        db.add(review)
        db.flush()

        ratings = [r for (r,) in db.query(Review.rating).filter(Review.product_id == product_id).all()]
        product.recompute_rating(ratings)
        db.flush()

        logger.info(
            "Review #%s added to product #%s by user #%s (avg=%s, count=%s)",
            review.id, product_id, user_id, product.rating_average, product.rating_count,
        )
        return review


review_service = ReviewService()
