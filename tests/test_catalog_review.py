"""Tests for catalog listings, admin stock edits and reviews."""

import pytest

from common.exceptions import DuplicateReviewError, NegativeStockError, NotFoundError, ValidationError
from modules.catalog.service import catalog_service
from modules.review.service import review_service


class TestUpdateStock:
    def test_add(self, db, make_product):
        p = make_product(stock=5)
        catalog_service.update_stock(db, p.id, 3, "add")
        assert p.stock == 8
        assert p.is_available is True

    def test_subtract_to_zero_marks_unavailable(self, db, make_product):
        p = make_product(stock=5)
        catalog_service.update_stock(db, p.id, 5, "subtract")
        assert p.stock == 0
        assert p.is_available is False

    def test_set_positive_makes_available(self, db, make_product):
        p = make_product(stock=0, is_available=False)
        catalog_service.update_stock(db, p.id, 12, "set")
        assert p.stock == 12
        assert p.is_available is True

    def test_negative_result_rejected(self, db, make_product):
        p = make_product(stock=2)
        with pytest.raises(NegativeStockError) as exc:
            catalog_service.update_stock(db, p.id, 3, "subtract")
        assert exc.value.message == "Stock cannot be negative"
        assert p.stock == 2

    def test_unknown_operation(self, db, make_product):
        p = make_product(stock=2)
        with pytest.raises(ValidationError):
            catalog_service.update_stock(db, p.id, 1, "multiply")

    def test_missing_product(self, db):
        with pytest.raises(NotFoundError):
            catalog_service.update_stock(db, 404, 1, "add")


class TestListings:
    def test_only_available_listed(self, db, make_product):
        make_product(name="Tulip")
        make_product(name="Gone", is_available=False)
        products, total = catalog_service.list_products(db)
        assert total == 1
        assert products[0].name == "Tulip"

    def test_filters_and_sort(self, db, make_product):
        make_product(name="Clay Vase", price="300.00", category="Vase")
        make_product(name="Glass Vase", price="900.00", category="Vase")
        make_product(name="Trowel", price="250.00", category="Tools")

        products, total = catalog_service.list_products(
            db, category="Vase", min_price=100, max_price=500,
        )
        assert total == 1
        assert products[0].name == "Clay Vase"

        products, _ = catalog_service.list_products(db, sort_by="price", sort_order="asc")
        assert [p.name for p in products] == ["Trowel", "Clay Vase", "Glass Vase"]

    def test_invalid_category(self, db):
        with pytest.raises(ValidationError):
            catalog_service.list_products(db, category="Furniture")

    def test_pagination(self, db, make_product):
        for _ in range(5):
            make_product()
        products, total = catalog_service.list_products(db, page=2, per_page=2)
        assert total == 5
        assert len(products) == 2

    def test_featured_and_trending(self, db, make_product):
        make_product(name="Star", featured=True)
        make_product(name="Hot", trending=True)
        make_product(name="Hidden", featured=True, is_available=False)
        assert [p.name for p in catalog_service.get_featured(db)] == ["Star"]
        assert [p.name for p in catalog_service.get_trending(db)] == ["Hot"]

    def test_search(self, db, make_product):
        make_product(name="Rose Fertilizer", category="Fertilizer")
        make_product(name="Garden Hose", category="Tools")
        results = catalog_service.search(db, "rose")
        assert [p.name for p in results] == ["Rose Fertilizer"]

    def test_search_requires_query(self, db):
        with pytest.raises(ValidationError) as exc:
            catalog_service.search(db, "  ")
        assert exc.value.message == "Search query is required"


class TestReviews:
    def test_mean_rating(self, db, make_product, make_user):
        p = make_product()
        for rating in (5, 4, 4):
            review_service.add_review(db, p.id, make_user().id, rating, "Nice")
        db.commit()
        db.refresh(p)
        assert p.rating_count == 3
        assert float(p.rating_average) == 4.33

    def test_duplicate_rejected(self, db, make_product, user):
        p = make_product()
        review_service.add_review(db, p.id, user.id, 5)
        with pytest.raises(DuplicateReviewError) as exc:
            review_service.add_review(db, p.id, user.id, 1)
        assert exc.value.message == "You have already reviewed this product"
        assert p.rating_count == 1

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_range(self, db, make_product, user, rating):
        p = make_product()
        with pytest.raises(ValidationError) as exc:
            review_service.add_review(db, p.id, user.id, rating)
        assert exc.value.message == "Rating must be between 1 and 5"

    def test_comment_length(self, db, make_product, user):
        p = make_product()
        with pytest.raises(ValidationError):
            review_service.add_review(db, p.id, user.id, 3, "x" * 501)

    def test_missing_product(self, db, user):
        with pytest.raises(NotFoundError):
            review_service.add_review(db, 999, user.id, 3)

    def test_detail_includes_reviews(self, db, make_product, user):
        p = make_product()
        review_service.add_review(db, p.id, user.id, 4, "Healthy plant")
        db.commit()
        db.expire_all()
        detail = catalog_service.get_product_detail(db, p.id)
        assert [(r.rating, r.comment, r.user.full_name) for r in detail.reviews] == [
            (4, "Healthy plant", "Asha Verma"),
        ]


class TestAdjustStock:
    def test_hidden_product_stays_hidden(self, make_product):
        p = make_product(stock=5, is_available=False)
        p.adjust_stock(-2)
        assert p.stock == 3
        assert p.is_available is False
        p.adjust_stock(2)
        assert p.is_available is False

    def test_restock_from_zero_reopens(self, make_product):
        p = make_product(stock=1)
        p.adjust_stock(-1)
        assert p.is_available is False
        p.adjust_stock(4)
        assert p.is_available is True
