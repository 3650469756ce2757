"""Tests for the wishlist service."""

import pytest

from common.exceptions import NotFoundError
from modules.user.models import WishlistItem
from modules.user.service import wishlist_service


class TestToggle:
    def test_add_then_remove(self, db, user, make_product):
        p = make_product()
        assert wishlist_service.toggle(db, user.id, p.id) is True
        assert db.query(WishlistItem).count() == 1
        assert wishlist_service.toggle(db, user.id, p.id) is False
        assert db.query(WishlistItem).count() == 0

    def test_unknown_product(self, db, user):
        with pytest.raises(NotFoundError):
            wishlist_service.toggle(db, user.id, 404)

    def test_lists_are_per_user(self, db, user, make_user, make_product):
        p = make_product()
        wishlist_service.toggle(db, user.id, p.id)
        assert wishlist_service.get_wishlist(db, make_user().id) == []


class TestGetWishlist:
    def test_hides_unavailable_products(self, db, user, make_product):
        shown = make_product(name="Snake Plant")
        hidden = make_product(name="Sold Out Orchid", is_available=False)
        wishlist_service.toggle(db, user.id, shown.id)
        wishlist_service.toggle(db, user.id, hidden.id)
        db.commit()
        assert [p.name for p in wishlist_service.get_wishlist(db, user.id)] == ["Snake Plant"]

    def test_deleted_product_leaves_wishlist(self, db, user, make_product):
        p = make_product()
        wishlist_service.toggle(db, user.id, p.id)
        db.commit()
        db.delete(p)
        db.commit()
        assert db.query(WishlistItem).count() == 0
