"""HTTP tests: envelope, auth gates and the main shopper/admin flows."""

from sqlalchemy.exc import OperationalError

from conftest import ADDRESS, auth_headers
from modules.review.service import review_service

API = "/api/v1"


def _add(client, headers, product_id, quantity=1):
    return client.post(f"{API}/cart/add", json={"product_id": product_id, "quantity": quantity}, headers=headers)


def _checkout(client, headers, **extra):
    return client.post(f"{API}/order", json={"shipping_address": ADDRESS, **extra}, headers=headers)


class TestEnvelope:
    def test_health(self, client):
        resp = client.get(f"{API}/health")
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.json()["message"] == "Server is healthy"

    def test_unauthenticated(self, client):
        resp = client.get(f"{API}/cart")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "Not authorized, please log in"}

    def test_bad_token(self, client):
        resp = client.get(f"{API}/cart", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_cookie_token(self, client, user):
        client.cookies.set("auth_token", auth_headers(user)["Authorization"][7:])
        resp = client.get(f"{API}/cart/count")
        assert resp.status_code == 200
        assert resp.json()["data"]["count"] == 0

    def test_inactive_user_rejected(self, client, make_user):
        ghost = make_user(is_active=False)
        resp = client.get(f"{API}/cart", headers=auth_headers(ghost))
        assert resp.status_code == 401

    def test_admin_only(self, client, user_headers):
        resp = client.get(f"{API}/order/stats", headers=user_headers)
        assert resp.status_code == 403
        assert resp.json()["message"] == "Admin access required"

    def test_request_validation_is_400(self, client, user_headers):
        resp = client.post(f"{API}/cart/add", json={"quantity": 1}, headers=user_headers)
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert resp.json()["message"].startswith("Invalid request")

    def test_not_found_product(self, client):
        resp = client.get(f"{API}/product/9999")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "message": "Product not found"}

    def test_database_error_is_generic_500(self, client, make_product, user_headers, monkeypatch):
        def failing_insert(*args, **kwargs):
            raise OperationalError("INSERT INTO reviews", {}, Exception("database is locked"))

        monkeypatch.setattr(review_service, "add_review", failing_insert)
        p = make_product()
        resp = client.post(f"{API}/product/{p.id}/review", json={"rating": 5}, headers=user_headers)
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "message": "Internal server error"}


class TestProducts:
    def test_listing_pagination(self, client, make_product):
        for _ in range(3):
            make_product()
        body = client.get(f"{API}/product", params={"page": 1, "limit": 2}).json()
        assert len(body["data"]) == 2
        assert body["pagination"]["total_items"] == 3
        assert body["pagination"]["total_pages"] == 2
        assert body["pagination"]["has_next_page"] is True
        assert body["pagination"]["has_prev_page"] is False

    def test_price_filters_use_camel_case(self, client, make_product):
        make_product(name="Cheap", price="50.00")
        make_product(name="Pricey", price="5000.00")
        body = client.get(f"{API}/product", params={"maxPrice": 100}).json()
        assert [p["name"] for p in body["data"]] == ["Cheap"]
        assert body["data"][0]["price"] == 50.0

    def test_detail_with_discount(self, client, make_product):
        p = make_product(price="80.00", old_price="100.00")
        product = client.get(f"{API}/product/{p.id}").json()["data"]["product"]
        assert product["discount_percentage"] == 20
        assert product["reviews"] == []

    def test_search_requires_query(self, client):
        resp = client.get(f"{API}/product/search")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Search query is required"

    def test_review_flow(self, client, make_product, user_headers):
        p = make_product()
        url = f"{API}/product/{p.id}/review"
        resp = client.post(url, json={"rating": 4, "comment": "Thriving"}, headers=user_headers)
        assert resp.status_code == 201
        resp = client.post(url, json={"rating": 5}, headers=user_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "You have already reviewed this product"

        ratings = client.get(f"{API}/product/{p.id}").json()["data"]["product"]["ratings"]
        assert ratings == {"average": 4.0, "count": 1}

    def test_admin_stock_update(self, client, make_product, admin_headers, user_headers):
        p = make_product(stock=4)
        url = f"{API}/product/{p.id}/stock"
        assert client.patch(url, json={"stock": 1}, headers=user_headers).status_code == 403

        resp = client.patch(url, json={"stock": 4, "operation": "subtract"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["product"]["stock"] == 0
        assert resp.json()["data"]["product"]["is_available"] is False

        resp = client.patch(url, json={"stock": 1, "operation": "subtract"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Stock cannot be negative"


class TestCart:
    def test_add_update_remove(self, client, make_product, user_headers):
        a = make_product(price="40.00")
        b = make_product(price="10.00")

        resp = _add(client, user_headers, a.id, 2)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Item added to cart successfully"
        _add(client, user_headers, b.id, 1)

        cart = client.get(f"{API}/cart", headers=user_headers).json()["data"]["cart"]
        assert cart["total_items"] == 3
        assert cart["total_price"] == 90.0
        assert cart["items"][0]["product"]["name"] == a.name

        resp = client.put(f"{API}/cart/update", json={"product_id": a.id, "quantity": 0}, headers=user_headers)
        assert resp.json()["message"] == "Item removed from cart"
        assert resp.json()["data"]["cart"]["total_items"] == 1

        resp = client.request("DELETE", f"{API}/cart/remove", json={"product_id": b.id}, headers=user_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["cart"]["items"] == []

    def test_limits(self, client, make_product, user_headers):
        p = make_product(stock=50)
        _add(client, user_headers, p.id, 9)
        resp = _add(client, user_headers, p.id, 2)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Cannot add more than 10 of the same item"

        resp = _add(client, user_headers, p.id, 11)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Quantity must be between 1 and 10"

    def test_stock_check(self, client, make_product, user_headers):
        p = make_product(stock=2)
        resp = _add(client, user_headers, p.id, 3)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Only 2 items available in stock"

    def test_repeat_add_checks_merged_quantity(self, client, make_product, user_headers):
        p = make_product(stock=6)
        assert _add(client, user_headers, p.id, 5).status_code == 200
        resp = _add(client, user_headers, p.id, 5)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Only 6 items available in stock"
        assert client.get(f"{API}/cart/count", headers=user_headers).json()["data"]["count"] == 5

    def test_validate_reports_issues(self, client, db, make_product, user_headers):
        p = make_product(stock=5)
        _add(client, user_headers, p.id, 4)
        p.stock = 2
        db.commit()

        data = client.get(f"{API}/cart/validate", headers=user_headers).json()["data"]
        assert data["is_valid"] is False
        assert data["issues"][0]["type"] == "quantity_reduced"
        assert data["cart"]["total_items"] == 2

    def test_validate_empty(self, client, user_headers):
        body = client.get(f"{API}/cart/validate", headers=user_headers).json()
        assert body["message"] == "Cart is empty"
        assert body["data"] == {"is_valid": True, "issues": []}

    def test_clear(self, client, make_product, user_headers):
        _add(client, user_headers, make_product().id, 1)
        resp = client.delete(f"{API}/cart/clear", headers=user_headers)
        assert resp.json()["data"]["cart"]["total_items"] == 0


class TestOrders:
    def test_checkout_and_history(self, client, make_product, user_headers):
        p = make_product(price="200.00", stock=3)
        _add(client, user_headers, p.id, 2)

        resp = _checkout(client, user_headers, payment_method="upi")
        assert resp.status_code == 201
        order = resp.json()["data"]["order"]
        assert order["status"] == "pending"
        assert order["subtotal"] == 400.0
        assert order["total_amount"] == 550.0
        assert order["payment_info"]["method"] == "upi"
        assert order["shipping_address"]["country"] == "India"

        history = client.get(f"{API}/order/my-orders", headers=user_headers).json()
        assert history["pagination"]["total_items"] == 1
        assert history["data"][0]["order_code"] == order["order_code"]

        detail = client.get(f"{API}/order/{order['id']}", headers=user_headers).json()
        assert detail["data"]["order"]["user"]["full_name"] == "Asha Verma"

        assert client.get(f"{API}/cart/count", headers=user_headers).json()["data"]["count"] == 0

    def test_checkout_empty_cart(self, client, user_headers):
        resp = _checkout(client, user_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Cart is empty"

    def test_checkout_missing_address(self, client, make_product, user_headers):
        _add(client, user_headers, make_product().id, 1)
        resp = client.post(f"{API}/order", json={"shipping_address": {"full_name": "A"}}, headers=user_headers)
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("Missing shipping address fields: street")

    def test_other_users_order_forbidden(self, client, make_product, make_user, user_headers):
        _add(client, user_headers, make_product().id, 1)
        order_id = _checkout(client, user_headers).json()["data"]["order"]["id"]
        resp = client.get(f"{API}/order/{order_id}", headers=auth_headers(make_user()))
        assert resp.status_code == 403

    def test_cancel_restores_stock(self, client, db, make_product, user_headers):
        p = make_product(stock=3)
        _add(client, user_headers, p.id, 3)
        order_id = _checkout(client, user_headers).json()["data"]["order"]["id"]
        db.refresh(p)
        assert (p.stock, p.is_available) == (0, False)

        resp = client.put(f"{API}/order/{order_id}/cancel", json={"reason": "Too slow"}, headers=user_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["order"]["cancellation_reason"] == "Too slow"
        db.refresh(p)
        assert (p.stock, p.is_available) == (3, True)

        resp = client.put(f"{API}/order/{order_id}/cancel", headers=user_headers)
        assert resp.status_code == 400


class TestAdminOrders:
    def _place(self, client, make_product, user_headers):
        _add(client, user_headers, make_product().id, 1)
        return _checkout(client, user_headers).json()["data"]["order"]["id"]

    def test_status_flow(self, client, make_product, user_headers, admin_headers):
        order_id = self._place(client, make_product, user_headers)
        url = f"{API}/order/{order_id}/status"

        resp = client.patch(url, json={"status": "delivered"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Cannot change status from pending to delivered"

        resp = client.patch(url, json={"status": "confirmed", "tracking_id": "T-9", "carrier": "DTDC"},
                            headers=admin_headers)
        order = resp.json()["data"]["order"]
        assert order["status"] == "confirmed"
        assert order["expected_delivery"] is not None
        assert order["tracking_info"]["tracking_id"] == "T-9"

        resp = client.patch(url, json={}, headers=admin_headers)
        assert resp.json()["message"] == "Missing required fields: status"

    def test_list_stats_delete(self, client, make_product, user_headers, admin_headers):
        order_id = self._place(client, make_product, user_headers)

        body = client.get(f"{API}/order", params={"search": "Asha"}, headers=admin_headers).json()
        assert body["pagination"]["total_items"] == 1
        assert body["data"][0]["user"]["email"] == "asha@example.com"

        stats = client.get(f"{API}/order/stats", params={"period": 7}, headers=admin_headers).json()["data"]
        assert stats["period"] == "7 days"
        assert stats["stats"]["pending_orders"] == 1

        resp = client.delete(f"{API}/order/{order_id}", headers=admin_headers)
        assert resp.json()["message"] == "Only cancelled orders can be deleted"

        client.patch(f"{API}/order/{order_id}/status", json={"status": "cancelled"}, headers=admin_headers)
        resp = client.delete(f"{API}/order/{order_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert client.get(f"{API}/order/{order_id}", headers=admin_headers).status_code == 404


class TestAdminDashboard:
    def test_dashboard_and_counters(self, client, make_product, user_headers, admin_headers):
        _add(client, user_headers, make_product().id, 1)
        _checkout(client, user_headers)

        stats = client.get(f"{API}/admin/dashboard-stats", headers=admin_headers).json()["data"]["stats"]
        assert stats["overview"]["total_orders"] == 1
        assert stats["orders"]["status_breakdown"]["pending"] == 1

        new = client.get(f"{API}/admin/orders/new", headers=admin_headers).json()["data"]
        assert new["count"] == 1
        pending = client.get(f"{API}/admin/orders/pending-count", headers=admin_headers).json()["data"]
        assert pending["count"] == 1

        activities = client.get(f"{API}/admin/recent-activities", headers=admin_headers).json()["data"]
        assert {a["type"] for a in activities["activities"]} >= {"order", "user"}

    def test_analytics(self, client, admin_headers):
        assert client.get(f"{API}/admin/analytics/sales", headers=admin_headers).status_code == 200
        products = client.get(f"{API}/admin/analytics/products", headers=admin_headers).json()["data"]
        assert products["period"] == "30 days"

    def test_user_management(self, client, user, admin_headers):
        url = f"{API}/admin/users/{user.id}"
        resp = client.patch(f"{url}/role", json={"role": "owner"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid role. Must be 'user' or 'admin'"

        resp = client.patch(f"{url}/role", json={"role": "admin"}, headers=admin_headers)
        assert resp.json()["data"]["user"]["role"] == "admin"

        resp = client.patch(f"{url}/status", headers=admin_headers)
        assert resp.json()["message"] == "User deactivated successfully"


class TestWishlist:
    def test_toggle_and_list(self, client, make_product, user_headers):
        fern = make_product(name="Boston Fern")
        url = f"{API}/user/wishlist/{fern.id}"

        resp = client.post(url, headers=user_headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Product added to wishlist"
        assert resp.json()["data"]["in_wishlist"] is True

        wishlist = client.get(f"{API}/user/wishlist", headers=user_headers).json()["data"]["wishlist"]
        assert [p["name"] for p in wishlist] == ["Boston Fern"]

        resp = client.patch(url, headers=user_headers)
        assert resp.json()["message"] == "Product removed from wishlist"
        assert client.get(f"{API}/user/wishlist", headers=user_headers).json()["data"]["wishlist"] == []

    def test_unknown_product(self, client, user_headers):
        resp = client.post(f"{API}/user/wishlist/9999", headers=user_headers)
        assert resp.status_code == 404
        assert resp.json()["message"] == "Product not found"

    def test_requires_login(self, client):
        assert client.get(f"{API}/user/wishlist").status_code == 401
