"""Tests for the cart endpoints."""

from sqlalchemy import func
from sqlmodel import select

from app.models.cart import Cart
from app.repositories.cart_repo import CartRepository


def _cart_rows(session, user_id):
    stmt = select(func.count()).select_from(Cart).where(Cart.user_id == user_id)
    return session.exec(stmt).one()


class TestAddToCart:
    def test_add_creates_cart(self, client, customer_headers, make_product):
        product = make_product(name="Mug", price=12.5, stock=10)

        response = client.post(
            "/api/v1/cart",
            json={"product_id": str(product.id), "quantity": 2},
            headers=customer_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total_items"] == 2
        assert data["total_price"] == 25.0
        line = data["items"][0]
        assert line["product_name"] == "Mug"
        assert line["unit_price"] == 12.5
        assert line["line_total"] == 25.0

    def test_adding_again_merges_quantity(self, customer_headers, make_product, add_to_cart):
        product = make_product(stock=10)
        add_to_cart(customer_headers, product, 2)
        data = add_to_cart(customer_headers, product, 3)

        assert len(data["items"]) == 1
        assert data["items"][0]["quantity"] == 5
        assert data["total_items"] == 5

    def test_uses_discount_price(self, customer_headers, make_product, add_to_cart):
        product = make_product(price=50.0, discount_price=35.0, stock=10)
        data = add_to_cart(customer_headers, product, 1)
        assert data["items"][0]["unit_price"] == 35.0

    def test_more_than_stock(self, client, customer_headers, make_product, add_to_cart):
        product = make_product(name="Lamp", stock=3)
        add_to_cart(customer_headers, product, 2)

        response = client.post(
            "/api/v1/cart",
            json={"product_id": str(product.id), "quantity": 2},
            headers=customer_headers,
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "INSUFFICIENT_STOCK"
        assert body["message"] == "Insufficient stock for Lamp. Only 3 items available"

    def test_line_maximum(self, client, customer_headers, make_product, add_to_cart):
        product = make_product(stock=100)
        add_to_cart(customer_headers, product, 30)

        response = client.post(
            "/api/v1/cart",
            json={"product_id": str(product.id), "quantity": 30},
            headers=customer_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Maximum 50 items per product"

    def test_quantity_out_of_range(self, client, customer_headers, make_product):
        product = make_product(stock=100)
        response = client.post(
            "/api/v1/cart",
            json={"product_id": str(product.id), "quantity": 51},
            headers=customer_headers,
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["errors"][0]["field"] == "quantity"

    def test_unknown_product(self, client, customer_headers):
        response = client.post(
            "/api/v1/cart",
            json={"product_id": "00000000-0000-0000-0000-000000000000"},
            headers=customer_headers,
        )
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Product not found"}

    def test_inactive_product(self, client, customer_headers, make_product):
        product = make_product(is_active=False)
        response = client.post(
            "/api/v1/cart",
            json={"product_id": str(product.id)},
            headers=customer_headers,
        )
        assert response.status_code == 400

    def test_admin_has_no_cart(self, client, admin_headers):
        response = client.get("/api/v1/cart", headers=admin_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Customer access required"


class TestReadCart:
    def test_empty_cart_is_created(self, client, customer_headers):
        response = client.get("/api/v1/cart", headers=customer_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["invalid_items"] == []

    def test_drops_lines_that_cannot_be_bought(
        self, client, session, customer_headers, make_product, add_to_cart
    ):
        keeper = make_product(name="Keeper", price=10.0, stock=5)
        retired = make_product(name="Retired", stock=5)
        scarce = make_product(name="Scarce", stock=5)
        add_to_cart(customer_headers, keeper, 1)
        add_to_cart(customer_headers, retired, 1)
        add_to_cart(customer_headers, scarce, 4)

        retired.is_active = False
        scarce.stock = 2
        session.add(retired)
        session.add(scarce)
        session.commit()

        data = client.get("/api/v1/cart", headers=customer_headers).json()
        assert [line["product_name"] for line in data["items"]] == ["Keeper"]
        assert data["total_items"] == 1
        assert data["total_price"] == 10.0
        reasons = {item["name"]: item["reason"] for item in data["invalid_items"]}
        assert reasons == {
            "Retired": "Product is no longer available",
            "Scarce": "Only 2 items available",
        }

    def test_refreshes_prices(self, client, session, customer_headers, make_product, add_to_cart):
        product = make_product(price=40.0, stock=5)
        add_to_cart(customer_headers, product, 2)

        product.discount_price = 30.0
        session.add(product)
        session.commit()

        data = client.get("/api/v1/cart", headers=customer_headers).json()
        assert data["items"][0]["unit_price"] == 30.0
        assert data["total_price"] == 60.0


class TestUpdateCart:
    def test_set_quantity(self, client, customer_headers, make_product, add_to_cart):
        product = make_product(stock=10)
        add_to_cart(customer_headers, product, 1)

        response = client.patch(
            f"/api/v1/cart/{product.id}", json={"quantity": 4}, headers=customer_headers
        )
        assert response.status_code == 200
        assert response.json()["items"][0]["quantity"] == 4

    def test_zero_removes_line(self, client, customer_headers, make_product, add_to_cart):
        product = make_product(stock=10)
        add_to_cart(customer_headers, product, 1)

        data = client.patch(
            f"/api/v1/cart/{product.id}", json={"quantity": 0}, headers=customer_headers
        ).json()
        assert data["items"] == []
        assert data["total_items"] == 0

    def test_line_not_in_cart(self, client, customer_headers, make_product):
        product = make_product(stock=10)
        response = client.patch(
            f"/api/v1/cart/{product.id}", json={"quantity": 2}, headers=customer_headers
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Item not in cart"

    def test_remove_and_clear(self, client, customer_headers, make_product, add_to_cart):
        first = make_product(name="First", stock=10)
        second = make_product(name="Second", stock=10)
        add_to_cart(customer_headers, first, 1)
        add_to_cart(customer_headers, second, 1)

        data = client.delete(f"/api/v1/cart/{first.id}", headers=customer_headers).json()
        assert [line["product_name"] for line in data["items"]] == ["Second"]

        data = client.delete("/api/v1/cart", headers=customer_headers).json()
        assert data["items"] == []
        assert data["total_price"] == 0.0

    def test_remove_missing_line(self, client, customer_headers, make_product):
        product = make_product(stock=10)
        response = client.delete(f"/api/v1/cart/{product.id}", headers=customer_headers)
        assert response.status_code == 404


class TestCartSummary:
    def test_estimates_checkout_totals(self, client, customer_headers, make_product, add_to_cart):
        add_to_cart(customer_headers, make_product(price=19.99, stock=10), 3)
        add_to_cart(customer_headers, make_product(price=50.0, discount_price=45.0, stock=10), 1)

        data = client.get("/api/v1/cart/summary", headers=customer_headers).json()
        assert data["total_items"] == 4
        assert data["items_count"] == 2
        assert data["subtotal"] == 104.97
        assert data["estimated_tax"] == 10.5
        assert data["estimated_shipping"] == 0.0
        assert data["estimated_total"] == 115.47

    def test_small_cart_pays_shipping(self, client, customer_headers, make_product, add_to_cart):
        add_to_cart(customer_headers, make_product(price=20.0), 1)
        data = client.get("/api/v1/cart/summary", headers=customer_headers).json()
        assert data["estimated_shipping"] == 10.0
        assert data["estimated_total"] == 32.0

    def test_empty_cart(self, client, customer_headers):
        data = client.get("/api/v1/cart/summary", headers=customer_headers).json()
        assert data["subtotal"] == 0.0
        assert data["estimated_shipping"] == 0.0
        assert data["estimated_total"] == 0.0

    def test_stale_lines_are_not_counted(
        self, client, session, customer_headers, make_product, add_to_cart
    ):
        kept = make_product(price=20.0)
        gone = make_product(name="Vase", price=80.0)
        add_to_cart(customer_headers, kept, 1)
        add_to_cart(customer_headers, gone, 1)
        gone.is_active = False
        session.add(gone)
        session.commit()

        data = client.get("/api/v1/cart/summary", headers=customer_headers).json()
        assert data["subtotal"] == 20.0
        assert [i["name"] for i in data["invalid_items"]] == ["Vase"]


class TestValidateCart:
    def test_valid(self, client, customer_headers, make_product, add_to_cart):
        add_to_cart(customer_headers, make_product(), 1)
        data = client.post("/api/v1/cart/validate", headers=customer_headers).json()
        assert data["is_valid"] is True
        assert data["message"] == "Cart is valid"

    def test_empty_is_not_valid(self, client, customer_headers):
        data = client.post("/api/v1/cart/validate", headers=customer_headers).json()
        assert data["is_valid"] is False
        assert data["message"] == "Cart is empty"

    def test_out_of_stock_line(self, client, session, customer_headers, make_product, add_to_cart):
        product = make_product(stock=5)
        add_to_cart(customer_headers, product, 4)
        product.stock = 2
        session.add(product)
        session.commit()

        data = client.post("/api/v1/cart/validate", headers=customer_headers).json()
        assert data["is_valid"] is False
        assert data["cart"]["items"] == []
        assert data["cart"]["invalid_items"][0]["reason"] == "Only 2 items available"


class TestMoveToWishlist:
    def test_moves_line(self, client, customer_headers, make_product, add_to_cart):
        lamp = make_product("Lamp", price=20.0)
        rug = make_product("Rug", price=30.0)
        add_to_cart(customer_headers, lamp, 2)
        add_to_cart(customer_headers, rug, 1)

        response = client.post(f"/api/v1/cart/{lamp.id}/move-to-wishlist", headers=customer_headers)
        assert response.status_code == 200
        cart = response.json()
        assert [i["product_name"] for i in cart["items"]] == ["Rug"]
        assert cart["total_price"] == 30.0

        wishlist = client.get("/api/v1/wishlist", headers=customer_headers).json()
        assert [i["product"]["name"] for i in wishlist["items"]] == ["Lamp"]

    def test_already_in_wishlist(self, client, customer_headers, make_product, add_to_cart):
        lamp = make_product("Lamp")
        add_to_cart(customer_headers, lamp, 1)
        client.post("/api/v1/wishlist", json={"product_id": str(lamp.id)}, headers=customer_headers)

        response = client.post(f"/api/v1/cart/{lamp.id}/move-to-wishlist", headers=customer_headers)
        assert response.status_code == 200
        assert response.json()["items"] == []
        assert client.get("/api/v1/wishlist/count", headers=customer_headers).json()["count"] == 1

    def test_not_in_cart(self, client, customer_headers, make_product):
        response = client.post(
            f"/api/v1/cart/{make_product().id}/move-to-wishlist", headers=customer_headers
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Item not found in cart"


class TestCartRepository:
    def test_first_access_creates_one_cart(self, session, customer):
        repo = CartRepository()
        first = repo.get_or_create_for_user(session, customer.id)
        second = repo.get_or_create_for_user(session, customer.id)

        assert first.id == second.id
        assert _cart_rows(session, customer.id) == 1

    def test_insert_loses_to_concurrent_create(self, session, customer, monkeypatch):
        repo = CartRepository()
        existing = Cart(user_id=customer.id)
        session.add(existing)
        session.commit()

        # The other request's row lands between our lookup and our insert
        real_lookup = CartRepository.get_for_user
        calls = []

        def lookup(self, session, user_id):
            calls.append(user_id)
            if len(calls) == 1:
                return None
            return real_lookup(self, session, user_id)

        monkeypatch.setattr(CartRepository, "get_for_user", lookup)

        cart = repo.get_or_create_for_user(session, customer.id)
        assert cart.id == existing.id
        assert _cart_rows(session, customer.id) == 1
