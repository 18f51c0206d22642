"""Tests for order reads, status lifecycle, cancellation and refunds."""

import pytest


@pytest.fixture
def placed_order(customer_headers, make_product, add_to_cart, place_order):
    """An order for 2 x 20.00 (total 54.00) out of a stock of 5."""
    product = make_product(price=20.0, stock=5)
    add_to_cart(customer_headers, product, 2)
    response = place_order(customer_headers)
    assert response.status_code == 201
    return response.json()["order"], product


def _set_status(client, headers, order_id, status, **extra):
    return client.put(
        f"/api/v1/orders/{order_id}/status",
        json={"status": status, **extra},
        headers=headers,
    )


class TestOrderAccess:
    def test_owner_reads_order(self, client, customer_headers, placed_order):
        order, _ = placed_order
        response = client.get(f"/api/v1/orders/{order['_id']}", headers=customer_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["order_number"] == order["orderNumber"]
        assert data["can_be_cancelled"] is True
        assert data["can_be_returned"] is False

    def test_other_customer_is_forbidden(self, client, make_user, auth_headers, placed_order):
        order, _ = placed_order
        stranger = auth_headers(make_user())
        response = client.get(f"/api/v1/orders/{order['_id']}", headers=stranger)
        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to access this resource"

    def test_admin_reads_any_order(self, client, admin_headers, placed_order):
        order, _ = placed_order
        response = client.get(f"/api/v1/orders/{order['_id']}", headers=admin_headers)
        assert response.status_code == 200

    def test_unknown_order(self, client, customer_headers):
        response = client.get(
            "/api/v1/orders/00000000-0000-0000-0000-000000000000", headers=customer_headers
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"

    def test_my_orders_only_lists_own(self, client, make_user, auth_headers, customer_headers, placed_order):
        order, _ = placed_order
        mine = client.get("/api/v1/orders/me", headers=customer_headers).json()
        assert [o["id"] for o in mine] == [order["_id"]]

        other = client.get("/api/v1/orders/me", headers=auth_headers(make_user())).json()
        assert other == []


class TestCancel:
    def test_owner_cancels_and_stock_returns(self, client, customer_headers, placed_order, refresh):
        order, product = placed_order
        assert refresh(product).stock == 3

        response = client.put(f"/api/v1/orders/{order['_id']}/cancel", headers=customer_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["order_status"] == "cancelled"
        assert data["can_be_cancelled"] is False
        assert data["status_history"][-1]["status"] == "cancelled"
        assert data["status_history"][-1]["note"] == "Cancelled by user"
        assert refresh(product).stock == 5

    def test_cancel_reason(self, client, customer_headers, placed_order):
        order, _ = placed_order
        response = client.put(
            f"/api/v1/orders/{order['_id']}/cancel",
            json={"reason": "Ordered by mistake"},
            headers=customer_headers,
        )
        assert response.json()["status_history"][-1]["note"] == "Ordered by mistake"

    def test_cannot_cancel_shipped(self, client, customer_headers, admin_headers, placed_order, refresh):
        order, product = placed_order
        assert _set_status(client, admin_headers, order["_id"], "shipped").status_code == 200

        response = client.put(f"/api/v1/orders/{order['_id']}/cancel", headers=customer_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Order cannot be cancelled at this stage"
        assert refresh(product).stock == 3

    def test_cancel_twice(self, client, customer_headers, placed_order, refresh):
        order, product = placed_order
        client.put(f"/api/v1/orders/{order['_id']}/cancel", headers=customer_headers)
        response = client.put(f"/api/v1/orders/{order['_id']}/cancel", headers=customer_headers)
        assert response.status_code == 400
        assert refresh(product).stock == 5

    def test_cancel_refunds_captured_payment(self, client, customer_headers, placed_order, gateway):
        order, _ = placed_order
        txn = gateway.charges[0][2].transaction_id

        data = client.put(f"/api/v1/orders/{order['_id']}/cancel", headers=customer_headers).json()
        assert data["payment_status"] == "refunded"
        assert data["refund_amount"] == 54.0
        assert data["refunded_at"] is not None
        assert gateway.refunds == [(txn, 54.0)]

    def test_cancel_cash_on_delivery_has_nothing_to_refund(
        self, client, customer_headers, make_product, add_to_cart, place_order, gateway
    ):
        product = make_product(price=20.0, stock=5)
        add_to_cart(customer_headers, product, 1)
        order = place_order(
            customer_headers, paymentMethod="cash_on_delivery", paymentDetails=None
        ).json()["order"]

        data = client.put(f"/api/v1/orders/{order['_id']}/cancel", headers=customer_headers).json()
        assert data["order_status"] == "cancelled"
        assert data["payment_status"] == "pending"
        assert data["refund_amount"] is None
        assert gateway.refunds == []

    def test_admin_cancel_refunds_too(self, client, admin_headers, placed_order, gateway):
        order, _ = placed_order
        data = _set_status(client, admin_headers, order["_id"], "cancelled").json()
        assert data["payment_status"] == "refunded"
        assert len(gateway.refunds) == 1

    def test_rejected_refund_keeps_order(self, client, customer_headers, placed_order, gateway, refresh):
        order, product = placed_order
        gateway.refunds_fail = True

        response = client.put(f"/api/v1/orders/{order['_id']}/cancel", headers=customer_headers)
        assert response.status_code == 502
        assert response.json()["message"] == "Processor unavailable"

        detail = client.get(f"/api/v1/orders/{order['_id']}", headers=customer_headers).json()
        assert detail["order_status"] == "processing"
        assert detail["payment_status"] == "completed"
        assert refresh(product).stock == 3

    def test_other_customer_cannot_cancel(self, client, make_user, auth_headers, placed_order):
        order, _ = placed_order
        response = client.put(
            f"/api/v1/orders/{order['_id']}/cancel", headers=auth_headers(make_user())
        )
        assert response.status_code == 403


class TestStatusUpdates:
    def test_forward_flow(self, client, admin_headers, placed_order):
        order, _ = placed_order
        order_id = order["_id"]

        assert _set_status(client, admin_headers, order_id, "confirmed").status_code == 200
        shipped = _set_status(
            client, admin_headers, order_id, "shipped", tracking_number="1Z999", note="Left the warehouse"
        ).json()
        assert shipped["tracking_number"] == "1Z999"
        assert shipped["estimated_delivery"] is not None

        delivered = _set_status(client, admin_headers, order_id, "delivered").json()
        assert delivered["order_status"] == "delivered"
        assert delivered["actual_delivery"] is not None
        assert delivered["can_be_returned"] is True
        assert [e["status"] for e in delivered["status_history"]] == [
            "processing",
            "confirmed",
            "shipped",
            "delivered",
        ]
        assert delivered["status_history"][2]["note"] == "Left the warehouse"

    def test_steps_can_be_skipped(self, client, admin_headers, placed_order):
        order, _ = placed_order
        response = _set_status(client, admin_headers, order["_id"], "out_for_delivery")
        assert response.status_code == 200
        assert response.json()["order_status"] == "out_for_delivery"

    def test_backwards_move_rejected(self, client, admin_headers, placed_order):
        order, _ = placed_order
        _set_status(client, admin_headers, order["_id"], "confirmed")

        response = _set_status(client, admin_headers, order["_id"], "processing")
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid status transition: confirmed -> processing"

    def test_same_status_is_noop(self, client, admin_headers, placed_order):
        order, _ = placed_order
        response = _set_status(client, admin_headers, order["_id"], "processing")
        assert response.status_code == 200
        assert len(response.json()["status_history"]) == 1

    def test_terminal_status_is_final(self, client, admin_headers, placed_order):
        order, _ = placed_order
        _set_status(client, admin_headers, order["_id"], "delivered")

        response = _set_status(client, admin_headers, order["_id"], "shipped")
        assert response.status_code == 400
        assert response.json()["message"] == "Cannot change status of a delivered order"

    def test_returned_only_through_refund(self, client, admin_headers, placed_order):
        order, _ = placed_order
        response = _set_status(client, admin_headers, order["_id"], "returned")
        assert response.status_code == 400
        assert response.json()["message"] == "Orders are returned through the refund endpoint"

    def test_admin_cancel_restocks(self, client, admin_headers, placed_order, refresh):
        order, product = placed_order
        response = _set_status(client, admin_headers, order["_id"], "cancelled")
        assert response.status_code == 200
        assert response.json()["status_history"][-1]["note"] == "Cancelled by admin"
        assert refresh(product).stock == 5

    def test_unknown_status(self, client, admin_headers, placed_order):
        order, _ = placed_order
        response = _set_status(client, admin_headers, order["_id"], "lost")
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_customer_cannot_change_status(self, client, customer_headers, placed_order):
        order, _ = placed_order
        response = _set_status(client, customer_headers, order["_id"], "confirmed")
        assert response.status_code == 403


class TestRefund:
    def test_full_refund(self, client, admin_headers, placed_order, gateway, refresh):
        order, product = placed_order
        txn = gateway.charges[0][2].transaction_id

        response = client.post(
            f"/api/v1/orders/{order['_id']}/refund",
            json={"reason": "Damaged"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["order_status"] == "returned"
        assert data["payment_status"] == "refunded"
        assert data["refund_amount"] == 54.0
        assert data["refunded_at"] is not None
        assert data["status_history"][-1]["note"] == "Refund processed: Damaged"
        assert gateway.refunds == [(txn, 54.0)]
        assert refresh(product).stock == 5

    def test_partial_refund(self, client, admin_headers, placed_order):
        order, _ = placed_order
        response = client.post(
            f"/api/v1/orders/{order['_id']}/refund", json={"amount": 10}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["refund_amount"] == 10.0

    def test_amount_above_total(self, client, admin_headers, placed_order, gateway):
        order, _ = placed_order
        response = client.post(
            f"/api/v1/orders/{order['_id']}/refund", json={"amount": 54.01}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Refund amount cannot exceed the order total"
        assert gateway.refunds == []

    def test_refund_twice(self, client, admin_headers, placed_order):
        order, _ = placed_order
        client.post(f"/api/v1/orders/{order['_id']}/refund", headers=admin_headers)
        response = client.post(f"/api/v1/orders/{order['_id']}/refund", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == f"Order {order['orderNumber']} cannot be refunded"

    def test_cancelled_order_cannot_be_refunded(self, client, customer_headers, admin_headers, placed_order):
        order, _ = placed_order
        client.put(f"/api/v1/orders/{order['_id']}/cancel", headers=customer_headers)
        response = client.post(f"/api/v1/orders/{order['_id']}/refund", headers=admin_headers)
        assert response.status_code == 400

    def test_processor_failure(self, client, admin_headers, placed_order, gateway, refresh):
        order, product = placed_order
        gateway.refunds_fail = True

        response = client.post(f"/api/v1/orders/{order['_id']}/refund", headers=admin_headers)
        assert response.status_code == 502
        assert response.json()["message"] == "Processor unavailable"

        detail = client.get(f"/api/v1/orders/{order['_id']}", headers=admin_headers).json()
        assert detail["order_status"] == "processing"
        assert detail["payment_status"] == "completed"
        assert refresh(product).stock == 3


class TestAdminOrderList:
    def test_list_with_stats(
        self, client, admin_headers, customer_headers, make_product, add_to_cart, place_order
    ):
        product = make_product(price=20.0, stock=10)
        add_to_cart(customer_headers, product, 2)
        first = place_order(customer_headers).json()["order"]
        add_to_cart(customer_headers, product, 1)
        place_order(customer_headers)
        client.put(f"/api/v1/orders/{first['_id']}/cancel", headers=customer_headers)

        data = client.get("/api/v1/orders", headers=admin_headers).json()
        assert len(data["orders"]) == 2
        assert data["stats"]["total_orders"] == 2
        assert data["stats"]["total_revenue"] == 86.0
        assert data["stats"]["average_order_value"] == 43.0

        cancelled = client.get("/api/v1/orders?status=cancelled", headers=admin_headers).json()
        assert [o["id"] for o in cancelled["orders"]] == [first["_id"]]
        assert cancelled["stats"]["total_revenue"] == 54.0

    def test_customer_cannot_list_all(self, client, customer_headers):
        assert client.get("/api/v1/orders", headers=customer_headers).status_code == 403
