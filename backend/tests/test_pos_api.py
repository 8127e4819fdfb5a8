"""
Point-of-sale flow over HTTP: cart, checkout and the sales endpoints.

The cart rides on the session cookie, so every test drives it through one
test client.
"""

from conftest import customer_totals, stock_of
from retailpos.extensions import db
from retailpos.models import Sale


def add(client, headers, product_id, times=1):
    response = None
    for _ in range(times):
        response = client.post("/api/cart/items", json={"productId": product_id}, headers=headers)
    return response


class TestCartApi:
    def test_requires_auth(self, client, db_session):
        assert client.get("/api/cart").status_code == 401

    def test_add_until_stock_runs_out(self, client, cashier_headers, catalog):
        response = add(client, cashier_headers, catalog["b"], times=3)
        assert response.status_code == 200
        assert response.json["items"][0]["quantity"] == 3
        assert response.json["total"] == 15.0

        response = add(client, cashier_headers, catalog["b"])
        assert response.status_code == 409
        assert response.json["error"].startswith("Insufficient stock for Product B")

        cart = client.get("/api/cart", headers=cashier_headers).json
        assert cart["items"][0]["quantity"] == 3

    def test_unknown_or_deleted_product(self, client, cashier_headers, admin_headers, catalog):
        assert add(client, cashier_headers, 9999).status_code == 404

        client.delete(f"/api/products/{catalog['a']}", headers=admin_headers)
        assert add(client, cashier_headers, catalog["a"]).status_code == 404

    def test_product_id_must_be_integer(self, client, cashier_headers, catalog):
        response = client.post("/api/cart/items", json={"productId": "1"}, headers=cashier_headers)
        assert response.status_code == 400

    def test_set_quantity_clamps_to_stock(self, client, cashier_headers, catalog):
        add(client, cashier_headers, catalog["b"])
        response = client.put(f"/api/cart/items/{catalog['b']}", json={"quantity": 10}, headers=cashier_headers)

        assert response.status_code == 200
        assert response.json["clamped"] is True
        assert response.json["message"] == "Insufficient stock. Maximum of 3 units for Product B."
        assert response.json["items"][0]["quantity"] == 3

    def test_set_quantity_zero_removes(self, client, cashier_headers, catalog):
        add(client, cashier_headers, catalog["a"])
        add(client, cashier_headers, catalog["b"])
        response = client.put(f"/api/cart/items/{catalog['a']}", json={"quantity": 0}, headers=cashier_headers)

        assert response.json["clamped"] is False
        assert [line["productId"] for line in response.json["items"]] == [catalog["b"]]

    def test_remove_and_clear(self, client, cashier_headers, catalog):
        add(client, cashier_headers, catalog["a"])
        add(client, cashier_headers, catalog["b"])

        response = client.delete(f"/api/cart/items/{catalog['a']}", headers=cashier_headers)
        assert response.json["total"] == 5.0

        response = client.delete("/api/cart", headers=cashier_headers)
        assert response.json == {"items": [], "total": 0.0}

    def test_unreadable_cart_is_replaced_on_add(self, client, cashier_headers, catalog):
        with client.session_transaction() as sess:
            sess["cart"] = [{"product_id": "x"}]

        response = add(client, cashier_headers, catalog["a"])
        assert response.status_code == 200
        assert [line["productId"] for line in response.json["items"]] == [catalog["a"]]
        assert response.json["total"] == 10.0


class TestCheckoutApi:
    def fill_cart(self, client, headers, catalog):
        add(client, headers, catalog["a"], times=2)
        add(client, headers, catalog["b"])

    def test_cash_checkout(self, client, cashier_headers, catalog, customer):
        self.fill_cart(client, cashier_headers, catalog)

        response = client.post("/api/cart/checkout", json={
            "paymentMethod": "cash",
            "amountReceived": 30,
            "customerId": customer.id,
        }, headers=cashier_headers)

        assert response.status_code == 201
        body = response.json
        assert body["change"] == 5.0
        assert body["sale"]["total"] == 25.0
        assert body["sale"]["pointsEarned"] == 2
        assert body["sale"]["customerId"] == customer.id
        assert body["sale"]["date"].endswith("Z")
        assert body["sale"]["payments"] == [
            {"method": "cash", "amount": 25.0, "transactionId": None, "change": 5.0}
        ]

        assert stock_of(catalog["a"]) == 3
        assert stock_of(catalog["b"]) == 2
        assert customer_totals(customer.id) == (1, 2500, 2)
        assert client.get("/api/cart", headers=cashier_headers).json["items"] == []

    def test_blocked_checkout_keeps_cart(self, client, cashier_headers, catalog, customer):
        self.fill_cart(client, cashier_headers, catalog)

        response = client.post("/api/cart/checkout", json={
            "paymentMethod": "cash",
            "amountReceived": 20,
            "customerId": customer.id,
        }, headers=cashier_headers)

        assert response.status_code == 400
        assert response.json["error"] == "Amount received is insufficient or missing."
        assert db.session.query(Sale).count() == 0
        assert stock_of(catalog["a"]) == 5
        assert customer_totals(customer.id) == (0, 0, 0)
        assert client.get("/api/cart", headers=cashier_headers).json["total"] == 25.0

    def test_empty_cart(self, client, cashier_headers, db_session):
        response = client.post("/api/cart/checkout", json={"paymentMethod": "pix"}, headers=cashier_headers)
        assert response.status_code == 400
        assert response.json["error"] == "The cart is empty."

    def test_split_payment(self, client, cashier_headers, catalog):
        self.fill_cart(client, cashier_headers, catalog)

        response = client.post("/api/cart/checkout", json={
            "payments": [
                {"method": "credit", "amount": 20, "transactionId": "AUTH-1"},
                {"method": "cash", "amount": 10},
            ],
        }, headers=cashier_headers)

        assert response.status_code == 201
        assert response.json["change"] == 5.0
        methods = {p["method"]: p for p in response.json["sale"]["payments"]}
        assert methods["credit"]["amount"] == 20.0
        assert methods["cash"] == {"method": "cash", "amount": 5.0, "transactionId": None, "change": 5.0}

    def test_stock_conflict_keeps_cart(self, client, cashier_headers, admin_headers, catalog):
        self.fill_cart(client, cashier_headers, catalog)
        client.put(f"/api/products/{catalog['a']}", json={"stock": 1}, headers=admin_headers)

        response = client.post("/api/cart/checkout", json={"paymentMethod": "debit"}, headers=cashier_headers)

        assert response.status_code == 409
        assert response.json["details"]["items"][0]["product_id"] == catalog["a"]
        assert db.session.query(Sale).count() == 0
        assert stock_of(catalog["b"]) == 3
        assert len(client.get("/api/cart", headers=cashier_headers).json["items"]) == 2


class TestSalesApi:
    def test_direct_sale_uses_catalog_price(self, client, cashier_headers, catalog):
        response = client.post("/api/sales", json={
            "items": [{"productId": catalog["a"], "quantity": 2}],
            "payments": [{"method": "pix", "amount": 20}],
        }, headers=cashier_headers)

        assert response.status_code == 201
        assert response.json["total"] == 20.0
        assert response.json["items"][0]["price"] == 10.0
        assert stock_of(catalog["a"]) == 3

    def test_direct_sale_stock_conflict(self, client, cashier_headers, catalog):
        response = client.post("/api/sales", json={
            "items": [{"productId": catalog["b"], "quantity": 4}],
        }, headers=cashier_headers)

        assert response.status_code == 409
        assert stock_of(catalog["b"]) == 3
        assert db.session.query(Sale).count() == 0

    def test_sales_pages_need_permission(self, client, cashier_headers, catalog):
        response = client.get("/api/sales", headers=cashier_headers)
        assert response.status_code == 403
        assert response.json["required_permission"] == "/sales"

    def test_correct_and_delete_sale(self, client, admin_headers, catalog, customer):
        created = client.post("/api/sales", json={
            "items": [{"productId": catalog["a"], "quantity": 1}],
            "customerId": customer.id,
        }, headers=admin_headers).json

        response = client.put(f"/api/sales/{created['id']}", json={"date": "2024-03-01T10:00:00Z"},
                              headers=admin_headers)
        assert response.status_code == 200
        assert response.json["date"] == "2024-03-01T10:00:00Z"

        response = client.put(f"/api/sales/{created['id']}", json={"total": 1}, headers=admin_headers)
        assert response.status_code == 400

        listed = client.get("/api/sales?start=2024-03-01&end=2024-03-01", headers=admin_headers).json
        assert [s["id"] for s in listed["items"]] == [created["id"]]

        assert client.delete(f"/api/sales/{created['id']}", headers=admin_headers).status_code == 200
        assert stock_of(catalog["a"]) == 5
        assert customer_totals(customer.id) == (0, 0, 0)
        assert client.get(f"/api/sales/{created['id']}", headers=admin_headers).status_code == 404

    def test_points_earned_cannot_be_chosen_by_caller(self, client, cashier_headers, catalog, customer):
        for points in (-100, 5000):
            response = client.post("/api/sales", json={
                "items": [{"productId": catalog["a"], "quantity": 1}],
                "customerId": customer.id,
                "pointsEarned": points,
            }, headers=cashier_headers)
            assert response.status_code == 400

        assert customer_totals(customer.id) == (0, 0, 0)
        assert stock_of(catalog["a"]) == 5

        response = client.post("/api/sales", json={
            "items": [{"productId": catalog["a"], "quantity": 1}],
            "customerId": customer.id,
            "pointsEarned": 1,
        }, headers=cashier_headers)
        assert response.status_code == 201
        assert customer_totals(customer.id) == (1, 1000, 1)
