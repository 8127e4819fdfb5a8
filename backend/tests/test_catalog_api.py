from conftest import stock_of
from retailpos.extensions import db
from retailpos.models import Expense, Product, Supplier
from retailpos.services.sales_service import SaleDraft, SaleDraftItem, commit_sale


NEW_PRODUCT = {
    "name": "Rice 5kg",
    "price": 24.9,
    "cost": 18.0,
    "stock": 12,
    "minStock": 4,
    "category": "Groceries",
}


class TestProductsApi:
    def test_any_operator_can_read(self, client, cashier_headers, catalog):
        response = client.get("/api/products", headers=cashier_headers)
        assert response.status_code == 200
        assert response.json["count"] == 2
        product_a = next(p for p in response.json["items"] if p["id"] == catalog["a"])
        assert product_a["price"] == 10.0
        assert product_a["minStock"] == 1

    def test_create_and_barcode_lookup(self, client, admin_headers, db_session):
        response = client.post("/api/products", json={**NEW_PRODUCT, "barcode": "111"}, headers=admin_headers)
        assert response.status_code == 201
        assert response.json["price"] == 24.9

        assert client.get("/api/products/barcode/111", headers=admin_headers).json["name"] == "Rice 5kg"
        assert client.get("/api/products/barcode/999", headers=admin_headers).status_code == 404

    def test_duplicate_barcode_conflicts(self, client, admin_headers, catalog):
        response = client.post("/api/products", json={**NEW_PRODUCT, "barcode": "7890000000011"},
                               headers=admin_headers)
        assert response.status_code == 409

    def test_validation_errors(self, client, admin_headers, db_session):
        assert client.post("/api/products", json={"name": "Only a name"}, headers=admin_headers).status_code == 400
        assert client.post("/api/products", json={**NEW_PRODUCT, "price": -1}, headers=admin_headers).status_code == 400
        assert client.post("/api/products", json={**NEW_PRODUCT, "isActive": False},
                           headers=admin_headers).status_code == 400
        assert client.post("/api/products", json={**NEW_PRODUCT, "supplierId": 77},
                           headers=admin_headers).status_code == 400

    def test_stock_increment(self, client, admin_headers, catalog):
        response = client.put(f"/api/products/{catalog['a']}", json={"stockIncrement": 5}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json["stock"] == 10

        response = client.put(f"/api/products/{catalog['a']}", json={"stockIncrement": -20}, headers=admin_headers)
        assert response.status_code == 400
        assert stock_of(catalog["a"]) == 10

    def test_soft_delete_keeps_sale_history(self, client, admin_headers, admin_user, catalog):
        commit_sale(SaleDraft(items=[SaleDraftItem(catalog["a"], 1)], payments=[], user_id=admin_user.id))

        assert client.delete(f"/api/products/{catalog['a']}", headers=admin_headers).status_code == 200

        listed = client.get("/api/products", headers=admin_headers).json
        assert catalog["a"] not in [p["id"] for p in listed["items"]]
        everything = client.get("/api/products?includeInactive=true", headers=admin_headers).json
        assert catalog["a"] in [p["id"] for p in everything["items"]]
        assert db.session.query(Product.is_active).filter(Product.id == catalog["a"]).scalar() is False

    def test_low_stock(self, client, cashier_headers, catalog):
        response = client.get("/api/products/low-stock", headers=cashier_headers)
        assert [p["id"] for p in response.json["items"]] == [catalog["b"]]

    def test_writes_need_products_permission(self, client, cashier_user, cashier_headers, catalog):
        cashier_user.permissions = ["/pos"]
        db.session.commit()
        response = client.put(f"/api/products/{catalog['a']}", json={"stock": 1}, headers=cashier_headers)
        assert response.status_code == 403


class TestCustomersApi:
    def test_create_starts_with_empty_aggregates(self, client, cashier_headers, db_session):
        response = client.post("/api/customers", json={
            "name": "Ana", "phone": "11 9999-0000", "email": "ana@example.com", "cpf": "111.222.333-44",
        }, headers=cashier_headers)
        assert response.status_code == 201
        assert (response.json["points"], response.json["totalSpent"], response.json["totalPurchases"]) == (0, 0.0, 0)
        assert response.json["cpf"] == "111.222.333-44"

        response = client.post("/api/customers", json={
            "name": "Ana", "phone": "1", "email": "ana@example.com", "points": 100,
        }, headers=cashier_headers)
        assert response.status_code == 400

    def test_email_unique_case_insensitive(self, client, cashier_headers, customer):
        response = client.post("/api/customers", json={
            "name": "Other", "phone": "1", "email": "MARIA@example.com",
        }, headers=cashier_headers)
        assert response.status_code == 409

    def test_delete_refused_while_sales_exist(self, client, cashier_headers, cashier_user, catalog, customer):
        commit_sale(SaleDraft(items=[SaleDraftItem(catalog["a"], 1)], payments=[],
                              user_id=cashier_user.id, customer_id=customer.id))

        response = client.delete(f"/api/customers/{customer.id}", headers=cashier_headers)
        assert response.status_code == 409
        assert response.json["details"] == {"sale_count": 1}

    def test_sales_history_and_recalculate(self, client, cashier_headers, cashier_user, catalog, customer):
        commit_sale(SaleDraft(items=[SaleDraftItem(catalog["a"], 2)], payments=[],
                              user_id=cashier_user.id, customer_id=customer.id))

        history = client.get(f"/api/customers/{customer.id}/sales", headers=cashier_headers).json
        assert history["count"] == 1
        assert history["items"][0]["total"] == 20.0

        response = client.post(f"/api/customers/{customer.id}/recalculate", headers=cashier_headers)
        assert response.status_code == 200
        assert (response.json["totalPurchases"], response.json["totalSpent"], response.json["points"]) == (1, 20.0, 2)

    def test_search(self, client, cashier_headers, customer):
        found = client.get("/api/customers?q=souza", headers=cashier_headers).json
        assert [c["id"] for c in found["items"]] == [customer.id]
        assert client.get("/api/customers?q=nobody", headers=cashier_headers).json["count"] == 0


class TestSuppliersAndExpensesApi:
    def test_supplier_crud(self, client, admin_headers, db_session):
        response = client.post("/api/suppliers", json={"name": "Acme", "phone": "555"}, headers=admin_headers)
        assert response.status_code == 201
        supplier_id = response.json["id"]

        response = client.put(f"/api/suppliers/{supplier_id}", json={"contactName": "Rita"}, headers=admin_headers)
        assert response.json["contactName"] == "Rita"

        assert client.delete(f"/api/suppliers/{supplier_id}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/suppliers/{supplier_id}", headers=admin_headers).status_code == 404

    def test_supplier_in_use_cannot_be_deleted(self, client, admin_headers, db_session):
        supplier = Supplier(name="Acme", phone="555")
        db_session.add(supplier)
        db_session.commit()
        db_session.add(Product(name="Widget", price_cents=100, cost_cents=50, stock=1, min_stock=0,
                               category="Tools", supplier_id=supplier.id))
        db_session.commit()

        response = client.delete(f"/api/suppliers/{supplier.id}", headers=admin_headers)
        assert response.status_code == 409
        assert response.json["details"] == {"product_count": 1, "expense_count": 0}

    def test_expense_range_filter(self, client, admin_headers, db_session):
        for day, amount in (("2024-04-30T23:00:00Z", 10), ("2024-05-01T12:00:00Z", 20), ("2024-05-02T00:30:00Z", 30)):
            response = client.post("/api/expenses", json={
                "date": day, "description": "Stock", "amount": amount, "category": "Purchases",
            }, headers=admin_headers)
            assert response.status_code == 201

        listed = client.get("/api/expenses?start=2024-05-01&end=2024-05-01", headers=admin_headers).json
        assert [e["amount"] for e in listed["items"]] == [20.0]
        assert client.get("/api/expenses?start=bogus", headers=admin_headers).status_code == 400

    def test_expense_amount_must_be_positive(self, client, admin_headers, db_session):
        response = client.post("/api/expenses", json={
            "date": "2024-05-01", "description": "Refund", "amount": 0, "category": "Misc",
        }, headers=admin_headers)
        assert response.status_code == 400
        assert db_session.query(Expense).count() == 0

    def test_finance_pages_need_permission(self, client, cashier_headers, db_session):
        assert client.get("/api/expenses", headers=cashier_headers).status_code == 403
        assert client.post("/api/suppliers", json={"name": "x", "phone": "1"},
                           headers=cashier_headers).status_code == 403
