from datetime import date, datetime

import pytest

from retailpos.models import Expense
from retailpos.services import reporting_service
from retailpos.services.sales_service import PaymentEntry, SaleDraft, SaleDraftItem, commit_sale
from retailpos.validation import ValidationError


@pytest.fixture
def history(db_session, cashier_user, catalog, customer):
    """Three sales across two days of May 2024 plus two expenses."""
    def sell(product_id, qty, when, customer_id=None):
        return commit_sale(SaleDraft(
            items=[SaleDraftItem(product_id, qty)],
            payments=[],
            user_id=cashier_user.id,
            customer_id=customer_id,
            date=when,
        ))

    sell(catalog["a"], 2, datetime(2024, 5, 1, 10, 0), customer.id)
    sell(catalog["b"], 1, datetime(2024, 5, 1, 16, 0))
    sell(catalog["a"], 1, datetime(2024, 5, 3, 9, 0), customer.id)

    db_session.add_all([
        Expense(date=datetime(2024, 5, 2), description="Rent", amount_cents=1500, category="Fixed"),
        Expense(date=datetime(2024, 6, 1), description="Power", amount_cents=700, category="Utilities"),
    ])
    db_session.commit()
    return {"customer": customer.id}


class TestFinancial:
    def test_monthly(self, history):
        summary = reporting_service.monthly_summary(2024, 5)
        assert summary["period"] == "2024-05"
        assert summary["sales_count"] == 3
        assert summary["income_cents"] == 3500
        assert summary["expenses_cents"] == 1500
        assert summary["balance_cents"] == 2000

    def test_range_is_inclusive_of_end_day(self, history):
        summary = reporting_service.financial_summary("2024-05-01", "2024-05-01")
        assert (summary["sales_count"], summary["income_cents"], summary["expenses_cents"]) == (2, 2500, 0)

    def test_bad_ranges(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.financial_summary("2024-05-02", "2024-05-01")
        with pytest.raises(ValidationError):
            reporting_service.monthly_summary(2024, 13)
        with pytest.raises(ValidationError):
            reporting_service.monthly_summary(0, 1)


class TestDashboard:
    def test_figures(self, history, catalog):
        board = reporting_service.dashboard(today=date(2024, 5, 3), days=3)

        assert board["sales_count"] == 3
        assert board["sales_total_cents"] == 3500
        assert board["average_ticket_cents"] == 1167
        assert board["product_count"] == 2
        assert board["customer_count"] == 1
        assert [row["id"] for row in board["low_stock"]] == [catalog["b"]]
        assert board["sales_per_day"] == [
            {"date": date(2024, 5, 1), "sales_count": 2, "total_cents": 2500},
            {"date": date(2024, 5, 2), "sales_count": 0, "total_cents": 0},
            {"date": date(2024, 5, 3), "sales_count": 1, "total_cents": 1000},
        ]
        assert board["sales_by_category"] == [
            {"category": "Groceries", "quantity": 3, "total_cents": 3000},
            {"category": "Snacks", "quantity": 1, "total_cents": 500},
        ]

    def test_days_is_bounded(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.dashboard(today=date(2024, 1, 1), days=reporting_service.MAX_DASHBOARD_DAYS + 1)

    def test_empty_store(self, db_session):
        board = reporting_service.dashboard(today=date(2024, 1, 1), days=1)
        assert board["sales_count"] == 0
        assert board["average_ticket_cents"] == 0
        assert board["sales_per_day"] == [{"date": date(2024, 1, 1), "sales_count": 0, "total_cents": 0}]


class TestOtherReports:
    def test_customer_report(self, history):
        [row] = reporting_service.customer_report()
        assert row["customer_id"] == history["customer"]
        assert (row["sales_count"], row["total_spent_cents"], row["average_ticket_cents"]) == (2, 3000, 1500)

        [row] = reporting_service.customer_report("2024-05-02", "2024-05-31")
        assert (row["sales_count"], row["total_spent_cents"]) == (1, 1000)

    def test_inventory(self, catalog):
        report = reporting_service.inventory_report()
        # A: 5 x 6.00, B: 3 x 2.00
        assert report["total_value_cents"] == 3600
        assert [r["is_low_stock"] for r in report["rows"]] == [False, True]

    def test_expenses_by_category(self, history):
        rows = reporting_service.expenses_by_category()
        assert rows == [
            {"category": "Fixed", "count": 1, "total_cents": 1500},
            {"category": "Utilities", "count": 1, "total_cents": 700},
        ]
