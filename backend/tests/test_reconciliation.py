import pytest
from sqlalchemy import update

from conftest import customer_totals
from retailpos.extensions import db
from retailpos.models import Customer
from retailpos.services import customers_service, reconciliation_service
from retailpos.services.sales_service import PaymentEntry, SaleDraft, SaleDraftItem, commit_sale
from retailpos.validation import NotFoundError


def ring_up(user, product_id, quantity, customer_id):
    return commit_sale(SaleDraft(
        items=[SaleDraftItem(product_id, quantity)],
        payments=[PaymentEntry("debit", quantity * 1000)],
        user_id=user.id,
        customer_id=customer_id,
    ))


class TestRecalculation:
    def test_repairs_drift_from_sale_history(self, cashier_user, catalog, customer):
        ring_up(cashier_user, catalog["a"], 2, customer.id)
        ring_up(cashier_user, catalog["a"], 1, customer.id)
        assert customer_totals(customer.id) == (2, 3000, 3)

        db.session.execute(
            update(Customer).where(Customer.id == customer.id)
            .values(total_purchases=9, total_spent_cents=1, points=0)
        )
        db.session.commit()

        repaired = customers_service.recalculate_totals(customer.id)

        assert (repaired["total_purchases"], repaired["total_spent_cents"], repaired["points"]) == (2, 3000, 3)
        assert customer_totals(customer.id) == (2, 3000, 3)

    def test_idempotent(self, cashier_user, catalog, customer):
        ring_up(cashier_user, catalog["a"], 1, customer.id)

        first = reconciliation_service.recalculate_customer_totals(customer.id)
        second = reconciliation_service.recalculate_customer_totals(customer.id)

        assert first == second
        assert customer_totals(customer.id) == (1, 1000, 1)

    def test_customer_without_sales_resets_to_zero(self, customer):
        db.session.execute(
            update(Customer).where(Customer.id == customer.id)
            .values(total_purchases=4, total_spent_cents=800, points=7)
        )
        db.session.commit()

        reconciliation_service.recalculate_customer_totals(customer.id)

        assert customer_totals(customer.id) == (0, 0, 0)

    def test_small_sale_earns_no_points(self, cashier_user, catalog, customer):
        commit_sale(SaleDraft(
            items=[SaleDraftItem(catalog["b"], 1)],
            payments=[PaymentEntry("pix", 500)],
            user_id=cashier_user.id,
            customer_id=customer.id,
        ))
        assert reconciliation_service.customer_totals_from_sales(customer.id) == {
            "total_purchases": 1,
            "total_spent_cents": 500,
            "points": 0,
        }

    def test_unknown_customer(self, db_session):
        with pytest.raises(NotFoundError):
            reconciliation_service.recalculate_customer_totals(404)
