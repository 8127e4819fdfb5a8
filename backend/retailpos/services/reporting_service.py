# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date, datetime, time

from flask import current_app
from sqlalchemy import and_, func

from ..extensions import db
from ..models import Customer, Expense, Product, Sale, SaleItem
from ..time_utils import day_bounds, last_n_days, month_bounds, to_utc_z, utcnow
from ..validation import ValidationError

MIN_YEAR = 1
MAX_YEAR = 9998  # month_bounds needs the following January
MAX_DASHBOARD_DAYS = 366


def _sum_sales(start_dt: datetime | None, end_dt: datetime | None) -> tuple[int, int]:
    query = db.session.query(func.count(Sale.id), func.coalesce(func.sum(Sale.total_cents), 0))
    if start_dt:
        query = query.filter(Sale.date >= start_dt)
    if end_dt:
        query = query.filter(Sale.date <= end_dt)
    count, total = query.one()
    return int(count or 0), int(total or 0)


def _sum_expenses(start_dt: datetime | None, end_dt: datetime | None) -> int:
    query = db.session.query(func.coalesce(func.sum(Expense.amount_cents), 0))
    if start_dt:
        query = query.filter(Expense.date >= start_dt)
    if end_dt:
        query = query.filter(Expense.date <= end_dt)
    return int(query.scalar() or 0)


def _average(total: int, count: int) -> int:
    return round(total / count) if count else 0


def _financial_summary(start_dt: datetime | None, end_dt: datetime | None, label: str) -> dict:
    sales_count, income = _sum_sales(start_dt, end_dt)
    expenses = _sum_expenses(start_dt, end_dt)
    return {
        "period": label,
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "sales_count": sales_count,
        "income_cents": income,
        "expenses_cents": expenses,
        "balance_cents": income - expenses,
    }


def financial_summary(start: str | None, end: str | None) -> dict:
    """Income (sale totals), expenses and balance for an inclusive date range."""
    start_dt, end_dt = day_bounds(start, end)
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must be before end")
    label = f"{start or '...'} - {end or '...'}"
    return _financial_summary(start_dt, end_dt, label)


def monthly_summary(year: int, month: int) -> dict:
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")
    start_dt, end_dt = month_bounds(year, month)
    return _financial_summary(start_dt, end_dt, f"{year:04d}-{month:02d}")


def sales_per_day(end_day: date, days: int) -> list[dict]:
    """Sale totals for the last ``days`` days ending at ``end_day``, zero-filled."""
    window = last_n_days(end_day, days)
    start_dt = datetime.combine(window[0], time.min)
    end_dt = datetime.combine(window[-1], time.max)

    buckets = {day: {"date": day, "sales_count": 0, "total_cents": 0} for day in window}
    rows = (
        db.session.query(Sale.date, Sale.total_cents)
        .filter(Sale.date >= start_dt, Sale.date <= end_dt)
        .all()
    )
    for sale_date, total_cents in rows:
        bucket = buckets.get(sale_date.date())
        if bucket is not None:
            bucket["sales_count"] += 1
            bucket["total_cents"] += total_cents
    return [buckets[day] for day in window]


def sales_by_category(start_dt: datetime | None = None, end_dt: datetime | None = None) -> list[dict]:
    category = func.coalesce(Product.custom_category, Product.category)
    query = (
        db.session.query(
            category.label("category"),
            func.coalesce(func.sum(SaleItem.quantity), 0).label("quantity"),
            func.coalesce(func.sum(SaleItem.subtotal_cents), 0).label("total_cents"),
        )
        .select_from(SaleItem)
        .join(Product, Product.id == SaleItem.product_id)
        .join(Sale, Sale.id == SaleItem.sale_id)
    )
    if start_dt:
        query = query.filter(Sale.date >= start_dt)
    if end_dt:
        query = query.filter(Sale.date <= end_dt)
    rows = query.group_by(category).order_by(func.sum(SaleItem.subtotal_cents).desc()).all()
    return [
        {
            "category": row.category,
            "quantity": int(row.quantity or 0),
            "total_cents": int(row.total_cents or 0),
        }
        for row in rows
    ]


def dashboard(today: date | None = None, days: int | None = None) -> dict:
    if days is None:
        days = current_app.config.get("DASHBOARD_DAYS", 7)
    if not 1 <= days <= MAX_DASHBOARD_DAYS:
        raise ValidationError(f"days must be between 1 and {MAX_DASHBOARD_DAYS}")
    today = today or utcnow().date()

    sales_count, sales_total = _sum_sales(None, None)
    product_count = db.session.query(func.count(Product.id)).filter(Product.is_active.is_(True)).scalar()
    customer_count = db.session.query(func.count(Customer.id)).scalar()

    low_stock = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock <= Product.min_stock)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )

    return {
        "sales_count": sales_count,
        "product_count": int(product_count or 0),
        "customer_count": int(customer_count or 0),
        "sales_total_cents": sales_total,
        "average_ticket_cents": _average(sales_total, sales_count),
        "low_stock": [
            {"id": p.id, "name": p.name, "stock": p.stock, "min_stock": p.min_stock}
            for p in low_stock
        ],
        "sales_per_day": sales_per_day(today, days),
        "sales_by_category": sales_by_category(),
    }


def customer_report(start: str | None = None, end: str | None = None) -> list[dict]:
    """Per-customer totals derived from sales, sorted by total spent (descending)."""
    start_dt, end_dt = day_bounds(start, end)
    sale_filters = [Sale.customer_id == Customer.id]
    if start_dt:
        sale_filters.append(Sale.date >= start_dt)
    if end_dt:
        sale_filters.append(Sale.date <= end_dt)

    spent = func.coalesce(func.sum(Sale.total_cents), 0)
    rows = (
        db.session.query(
            Customer.id,
            Customer.name,
            Customer.points,
            func.count(Sale.id).label("sales_count"),
            spent.label("total_spent_cents"),
        )
        .outerjoin(Sale, and_(*sale_filters))
        .group_by(Customer.id, Customer.name, Customer.points)
        .order_by(spent.desc(), Customer.name.asc())
        .all()
    )
    return [
        {
            "customer_id": row.id,
            "name": row.name,
            "points": row.points,
            "sales_count": int(row.sales_count or 0),
            "total_spent_cents": int(row.total_spent_cents or 0),
            "average_ticket_cents": _average(int(row.total_spent_cents or 0), int(row.sales_count or 0)),
        }
        for row in rows
    ]


def inventory_report() -> dict:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.name.asc())
        .all()
    )
    rows = []
    total_value_cents = 0
    for product in products:
        value = product.stock * product.cost_cents
        total_value_cents += value
        rows.append({
            "product_id": product.id,
            "name": product.name,
            "category": product.effective_category,
            "stock": product.stock,
            "min_stock": product.min_stock,
            "cost_cents": product.cost_cents,
            "price_cents": product.price_cents,
            "inventory_value_cents": value,
            "is_low_stock": product.is_low_stock,
        })
    return {"total_value_cents": total_value_cents, "rows": rows}


def expenses_by_category(start: str | None = None, end: str | None = None) -> list[dict]:
    start_dt, end_dt = day_bounds(start, end)
    total = func.coalesce(func.sum(Expense.amount_cents), 0)
    query = db.session.query(Expense.category, func.count(Expense.id).label("count"), total.label("total_cents"))
    if start_dt:
        query = query.filter(Expense.date >= start_dt)
    if end_dt:
        query = query.filter(Expense.date <= end_dt)
    rows = query.group_by(Expense.category).order_by(total.desc()).all()
    return [
        {"category": row.category, "count": int(row.count or 0), "total_cents": int(row.total_cents or 0)}
        for row in rows
    ]
