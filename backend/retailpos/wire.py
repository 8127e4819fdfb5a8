# Overview: Translation between storage rows (snake_case, cents) and the JSON wire shape (camelCase, decimals).

"""
Wire mapping layer.

Storage rows come from ``Model.to_dict()``: snake_case keys, currency in
integer cents, datetimes as naive UTC ``datetime`` objects.

The JSON API speaks the application shape: camelCase keys, currency as plain
decimal numbers, dates as ISO-8601 strings with a trailing ``Z``.

Every entity has exactly one ``EntityMap``; routes never rename keys by hand.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from .time_utils import parse_iso_datetime, to_utc_z
from .validation import ValidationError


TEXT = "text"
INT = "int"
MONEY = "money"
DATETIME = "datetime"
BOOL = "bool"
LIST = "list"


def money_to_cents(value: Any, key: str = "amount") -> int:
    """Parse a decimal currency value into integer cents; more than two places is an error."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"{key} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{key} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a number")
    cents = amount * 100
    if cents != cents.to_integral_value():
        raise ValidationError(f"{key} must have at most two decimal places")
    return int(cents)


def cents_to_money(cents: int | None) -> float | None:
    if cents is None:
        return None
    return float(Decimal(cents) / 100)


def _to_int(value: Any, key: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    raise ValidationError(f"{key} must be an integer")


@dataclass(frozen=True)
class WireField:
    wire: str
    column: str
    kind: str = TEXT
    read_only: bool = False


class EntityMap:
    def __init__(self, name: str, fields: Iterable[WireField]):
        self.name = name
        self.fields = tuple(fields)
        self._by_wire = {f.wire: f for f in self.fields}
        self._by_column = {f.column: f for f in self.fields}

    def column_for(self, wire_key: str) -> str:
        return self._by_wire[wire_key].column

    def to_wire(self, row: dict) -> dict:
        out: dict = {}
        for f in self.fields:
            if f.column not in row:
                continue
            value = row[f.column]
            if f.kind == MONEY:
                value = cents_to_money(value)
            elif f.kind == DATETIME:
                value = to_utc_z(value) if isinstance(value, datetime) else value
            elif f.kind == LIST and value is not None:
                value = list(value)
            out[f.wire] = value
        return out

    def from_wire(self, payload: Any, *, allow_read_only: bool = False) -> dict:
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        patch: dict = {}
        for key, raw in payload.items():
            f = self._by_wire.get(key)
            if f is None:
                raise ValidationError(f"Field not allowed: {key}")
            if f.read_only and not allow_read_only:
                raise ValidationError(f"Field is read-only: {key}")
            patch[f.column] = self._parse(f, raw)
        return patch

    def _parse(self, f: WireField, raw: Any) -> Any:
        if raw is None:
            return None
        if f.kind == MONEY:
            return money_to_cents(raw, f.wire)
        if f.kind == INT:
            return _to_int(raw, f.wire)
        if f.kind == DATETIME:
            if not isinstance(raw, str):
                raise ValidationError(f"{f.wire} must be an ISO-8601 datetime")
            try:
                dt = parse_iso_datetime(raw)
            except ValueError:
                raise ValidationError(f"{f.wire} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{f.wire} must be an ISO-8601 datetime")
            return dt
        if f.kind == BOOL:
            if not isinstance(raw, bool):
                raise ValidationError(f"{f.wire} must be a boolean")
            return raw
        if f.kind == LIST:
            if not isinstance(raw, list) or not all(isinstance(v, str) for v in raw):
                raise ValidationError(f"{f.wire} must be a list of strings")
            return list(raw)
        if not isinstance(raw, (str, int, float)) or isinstance(raw, bool):
            raise ValidationError(f"{f.wire} must be a string")
        return str(raw)


PRODUCT = EntityMap("product", [
    WireField("id", "id", INT, read_only=True),
    WireField("name", "name"),
    WireField("price", "price_cents", MONEY),
    WireField("cost", "cost_cents", MONEY),
    WireField("stock", "stock", INT),
    WireField("minStock", "min_stock", INT),
    WireField("category", "category"),
    WireField("customCategory", "custom_category"),
    WireField("imageUrl", "image_url"),
    WireField("supplierId", "supplier_id", INT),
    WireField("barcode", "barcode"),
    WireField("isActive", "is_active", BOOL, read_only=True),
])

CUSTOMER = EntityMap("customer", [
    WireField("id", "id", INT, read_only=True),
    WireField("name", "name"),
    WireField("phone", "phone"),
    WireField("email", "email"),
    WireField("address", "address"),
    WireField("cpf", "tax_id"),
    WireField("customCategory", "custom_category"),
    WireField("points", "points", INT, read_only=True),
    WireField("totalSpent", "total_spent_cents", MONEY, read_only=True),
    WireField("totalPurchases", "total_purchases", INT, read_only=True),
])

SUPPLIER = EntityMap("supplier", [
    WireField("id", "id", INT, read_only=True),
    WireField("name", "name"),
    WireField("contactName", "contact_name"),
    WireField("phone", "phone"),
    WireField("email", "email"),
    WireField("address", "address"),
])

EXPENSE = EntityMap("expense", [
    WireField("id", "id", INT, read_only=True),
    WireField("date", "date", DATETIME),
    WireField("description", "description"),
    WireField("amount", "amount_cents", MONEY),
    WireField("category", "category"),
    WireField("supplierId", "supplier_id", INT),
])

SALE_ITEM = EntityMap("sale_item", [
    WireField("productId", "product_id", INT),
    WireField("quantity", "quantity", INT),
    WireField("price", "unit_price_cents", MONEY),
    WireField("subtotal", "subtotal_cents", MONEY),
])

PAYMENT = EntityMap("payment", [
    WireField("method", "method"),
    WireField("amount", "amount_cents", MONEY),
    WireField("transactionId", "transaction_id"),
    WireField("change", "change_cents", MONEY),
])

SALE = EntityMap("sale", [
    WireField("id", "id", INT, read_only=True),
    WireField("date", "date", DATETIME),
    WireField("total", "total_cents", MONEY),
    WireField("customerId", "customer_id", INT),
    WireField("userId", "user_id", INT),
    WireField("pointsEarned", "points_earned", INT),
])

USER = EntityMap("user", [
    WireField("id", "id", INT, read_only=True),
    WireField("username", "username"),
    WireField("name", "name"),
    WireField("email", "email"),
    WireField("password", "password"),
    WireField("role", "role"),
    WireField("permissions", "permissions", LIST),
    WireField("profilePictureUrl", "profile_picture_url"),
    WireField("points", "points", INT, read_only=True),
])

SITE_SETTINGS = EntityMap("site_settings", [
    WireField("companyName", "company_name"),
    WireField("companyPhone", "company_phone"),
    WireField("companyEmail", "company_email"),
    WireField("companyAddress", "company_address"),
])


def sale_to_wire(row: dict) -> dict:
    """Sale rows carry nested ``items`` and ``payments`` lists of storage rows."""
    out = SALE.to_wire(row)
    out["items"] = [SALE_ITEM.to_wire(item) for item in row.get("items", [])]
    out["payments"] = [PAYMENT.to_wire(p) for p in row.get("payments", [])]
    return out


def sale_from_wire(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    body = dict(payload)
    items = body.pop("items", [])
    payments = body.pop("payments", [])
    if not isinstance(items, list) or not isinstance(payments, list):
        raise ValidationError("items and payments must be lists")
    patch = SALE.from_wire(body, allow_read_only=True)
    patch["items"] = [SALE_ITEM.from_wire(item) for item in items]
    patch["payments"] = [PAYMENT.from_wire(p) for p in payments]
    return patch


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def report_to_wire(value: Any) -> Any:
    """
    Generic mapping for report payloads, which are not entities.

    Keys are camelCased, ``*_cents`` keys lose the suffix and become decimal
    money, and datetimes become ISO strings with ``Z``.
    """
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            if key.endswith("_cents"):
                out[_camel(key[:-len("_cents")])] = cents_to_money(item)
            else:
                out[_camel(key)] = report_to_wire(item)
        return out
    if isinstance(value, (list, tuple)):
        return [report_to_wire(item) for item in value]
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


CART_LINE = EntityMap("cart_line", [
    WireField("productId", "product_id", INT),
    WireField("name", "name"),
    WireField("price", "unit_price_cents", MONEY),
    WireField("quantity", "quantity", INT),
    WireField("stock", "stock", INT),
    WireField("subtotal", "subtotal_cents", MONEY),
])


def cart_to_wire(row: dict) -> dict:
    return {
        "items": [CART_LINE.to_wire(line) for line in row.get("items", [])],
        "total": cents_to_money(row.get("total_cents", 0)),
    }
