# Overview: In-memory checkout cart with stock constraints checked at add time.

"""
Cart

A cart is a transient list of lines scoped to one checkout session. It is
never persisted to the database; the web layer stores it in the signed
session cookie through ``to_session`` / ``from_session``.

Stock checks here are advisory: they compare against the product record the
caller passes in (a snapshot). The authoritative check is the conditional
stock decrement performed when the sale is committed.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict


class CartError(Exception):
    """Raised for invalid cart operations."""


class InsufficientStockError(CartError):
    """Raised when a line cannot grow because the product is out of stock."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class CartLine:
    product_id: int
    name: str
    unit_price_cents: int
    quantity: int
    # Stock seen the last time this product was read from the catalog
    stock: int

    @property
    def subtotal_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@dataclass(frozen=True)
class CartAdjustment:
    """Outcome of set_quantity: the applied quantity and whether it was clamped."""
    product_id: int
    quantity: int
    removed: bool = False
    clamped: bool = False
    message: str | None = None


class Cart:
    def __init__(self, lines: list[CartLine] | None = None):
        self._lines: list[CartLine] = list(lines or [])

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    @property
    def total_cents(self) -> int:
        return sum(line.subtotal_cents for line in self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def get(self, product_id: int) -> CartLine | None:
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None

    def add_item(self, product) -> CartLine:
        """
        Add one unit of ``product``.

        ``product`` is anything with id, name, price_cents and stock. Raises
        InsufficientStockError without touching the cart when another unit
        would exceed stock.
        """
        if getattr(product, "is_active", True) is False:
            raise CartError(f"{product.name} is no longer available")

        stock = max(product.stock or 0, 0)
        line = self.get(product.id)
        in_cart = line.quantity if line else 0

        if stock <= in_cart:
            raise InsufficientStockError(
                f"Insufficient stock for {product.name}. Available: {max(stock - in_cart, 0)}",
                details={"product_id": product.id, "stock": stock, "in_cart": in_cart},
            )

        if line is not None:
            line.quantity += 1
            line.stock = stock
            return line

        line = CartLine(
            product_id=product.id,
            name=product.name,
            unit_price_cents=product.price_cents,
            quantity=1,
            stock=stock,
        )
        self._lines.append(line)
        return line

    def set_quantity(self, product_id: int, new_quantity: int, stock: int | None = None) -> CartAdjustment:
        """
        Set a line's quantity.

        Below 1 removes the line. Above the available stock clamps to the
        stock and reports the clamp. ``stock`` refreshes the line's snapshot
        when the caller has a fresher catalog read.
        """
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
            raise CartError("quantity must be an integer")

        line = self.get(product_id)
        if line is None:
            raise CartError("Product is not in the cart")

        if new_quantity < 1:
            self.remove_item(product_id)
            return CartAdjustment(product_id=product_id, quantity=0, removed=True)

        if stock is not None:
            line.stock = max(stock, 0)

        if new_quantity > line.stock:
            line.quantity = line.stock
            if line.quantity < 1:
                self.remove_item(product_id)
                return CartAdjustment(
                    product_id=product_id,
                    quantity=0,
                    removed=True,
                    clamped=True,
                    message=f"Insufficient stock for {line.name}. No units available.",
                )
            return CartAdjustment(
                product_id=product_id,
                quantity=line.quantity,
                clamped=True,
                message=f"Insufficient stock. Maximum of {line.stock} units for {line.name}.",
            )

        line.quantity = new_quantity
        return CartAdjustment(product_id=product_id, quantity=new_quantity)

    def remove_item(self, product_id: int) -> None:
        self._lines = [line for line in self._lines if line.product_id != product_id]

    def clear(self) -> None:
        self._lines = []

    def to_session(self) -> list[dict]:
        return [asdict(line) for line in self._lines]

    @classmethod
    def from_session(cls, data) -> "Cart":
        lines = []
        for raw in data or []:
            try:
                lines.append(CartLine(
                    product_id=int(raw["product_id"]),
                    name=str(raw["name"]),
                    unit_price_cents=int(raw["unit_price_cents"]),
                    quantity=int(raw["quantity"]),
                    stock=int(raw["stock"]),
                ))
            except (KeyError, TypeError, ValueError):
                raise CartError("Stored cart is corrupt")
        return cls(lines)

    def to_dict(self) -> dict:
        return {
            "items": [
                {**asdict(line), "subtotal_cents": line.subtotal_cents}
                for line in self._lines
            ],
            "total_cents": self.total_cents,
        }
