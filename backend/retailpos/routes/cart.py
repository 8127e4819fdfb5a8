# Overview: Flask API routes for the checkout cart and the payment step; parses input and returns JSON responses.

"""
Cart and checkout routes.

The cart lives in the signed session cookie, so it is scoped to one
operator's browser session and never shared. Every route loads it, applies
one operation and stores it back; a failed operation stores nothing.

SECURITY: All routes require authentication and the /pos page permission.
"""

from flask import Blueprint, current_app, g, session

from .. import wire
from ..decorators import require_auth, require_permission
from ..services import products_service
from ..services.cart import Cart, CartError
from ..services.checkout_service import checkout
from ..validation import NotFoundError, ValidationError
from .common import error_response, json_body

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")

SESSION_KEY = "cart"


def _load_cart() -> Cart:
    try:
        return Cart.from_session(session.get(SESSION_KEY))
    except CartError:
        # Unreadable cookie contents: start over with an empty cart
        current_app.logger.warning("Discarding unreadable cart for user %s", g.current_user.id)
        session.pop(SESSION_KEY, None)
        return Cart()


def _save_cart(cart: Cart) -> None:
    session[SESSION_KEY] = cart.to_session()


def _cart_response(cart: Cart, **extra):
    body = wire.cart_to_wire(cart.to_dict())
    body.update(extra)
    return body


def _product_id_from(payload: dict) -> int:
    product_id = payload.get("productId")
    if isinstance(product_id, bool) or not isinstance(product_id, int):
        raise ValidationError("productId must be an integer")
    return product_id


@cart_bp.get("")
@require_auth
@require_permission("/pos")
def get_cart_route():
    return _cart_response(_load_cart())


@cart_bp.post("/items")
@require_auth
@require_permission("/pos")
def add_item_route():
    """
    Add one unit of a product.

    Returns 409 with the stock message (cart unchanged) when no more units
    are available.
    """
    try:
        product_id = _product_id_from(json_body())
        product = products_service.load_active_product(product_id)
        cart = _load_cart()
        cart.add_item(product)
        _save_cart(cart)
        return _cart_response(cart)
    except Exception as e:
        return error_response(e, "add cart item")


@cart_bp.put("/items/<int:product_id>")
@require_auth
@require_permission("/pos")
def set_quantity_route(product_id: int):
    """
    Set a line's quantity.

    Below 1 removes the line. Above the available stock the quantity is
    clamped and the response carries ``clamped: true`` and a message.
    """
    try:
        quantity = json_body().get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError("quantity must be an integer")

        try:
            stock = products_service.load_active_product(product_id).stock
        except NotFoundError:
            stock = 0

        cart = _load_cart()
        adjustment = cart.set_quantity(product_id, quantity, stock=stock)
        _save_cart(cart)
        return _cart_response(cart, clamped=adjustment.clamped, message=adjustment.message)
    except Exception as e:
        return error_response(e, "update cart item")


@cart_bp.delete("/items/<int:product_id>")
@require_auth
@require_permission("/pos")
def remove_item_route(product_id: int):
    try:
        cart = _load_cart()
        cart.remove_item(product_id)
        _save_cart(cart)
        return _cart_response(cart)
    except Exception as e:
        return error_response(e, "remove cart item")


@cart_bp.delete("")
@require_auth
@require_permission("/pos")
def clear_cart_route():
    session.pop(SESSION_KEY, None)
    return _cart_response(Cart())


@cart_bp.post("/checkout")
@require_auth
@require_permission("/pos")
def checkout_route():
    """
    Confirm the sale.

    Body: {paymentMethod, amountReceived?, transactionId?, payments?,
    customerId?, date?}. ``payments`` (split payment) replaces the
    single-method fields.

    WHY: The sale, its stock decrements and the customer's loyalty totals
    are committed in one transaction. The cart is cleared only on success;
    any failure leaves it intact for a retry.
    """
    try:
        body = json_body()
        cart = _load_cart()

        header = wire.SALE.from_wire(
            {k: body[k] for k in ("customerId", "date") if k in body}
        )
        payments = body.get("payments")
        if payments is not None:
            if not isinstance(payments, list):
                raise ValidationError("payments must be a list")
            payments = [wire.PAYMENT.from_wire(p) for p in payments]

        transaction_id = body.get("transactionId")
        sale, change_cents = checkout(
            cart,
            user_id=g.current_user.id,
            payment_method=body.get("paymentMethod"),
            amount_received=body.get("amountReceived"),
            payments=payments,
            customer_id=header.get("customer_id"),
            date=header.get("date"),
            transaction_id=str(transaction_id) if transaction_id is not None else None,
        )
        _save_cart(cart)
        return {"sale": wire.sale_to_wire(sale), "change": wire.cents_to_money(change_cents)}, 201
    except Exception as e:
        return error_response(e, "complete checkout")
