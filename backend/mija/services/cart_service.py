# Overview: Cart aggregator; per-customer working set prior to checkout.

"""
Cart Aggregator

- One cart per customer, created implicitly on first add.
- Lines snapshot product name, category, price and image at add time.
- Quantity is always >= 1: setting zero or less removes the line.
- add_item() checks the product's current stock, it does not reserve it. Two
  carts can hold the last unit at the same time; checkout decides.
- Carts never change order state; checkout (order_service) consumes them.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Cart, CartLine, Product
from .concurrency import run_with_retry
from .errors import NotFound
from .inventory_service import ensure_available
from ..validation import coerce_int, require_positive_quantity


def get_cart(customer_id: int) -> Cart | None:
    return db.session.query(Cart).filter_by(customer_id=customer_id).first()


def _get_or_create_cart(customer_id: int) -> Cart:
    cart = get_cart(customer_id)
    if cart is None:
        cart = Cart(customer_id=customer_id)
        db.session.add(cart)
        db.session.flush()
    return cart


def _require_line(cart: Cart | None, customer_id: int, product_id: int) -> CartLine:
    line = cart.find_line(product_id) if cart is not None else None
    if line is None:
        raise NotFound(
            "Item not in cart",
            details={"customer_id": customer_id, "product_id": product_id},
        )
    return line


def cart_to_dict(customer_id: int) -> dict:
    cart = get_cart(customer_id)
    if cart is None:
        return {"id": None, "customer_id": customer_id, "items": [], "item_count": 0, "total_cents": 0, "updated_at": None}
    return cart.to_dict()


def add_item(customer_id: int, product_id: int, quantity: int) -> int:
    """
    Add quantity of product to the customer's cart (merging with an existing line).

    Returns the number of distinct lines in the cart.

    Raises:
        NotFound: unknown product
        InsufficientStock: the line's total quantity exceeds current stock
        ValidationError: quantity is not a positive integer
    """
    quantity = require_positive_quantity(quantity)

    def _op():
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})

        cart = _get_or_create_cart(customer_id)
        line = cart.find_line(product_id)
        new_quantity = quantity + (line.quantity if line else 0)
        ensure_available(product, new_quantity)

        if line is not None:
            line.quantity = new_quantity
        else:
            cart.lines.append(CartLine(
                product_id=product.id,
                product_name=product.name,
                product_category=product.category.value,
                unit_price_cents=product.price_cents,
                image_url=product.image_url,
                quantity=quantity,
            ))
        return len(cart.lines)

    return run_with_retry(_op)


def set_quantity(customer_id: int, product_id: int, quantity: int) -> Cart:
    """
    Overwrite a line's quantity. Zero or negative removes the line.

    Only increases are checked against stock.
    """
    quantity = coerce_int(quantity, "quantity")

    def _op():
        cart = get_cart(customer_id)
        line = _require_line(cart, customer_id, product_id)

        if quantity <= 0:
            cart.lines.remove(line)
            return cart

        if quantity > line.quantity:
            product = db.session.get(Product, product_id)
            if product is None:
                raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
            ensure_available(product, quantity)

        line.quantity = quantity
        return cart

    return run_with_retry(_op)


def remove_item(customer_id: int, product_id: int) -> Cart:
    def _op():
        cart = get_cart(customer_id)
        line = _require_line(cart, customer_id, product_id)
        cart.lines.remove(line)
        return cart

    return run_with_retry(_op)


def clear_cart(customer_id: int) -> None:
    def _op():
        cart = get_cart(customer_id)
        if cart is not None:
            cart.lines.clear()

    run_with_retry(_op)
