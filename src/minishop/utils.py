"""Input validation and display helpers for minishop."""

import re

from .config import MIN_ID_LENGTH, MIN_NAME_LENGTH, MIN_PASSWORD_LENGTH
from .errors import InvalidArgumentError
from .models import Order, Product, User

ID_PATTERN = re.compile(r"^[A-Za-z0-9]+$")
NUMBER_PATTERN = re.compile(r"^[+-]?\d+$")


# --- Predicates used by the presentation layer before building arguments ---


def is_valid_number(text: str | None) -> bool:
    """True if text is an integer literal (surrounding whitespace allowed)."""
    if text is None:
        return False
    return bool(NUMBER_PATTERN.match(text.strip()))


def is_positive_number(text: str | None) -> bool:
    return is_valid_number(text) and int(text.strip()) > 0


def is_valid_id(user_id: str | None) -> bool:
    if user_id is None or len(user_id) < MIN_ID_LENGTH:
        return False
    return bool(ID_PATTERN.match(user_id))


def is_valid_password(password: str | None) -> bool:
    return password is not None and len(password) >= MIN_PASSWORD_LENGTH


def is_valid_name(name: str | None) -> bool:
    return name is not None and len(name.strip()) >= MIN_NAME_LENGTH


# --- Guards raising InvalidArgumentError ---


def require_non_empty(value: str | None, message: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgumentError(message, value)
    return value


def require_min_length(value: str | None, min_length: int, message: str) -> str:
    if value is None or len(value) < min_length:
        raise InvalidArgumentError(message, value)
    return value


def require_positive(value: float, message: str) -> float:
    if value <= 0:
        raise InvalidArgumentError(message, value)
    return value


def require_non_negative(value: float, message: str) -> float:
    if value < 0:
        raise InvalidArgumentError(message, value)
    return value


# --- Formatting ---


def format_money(amount: float) -> str:
    """Format an amount with thousands separators and no decimals."""
    return f"{amount:,.0f}"


def format_product(product: Product) -> str:
    """Format a product for display."""
    stock = f"stock: {product.stock}" if product.stock > 0 else "sold out"
    return f"{product.id:>3}. {product.name} ({format_money(product.price)}, {stock})"


def format_order(order: Order, product_name: str | None = None) -> str:
    """Format an order for display."""
    what = product_name or f"product {order.product_id}"
    return (
        f"#{order.order_id:<5} {what} x{order.quantity}  "
        f"{format_money(order.total_price)}  {order.order_date}"
    )


def format_user(user: User) -> str:
    """Format a user profile for display."""
    return f"{user.name} ({user.id})  balance: {format_money(user.balance)}"
