"""Data models for minishop."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .config import INITIAL_BALANCE


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class User:
    """A registered shop user."""

    id: str
    password: str
    name: str
    balance: float = INITIAL_BALANCE
    created_at: str = field(default_factory=_utc_now)

    def match_password(self, password: str | None) -> bool:
        return password is not None and self.password == password

    def has_enough_balance(self, amount: float) -> bool:
        return self.balance >= amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "password": self.password,
            "name": self.name,
            "balance": self.balance,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            password=data["password"],
            name=data["name"],
            balance=float(data.get("balance", INITIAL_BALANCE)),
            created_at=data.get("created_at", ""),
        )

    @classmethod
    def create(cls, id: str, password: str, name: str) -> "User":
        """Create a new user with the starting balance."""
        return cls(id=id, password=password, name=name.strip(), balance=INITIAL_BALANCE)


@dataclass
class Product:
    """A catalog product."""

    id: int
    name: str
    price: float
    stock: int

    def has_stock(self, quantity: int) -> bool:
        return quantity > 0 and self.stock >= quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "stock": self.stock,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            id=int(data["id"]),
            name=data["name"],
            price=float(data["price"]),
            stock=int(data["stock"]),
        )


@dataclass
class Order:
    """A committed order. Immutable once persisted."""

    order_id: int
    user_id: str
    product_id: int
    quantity: int
    total_price: float  # unit price at commit time * quantity
    order_date: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "total_price": self.total_price,
            "order_date": self.order_date,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        return cls(
            order_id=int(data["order_id"]),
            user_id=data["user_id"],
            product_id=int(data["product_id"]),
            quantity=int(data["quantity"]),
            total_price=float(data["total_price"]),
            order_date=data.get("order_date", ""),
        )


@dataclass
class CommitEntry:
    """Write-ahead record of one order commit.

    Holds the order plus the stock and balance values expected before and
    after the commit, so an interrupted commit can be rolled forward.
    ``stock_applied`` and ``balance_applied`` are None until the commit knows
    whether that write landed.
    """

    order: Order
    stock_before: int
    stock_after: int
    balance_before: float
    balance_after: float
    stock_applied: bool | None = None
    balance_applied: bool | None = None
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "order": self.order.to_dict(),
            "stock_before": self.stock_before,
            "stock_after": self.stock_after,
            "balance_before": self.balance_before,
            "balance_after": self.balance_after,
            "stock_applied": self.stock_applied,
            "balance_applied": self.balance_applied,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CommitEntry":
        return cls(
            order=Order.from_dict(data["order"]),
            stock_before=int(data["stock_before"]),
            stock_after=int(data["stock_after"]),
            balance_before=float(data["balance_before"]),
            balance_after=float(data["balance_after"]),
            stock_applied=data.get("stock_applied"),
            balance_applied=data.get("balance_applied"),
            created_at=data.get("created_at", ""),
        )
