"""Typed repositories over the collection store."""

import logging
from typing import Any, Callable, TypeVar

from . import config
from .catalog import demo_products
from .models import Order, Product, User
from .store import CollectionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _decode(
    records: list[dict[str, Any]], from_dict: Callable[[dict[str, Any]], T], slot: str
) -> list[T]:
    """Convert raw records to models, skipping ones that cannot be decoded."""
    items: list[T] = []
    for record in records:
        try:
            items.append(from_dict(record))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed %s record %r: %s", slot, record, e)
    return items


class UserRepository:
    """Users keyed by string ID."""

    slot = config.USER_SLOT

    def __init__(self, store: CollectionStore):
        self.store = store

    def _load(self) -> list[User]:
        return _decode(self.store.load(self.slot), User.from_dict, self.slot)

    def _save(self, users: list[User]) -> None:
        self.store.save(self.slot, [u.to_dict() for u in users])

    def find_all(self) -> list[User]:
        return self._load()

    def find_by_id(self, user_id: str) -> User | None:
        for user in self._load():
            if user.id == user_id:
                return user
        return None

    def exists_by_id(self, user_id: str) -> bool:
        return self.find_by_id(user_id) is not None

    def save(self, user: User) -> User:
        """Append a user to the collection."""
        with self.store.lock(self.slot):
            users = self._load()
            users.append(user)
            self._save(users)
        return user

    def update(self, user: User) -> None:
        """Replace the stored user with the same ID (appending if absent)."""
        with self.store.lock(self.slot):
            users = [u for u in self._load() if u.id != user.id]
            users.append(user)
            self._save(users)

    def delete_by_id(self, user_id: str) -> bool:
        with self.store.lock(self.slot):
            users = self._load()
            remaining = [u for u in users if u.id != user_id]
            if len(remaining) == len(users):
                return False
            self._save(remaining)
        return True


class ProductRepository:
    """
    Products keyed by integer ID, kept sorted by ID.

    An empty collection is seeded with the demo catalog on first read, so
    callers never observe an empty catalog.
    """

    slot = config.PRODUCT_SLOT

    def __init__(self, store: CollectionStore):
        self.store = store

    def _load(self) -> list[Product]:
        return _decode(self.store.load(self.slot), Product.from_dict, self.slot)

    def _save(self, products: list[Product]) -> None:
        products.sort(key=lambda p: p.id)
        self.store.save(self.slot, [p.to_dict() for p in products])

    def initialize(self) -> list[Product]:
        """Seed the demo catalog, replacing whatever is stored."""
        products = demo_products()
        with self.store.lock(self.slot):
            self._save(products)
        logger.info("Seeded demo catalog with %d products", len(products))
        return products

    def find_all(self) -> list[Product]:
        with self.store.lock(self.slot):
            products = self._load()
            if not products:
                self.initialize()
                products = self._load()
        return products

    def find_by_id(self, product_id: int) -> Product | None:
        for product in self.find_all():
            if product.id == product_id:
                return product
        return None

    def exists_by_id(self, product_id: int) -> bool:
        return self.find_by_id(product_id) is not None

    def next_product_id(self) -> int:
        return max((p.id for p in self.find_all()), default=0) + 1

    def save(self, product: Product) -> Product:
        """Append a product to the catalog."""
        with self.store.lock(self.slot):
            products = self.find_all()
            products.append(product)
            self._save(products)
        return product

    def update(self, product: Product) -> None:
        """Replace the stored product with the same ID (appending if absent)."""
        with self.store.lock(self.slot):
            products = [p for p in self.find_all() if p.id != product.id]
            products.append(product)
            self._save(products)

    def delete_by_id(self, product_id: int) -> bool:
        with self.store.lock(self.slot):
            products = self.find_all()
            remaining = [p for p in products if p.id != product_id]
            if len(remaining) == len(products):
                return False
            self._save(remaining)
        return True


class OrderRepository:
    """Append-only order history."""

    slot = config.ORDER_SLOT

    def __init__(self, store: CollectionStore):
        self.store = store

    def _load(self) -> list[Order]:
        return _decode(self.store.load(self.slot), Order.from_dict, self.slot)

    def find_all(self) -> list[Order]:
        return self._load()

    def find_by_id(self, order_id: int) -> Order | None:
        for order in self._load():
            if order.order_id == order_id:
                return order
        return None

    def find_by_user_id(self, user_id: str) -> list[Order]:
        return [o for o in self._load() if o.user_id == user_id]

    def exists_by_id(self, order_id: int) -> bool:
        return self.find_by_id(order_id) is not None

    def next_order_id(self) -> int:
        """Next order ID, always derived from the persisted maximum."""
        return max((o.order_id for o in self._load()), default=0) + 1

    def save(self, order: Order) -> Order:
        """Append an order to the history."""
        with self.store.lock(self.slot):
            orders = self._load()
            orders.append(order)
            self.store.save(self.slot, [o.to_dict() for o in orders])
        return order
