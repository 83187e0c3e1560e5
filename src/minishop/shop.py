"""Wiring of store, repositories and services."""

import logging
from dataclasses import dataclass
from pathlib import Path

from .journal import CommitJournal
from .order_service import OrderService
from .product_service import ProductService
from .repositories import OrderRepository, ProductRepository, UserRepository
from .store import CollectionStore
from .user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class Shop:
    """All services sharing one data directory."""

    store: CollectionStore
    users: UserService
    products: ProductService
    orders: OrderService

    @classmethod
    def open(cls, data_dir: Path | None = None, recover: bool = True) -> "Shop":
        """
        Build the services over a data directory.

        Args:
            data_dir: Override data directory (for testing).
            recover: Finish interrupted order commits before returning.
        """
        store = CollectionStore(data_dir)
        order_repository = OrderRepository(store)
        users = UserService(UserRepository(store))
        products = ProductService(ProductRepository(store), order_repository)
        orders = OrderService(order_repository, products, users, CommitJournal(store))
        shop = cls(store=store, users=users, products=products, orders=orders)

        if recover:
            recovered = orders.recover_pending()
            if recovered:
                logger.warning(
                    "Completed %d interrupted order commit(s): %s",
                    len(recovered),
                    ", ".join(str(o.order_id) for o in recovered),
                )
        return shop
