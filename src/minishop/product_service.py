"""Product queries and stock mutations."""

import logging
from collections import Counter

from .errors import InsufficientStockError, InvalidArgumentError, ProductNotFoundError
from .models import Product
from .repositories import OrderRepository, ProductRepository
from .utils import require_non_empty, require_non_negative, require_positive

logger = logging.getLogger(__name__)


class ProductService:
    """Business rules for the product catalog."""

    def __init__(
        self,
        product_repository: ProductRepository,
        order_repository: OrderRepository | None = None,
    ):
        self.products = product_repository
        self.orders = order_repository

    def get_all_products(self) -> list[Product]:
        products = self.products.find_all()
        logger.debug("Listing %d products", len(products))
        return products

    def get_available_products(self) -> list[Product]:
        return [p for p in self.products.find_all() if p.stock > 0]

    def get_product(self, product_id: int) -> Product:
        """
        Get a product by ID.

        Raises:
            ProductNotFoundError: If the ID is not positive or not in the catalog.
        """
        if product_id <= 0:
            raise ProductNotFoundError(product_id)
        product = self.products.find_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def get_product_price(self, product_id: int) -> float:
        return self.get_product(product_id).price

    def check_stock(self, product_id: int, quantity: int) -> bool:
        """Whether the product can supply ``quantity`` units. Never raises."""
        product = self.products.find_by_id(product_id)
        if product is None:
            logger.debug("Stock check for unknown product %d", product_id)
            return False
        return product.has_stock(quantity)

    def update_stock(self, product_id: int, quantity: int) -> Product:
        """
        Decrease stock by ``quantity`` and persist it.

        Raises:
            InvalidArgumentError: If quantity is not positive.
            ProductNotFoundError: If the product doesn't exist.
            InsufficientStockError: If stock is lower than quantity.
        """
        require_positive(quantity, f"Quantity to deduct must be positive: {quantity}")
        with self.products.store.lock(self.products.slot):
            product = self.products.find_by_id(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            if product.stock < quantity:
                raise InsufficientStockError(product_id, product.stock, quantity)

            old_stock = product.stock
            product.stock = old_stock - quantity
            self.products.update(product)

        logger.info(
            "Stock decreased: product %d %s (%d -> %d)",
            product_id, product.name, old_stock, product.stock,
        )
        return product

    def set_stock(self, product_id: int, stock: int) -> Product:
        """Set stock to an absolute value."""
        require_non_negative(stock, f"Stock cannot be negative: {stock}")
        with self.products.store.lock(self.products.slot):
            product = self.get_product(product_id)
            product.stock = stock
            self.products.update(product)
        return product

    def add_stock(self, product_id: int, quantity: int) -> Product:
        """
        Increase stock by ``quantity`` and persist it.

        Raises:
            InvalidArgumentError: If quantity is not positive.
            ProductNotFoundError: If the product doesn't exist.
        """
        require_positive(quantity, f"Quantity to add must be positive: {quantity}")
        with self.products.store.lock(self.products.slot):
            product = self.products.find_by_id(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)

            old_stock = product.stock
            product.stock = old_stock + quantity
            self.products.update(product)

        logger.info(
            "Stock increased: product %d %s (%d -> %d)",
            product_id, product.name, old_stock, product.stock,
        )
        return product

    def add_product(self, name: str, price: float, stock: int) -> Product:
        """Add a new product to the catalog with the next free ID."""
        require_non_empty(name, "Product name is required")
        require_positive(price, f"Price must be positive: {price}")
        require_non_negative(stock, f"Stock cannot be negative: {stock}")

        with self.products.store.lock(self.products.slot):
            product = Product(
                id=self.products.next_product_id(),
                name=name.strip(),
                price=float(price),
                stock=stock,
            )
            self.products.save(product)

        logger.info("Added product %d %s", product.id, product.name)
        return product

    # --- Read-side projections ---

    def search_products_by_name(self, keyword: str) -> list[Product]:
        """Case-insensitive substring search on product names."""
        require_non_empty(keyword, "Search keyword is required")
        needle = keyword.strip().lower()
        return [p for p in self.products.find_all() if needle in p.name.lower()]

    def get_products_by_price_range(self, min_price: float, max_price: float) -> list[Product]:
        """Products priced within [min_price, max_price]."""
        if min_price < 0 or max_price < 0:
            raise InvalidArgumentError("Prices must be zero or greater")
        if min_price > max_price:
            raise InvalidArgumentError("Minimum price cannot exceed maximum price")
        return [
            p for p in self.products.find_all() if min_price <= p.price <= max_price
        ]

    def get_low_stock_products(self, threshold: int) -> list[Product]:
        """Products whose stock is at or below ``threshold``."""
        require_non_negative(threshold, f"Threshold must be zero or greater: {threshold}")
        return [p for p in self.products.find_all() if p.stock <= threshold]

    def get_best_seller_products(self, limit: int) -> list[Product]:
        """
        Top products by total ordered quantity.

        Falls back to catalog order when no order history is available.
        Products that were never ordered follow the ordered ones.
        """
        require_non_negative(limit, f"Limit must be zero or greater: {limit}")
        products = self.products.find_all()
        if self.orders is None:
            return products[:limit]

        sold: Counter[int] = Counter()
        for order in self.orders.find_all():
            sold[order.product_id] += order.quantity

        ranked = sorted(products, key=lambda p: (-sold[p.id], p.id))
        return ranked[:limit]
