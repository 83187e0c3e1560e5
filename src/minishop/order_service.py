"""Order placement: the multi-collection commit."""

import logging

from .config import MIN_ORDER_QUANTITY
from .errors import (
    InsufficientFundsError,
    InsufficientStockError,
    InvalidArgumentError,
    OrderNotFoundError,
    PartialCommitError,
    ShopError,
    StorageError,
)
from .journal import CommitJournal
from .models import CommitEntry, Order
from .product_service import ProductService
from .repositories import OrderRepository
from .user_service import UserService

logger = logging.getLogger(__name__)


class OrderService:
    """
    Places orders against products and user balances.

    A commit touches three collections (products, users, orders) that are
    saved independently. Before the first write the commit is recorded in
    the journal; if a later write fails the entry stays there and
    ``recover_pending`` rolls it forward.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        product_service: ProductService,
        user_service: UserService,
        journal: CommitJournal,
    ):
        self.orders = order_repository
        self.products = product_service
        self.users = user_service
        self.journal = journal

    def next_order_id(self) -> int:
        """
        Next order ID from persisted state.

        Journaled commits that have not reached the order collection still
        own their IDs.
        """
        pending_max = max((e.order.order_id for e in self.journal.pending()), default=0)
        return max(self.orders.next_order_id(), pending_max + 1)

    def create_order(self, user_id: str, product_id: int, quantity: int) -> Order:
        """
        Place an order for ``quantity`` units of a product.

        Nothing is written until every check has passed. After that, stock,
        balance and the order record are saved in that order.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
            InvalidArgumentError: If quantity is not positive.
            InsufficientStockError: If stock is lower than quantity.
            UserNotFoundError: If the user doesn't exist.
            InsufficientFundsError: If the balance cannot cover the total.
            StorageError: If the journal or the stock write failed (no change made).
            PartialCommitError: If the balance or order write failed.
        """
        product = self.products.get_product(product_id)

        if quantity < MIN_ORDER_QUANTITY:
            raise InvalidArgumentError(
                f"Order quantity must be at least {MIN_ORDER_QUANTITY}: {quantity}", quantity
            )

        if not self.products.check_stock(product_id, quantity):
            raise InsufficientStockError(product_id, product.stock, quantity)

        # Price is frozen here; later price changes don't affect this order
        total_price = product.price * quantity

        balance = self.users.get_balance(user_id)
        if balance < total_price:
            raise InsufficientFundsError(user_id, total_price, balance)

        order = Order(
            order_id=self.next_order_id(),
            user_id=user_id,
            product_id=product_id,
            quantity=quantity,
            total_price=total_price,
        )
        entry = CommitEntry(
            order=order,
            stock_before=product.stock,
            stock_after=product.stock - quantity,
            balance_before=balance,
            balance_after=balance - total_price,
        )
        self.journal.record(entry)

        try:
            self.products.update_stock(product_id, quantity)
        except ShopError:
            # Stock write is atomic, so nothing was committed yet
            self._forget(order.order_id)
            raise

        try:
            self.users.update_balance(user_id, entry.balance_after)
        except ShopError as e:
            logger.error("Order %d failed after stock update: %s", order.order_id, e)
            self._note_progress(entry, stock_applied=True, balance_applied=False)
            raise PartialCommitError(order.order_id, "balance update", e) from e

        try:
            self.orders.save(order)
        except ShopError as e:
            logger.error("Order %d failed after balance update: %s", order.order_id, e)
            self._note_progress(entry, stock_applied=True, balance_applied=True)
            raise PartialCommitError(order.order_id, "order append", e) from e

        self._forget(order.order_id)
        logger.info(
            "Order %d placed: user=%s product=%d qty=%d total=%.0f",
            order.order_id, user_id, product_id, quantity, total_price,
        )
        return order

    def _note_progress(self, entry: CommitEntry, stock_applied: bool, balance_applied: bool) -> None:
        """Record in the journal which writes of a failed commit landed."""
        entry.stock_applied = stock_applied
        entry.balance_applied = balance_applied
        try:
            self.journal.record(entry)
        except StorageError as e:
            logger.error("Could not update journal entry for order %d: %s", entry.order.order_id, e)

    def _forget(self, order_id: int) -> None:
        try:
            self.journal.clear(order_id)
        except StorageError as e:
            logger.warning("Could not clear journal entry for order %d: %s", order_id, e)

    def recover_pending(self) -> list[Order]:
        """
        Finish commits that were interrupted after their first write.

        Writes the journal marks as done are skipped. For entries without
        marks, a write counts as done when the stored value moved away from
        its "before" value. A missing debit is taken from the current balance,
        so later balance changes are kept. Entries whose order is already
        stored are cleared; entries whose stock write never landed are
        discarded. An entry that cannot be completed stays journaled. Safe to
        run repeatedly.

        Returns:
            Orders whose commits were completed.
        """
        recovered: list[Order] = []
        for entry in self.journal.pending():
            order = entry.order
            if self.orders.exists_by_id(order.order_id):
                logger.info("Order %d is already stored, clearing its journal entry", order.order_id)
                self.journal.clear(order.order_id)
                continue

            logger.warning("Recovering interrupted commit of order %d", order.order_id)
            try:
                if self._roll_forward(entry):
                    recovered.append(order)
            except ShopError as e:
                logger.error("Could not recover order %d, keeping it journaled: %s", order.order_id, e)

        return recovered

    def _roll_forward(self, entry: CommitEntry) -> bool:
        order = entry.order

        stock_applied = entry.stock_applied
        if stock_applied is None:
            stock = self.products.get_product(order.product_id).stock
            stock_applied = stock != entry.stock_before
        if not stock_applied:
            logger.warning("Discarding order %d: none of its writes landed", order.order_id)
            self.journal.clear(order.order_id)
            return False

        balance_applied = entry.balance_applied
        if balance_applied is None:
            balance_applied = self.users.get_balance(order.user_id) != entry.balance_before
        if not balance_applied:
            balance = self.users.get_balance(order.user_id)
            if balance < order.total_price:
                raise InsufficientFundsError(order.user_id, order.total_price, balance)
            self.users.update_balance(order.user_id, balance - order.total_price)
            self._note_progress(entry, stock_applied=True, balance_applied=True)

        self.orders.save(order)
        self.journal.clear(order.order_id)
        return True


    def get_user_orders(self, user_id: str) -> list[Order]:
        return self.orders.find_by_user_id(user_id)

    def get_all_orders(self) -> list[Order]:
        return self.orders.find_all()

    def get_order(self, order_id: int) -> Order:
        """
        Get an order by ID.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        order = self.orders.find_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def get_user_order_total(self, user_id: str) -> float:
        """Sum of total prices across a user's orders."""
        return sum(o.total_price for o in self.get_user_orders(user_id))
