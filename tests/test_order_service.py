"""Tests for the order commit workflow."""

import pytest

from minishop.errors import (
    InsufficientFundsError,
    InsufficientStockError,
    InvalidArgumentError,
    OrderNotFoundError,
    PartialCommitError,
    ProductNotFoundError,
    StorageError,
    UserNotFoundError,
)
from minishop.models import CommitEntry, Order
from minishop.shop import Shop

from .conftest import fail_saves_to, snapshot


@pytest.fixture
def rich_shop(seeded_shop):
    """Seeded shop where u1 can afford anything."""
    seeded_shop.users.update_balance("u1", 10_000_000)
    return seeded_shop


class TestCreateOrder:
    def test_successful_order_updates_all_collections(self, rich_shop):
        product_before = rich_shop.products.get_product(3)
        balance_before = rich_shop.users.get_balance("u1")

        order = rich_shop.orders.create_order("u1", 3, 4)

        assert rich_shop.products.get_product(3).stock == product_before.stock - 4
        assert rich_shop.users.get_balance("u1") == balance_before - product_before.price * 4
        assert order.total_price == product_before.price * 4
        assert rich_shop.orders.get_all_orders() == [order]
        assert rich_shop.store.load("commit_journal") == []

    def test_scenario_price_exceeds_starting_balance(self, seeded_shop):
        with pytest.raises(InsufficientFundsError) as exc_info:
            seeded_shop.orders.create_order("u1", 1, 1)

        assert exc_info.value.required == 1500000.0
        assert exc_info.value.available == 10000.0
        assert seeded_shop.products.get_product(1).stock == 10
        assert seeded_shop.users.get_balance("u1") == 10000.0
        assert seeded_shop.orders.get_all_orders() == []

    def test_scenario_two_earphones(self, seeded_shop):
        seeded_shop.users.update_balance("u1", 200000)

        order = seeded_shop.orders.create_order("u1", 5, 2)

        assert seeded_shop.products.get_product(5).stock == 98
        assert seeded_shop.users.get_balance("u1") == 100000.0
        assert order.total_price == 100000.0
        assert order.quantity == 2
        assert len(seeded_shop.orders.get_user_orders("u1")) == 1

    @pytest.mark.parametrize("quantity", [0, -1, -100])
    def test_non_positive_quantity_changes_nothing(self, rich_shop, quantity):
        before = snapshot(rich_shop)

        with pytest.raises(InvalidArgumentError):
            rich_shop.orders.create_order("u1", 1, quantity)

        assert snapshot(rich_shop) == before

    def test_insufficient_stock_changes_nothing(self, rich_shop):
        before = snapshot(rich_shop)

        with pytest.raises(InsufficientStockError) as exc_info:
            rich_shop.orders.create_order("u1", 1, 11)

        assert exc_info.value.stock == 10
        assert "Current stock: 10" in str(exc_info.value)
        assert snapshot(rich_shop) == before

    def test_unknown_product_changes_nothing(self, rich_shop):
        before = snapshot(rich_shop)

        with pytest.raises(ProductNotFoundError):
            rich_shop.orders.create_order("u1", 999, 1)

        assert snapshot(rich_shop) == before

    def test_unknown_user_changes_nothing(self, rich_shop):
        before = snapshot(rich_shop)

        with pytest.raises(UserNotFoundError):
            rich_shop.orders.create_order("ghost", 1, 1)

        assert snapshot(rich_shop) == before

    def test_exact_balance_is_enough(self, seeded_shop):
        seeded_shop.users.update_balance("u1", 50000)

        seeded_shop.orders.create_order("u1", 5, 1)

        assert seeded_shop.users.get_balance("u1") == 0.0

    def test_total_price_frozen_after_price_change(self, rich_shop):
        order = rich_shop.orders.create_order("u1", 2, 2)

        product = rich_shop.products.get_product(2)
        product.price = 99999.0
        rich_shop.products.products.update(product)

        assert rich_shop.orders.get_order(order.order_id).total_price == 60000.0


class TestOrderIds:
    def test_ids_strictly_increase(self, rich_shop):
        ids = [rich_shop.orders.create_order("u1", 2, 1).order_id for _ in range(5)]

        assert ids == [1, 2, 3, 4, 5]

    def test_ids_survive_restart(self, rich_shop, data_dir):
        rich_shop.orders.create_order("u1", 2, 1)
        rich_shop.orders.create_order("u1", 2, 1)

        reopened = Shop.open(data_dir)
        order = reopened.orders.create_order("u1", 2, 1)

        assert order.order_id == 3

    def test_failed_validation_does_not_consume_id(self, rich_shop):
        rich_shop.orders.create_order("u1", 2, 1)
        with pytest.raises(InvalidArgumentError):
            rich_shop.orders.create_order("u1", 2, 0)

        assert rich_shop.orders.create_order("u1", 2, 1).order_id == 2


class TestCommitFailures:
    def test_journal_failure_changes_nothing(self, rich_shop, monkeypatch):
        before = snapshot(rich_shop)
        fail_saves_to(rich_shop, monkeypatch, "commit_journal")

        with pytest.raises(StorageError):
            rich_shop.orders.create_order("u1", 2, 1)

        monkeypatch.undo()
        assert snapshot(rich_shop) == before

    def test_stock_write_failure_changes_nothing(self, rich_shop, monkeypatch):
        before = snapshot(rich_shop)
        fail_saves_to(rich_shop, monkeypatch, "products")

        with pytest.raises(StorageError) as exc_info:
            rich_shop.orders.create_order("u1", 2, 1)

        assert not isinstance(exc_info.value, PartialCommitError)
        monkeypatch.undo()
        assert snapshot(rich_shop) == before

    def test_balance_write_failure_is_reported_and_recoverable(self, rich_shop, monkeypatch):
        balance_before = rich_shop.users.get_balance("u1")
        fail_saves_to(rich_shop, monkeypatch, "users")

        with pytest.raises(PartialCommitError) as exc_info:
            rich_shop.orders.create_order("u1", 2, 3)

        assert exc_info.value.step == "balance update"
        assert exc_info.value.order_id == 1
        monkeypatch.undo()

        # Stock already moved, balance and order did not
        assert rich_shop.products.get_product(2).stock == 47
        assert rich_shop.users.get_balance("u1") == balance_before
        assert rich_shop.orders.get_all_orders() == []

        recovered = rich_shop.orders.recover_pending()

        assert [o.order_id for o in recovered] == [1]
        assert rich_shop.products.get_product(2).stock == 47
        assert rich_shop.users.get_balance("u1") == balance_before - 90000.0
        assert rich_shop.orders.get_order(1).total_price == 90000.0
        assert rich_shop.store.load("commit_journal") == []

    def test_order_append_failure_recovered_on_open(self, rich_shop, monkeypatch, data_dir):
        balance_before = rich_shop.users.get_balance("u1")
        fail_saves_to(rich_shop, monkeypatch, "orders")

        with pytest.raises(PartialCommitError) as exc_info:
            rich_shop.orders.create_order("u1", 2, 1)

        assert exc_info.value.step == "order append"
        monkeypatch.undo()

        reopened = Shop.open(data_dir)

        assert reopened.products.get_product(2).stock == 49
        assert reopened.users.get_balance("u1") == balance_before - 30000.0
        assert [o.order_id for o in reopened.orders.get_all_orders()] == [1]

    def test_pending_commit_reserves_its_id(self, rich_shop, monkeypatch):
        fail_saves_to(rich_shop, monkeypatch, "orders")
        with pytest.raises(PartialCommitError):
            rich_shop.orders.create_order("u1", 2, 1)
        monkeypatch.undo()

        order = rich_shop.orders.create_order("u1", 3, 1)
        rich_shop.orders.recover_pending()

        assert order.order_id == 2
        assert sorted(o.order_id for o in rich_shop.orders.get_all_orders()) == [1, 2]

    def test_recovery_is_idempotent(self, rich_shop, monkeypatch):
        fail_saves_to(rich_shop, monkeypatch, "orders")
        with pytest.raises(PartialCommitError):
            rich_shop.orders.create_order("u1", 2, 1)
        monkeypatch.undo()

        first = rich_shop.orders.recover_pending()
        second = rich_shop.orders.recover_pending()

        assert len(first) == 1
        assert second == []
        assert len(rich_shop.orders.get_all_orders()) == 1
        assert rich_shop.products.get_product(2).stock == 49

    def test_unpaid_order_is_charged_after_later_orders(self, rich_shop, monkeypatch):
        rich_shop.users.update_balance("u1", 1000000)
        fail_saves_to(rich_shop, monkeypatch, "users")
        with pytest.raises(PartialCommitError):
            rich_shop.orders.create_order("u1", 2, 1)
        monkeypatch.undo()

        rich_shop.orders.create_order("u1", 7, 1)
        rich_shop.orders.recover_pending()

        assert sorted(o.order_id for o in rich_shop.orders.get_all_orders()) == [1, 2]
        assert rich_shop.users.get_balance("u1") == 1000000 - 30000.0 - 25000.0
        assert rich_shop.products.get_product(2).stock == 49
        assert rich_shop.products.get_product(7).stock == 79

    def test_failed_journal_clear_after_commit_still_returns_order(self, rich_shop, monkeypatch):
        balance_before = rich_shop.users.get_balance("u1")

        def failing_clear(order_id):
            raise StorageError("commit_journal.json", "read-only")

        monkeypatch.setattr(rich_shop.orders.journal, "clear", failing_clear)

        order = rich_shop.orders.create_order("u1", 2, 1)

        monkeypatch.undo()
        assert order.order_id == 1
        assert len(rich_shop.orders.journal.pending()) == 1

        # The leftover entry belongs to a stored order and is only cleared
        assert rich_shop.orders.recover_pending() == []
        assert rich_shop.orders.journal.pending() == []
        assert rich_shop.users.get_balance("u1") == balance_before - 30000.0
        assert rich_shop.products.get_product(2).stock == 49
        assert len(rich_shop.orders.get_all_orders()) == 1

    def test_failed_journal_clear_after_stock_failure(self, rich_shop, monkeypatch):
        before = snapshot(rich_shop)
        fail_saves_to(rich_shop, monkeypatch, "products")

        def failing_clear(order_id):
            raise StorageError("commit_journal.json", "read-only")

        monkeypatch.setattr(rich_shop.orders.journal, "clear", failing_clear)

        with pytest.raises(StorageError) as exc_info:
            rich_shop.orders.create_order("u1", 2, 1)

        assert exc_info.value.reason == "disk full"
        monkeypatch.undo()

        # The stale entry never reached any collection, so it is dropped
        assert rich_shop.orders.recover_pending() == []
        assert snapshot(rich_shop) == before


class TestRecoverInterrupted:
    """Entries left by a crash carry no marks of which writes landed."""

    def journal_entry(self, shop, product_id, quantity):
        product = shop.products.get_product(product_id)
        balance = shop.users.get_balance("u1")
        total = product.price * quantity
        entry = CommitEntry(
            order=Order(shop.orders.next_order_id(), "u1", product_id, quantity, total),
            stock_before=product.stock,
            stock_after=product.stock - quantity,
            balance_before=balance,
            balance_after=balance - total,
        )
        shop.orders.journal.record(entry)
        return entry

    def test_nothing_written_is_discarded(self, rich_shop):
        self.journal_entry(rich_shop, 2, 1)
        before = snapshot(rich_shop)

        assert rich_shop.orders.recover_pending() == []

        assert rich_shop.orders.journal.pending() == []
        assert rich_shop.orders.get_all_orders() == []
        assert rich_shop.products.get_product(2).stock == 50
        assert snapshot(rich_shop)["users"] == before["users"]

    def test_stock_written_is_completed(self, rich_shop):
        balance_before = rich_shop.users.get_balance("u1")
        self.journal_entry(rich_shop, 2, 2)
        rich_shop.products.update_stock(2, 2)

        recovered = rich_shop.orders.recover_pending()

        assert [o.order_id for o in recovered] == [1]
        assert rich_shop.products.get_product(2).stock == 48
        assert rich_shop.users.get_balance("u1") == balance_before - 60000.0

    def test_unaffordable_debit_stays_journaled(self, rich_shop):
        entry = self.journal_entry(rich_shop, 2, 1)
        rich_shop.products.update_stock(2, 1)
        entry.stock_applied, entry.balance_applied = True, False
        rich_shop.orders.journal.record(entry)
        rich_shop.users.update_balance("u1", 100)

        assert rich_shop.orders.recover_pending() == []

        assert len(rich_shop.orders.journal.pending()) == 1
        assert rich_shop.users.get_balance("u1") == 100.0
        assert rich_shop.orders.get_all_orders() == []


class TestQueries:
    def test_get_order_not_found(self, shop):
        with pytest.raises(OrderNotFoundError):
            shop.orders.get_order(1)

    def test_user_order_total(self, rich_shop):
        rich_shop.orders.create_order("u1", 2, 1)
        rich_shop.orders.create_order("u1", 7, 2)

        assert rich_shop.orders.get_user_order_total("u1") == 80000.0
        assert rich_shop.orders.get_user_order_total("nobody") == 0
