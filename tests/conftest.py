"""Pytest fixtures for minishop tests."""

import tempfile
from pathlib import Path

import pytest

from minishop.errors import StorageError
from minishop.shop import Shop


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_dir(temp_dir):
    """A data directory that doesn't exist yet."""
    return temp_dir / "data"


@pytest.fixture
def shop(data_dir):
    """A shop over an empty data directory."""
    return Shop.open(data_dir)


@pytest.fixture
def seeded_shop(shop):
    """A shop with the demo catalog and one registered user 'u1'."""
    shop.products.get_all_products()
    shop.users.register("u1", "pass1234", "User One")
    return shop


def fail_saves_to(shop: Shop, monkeypatch, slot: str) -> None:
    """Make every save to ``slot`` raise StorageError."""
    original = shop.store.save

    def failing_save(target, records):
        if target == slot:
            raise StorageError(str(shop.store.path_for(target)), "disk full")
        return original(target, records)

    monkeypatch.setattr(shop.store, "save", failing_save)


def snapshot(shop: Shop) -> dict:
    """Raw contents of every collection, for before/after comparisons."""
    return {
        slot: shop.store.load(slot)
        for slot in ("users", "products", "orders", "commit_journal")
    }
