"""Tests for the SQLite product store."""
import asyncio

from countdown_scraper.parse.models import DatedPrice, UpsertDecision
from countdown_scraper.store.sqlite_store import SQLiteStore
from helpers import DAY_D, DAY_D1, make_product


def test_unknown_product_is_none(tmp_path):
    async def scenario():
        async with SQLiteStore(tmp_path / "products.db") as store:
            return await store.get("404404")

    assert asyncio.run(scenario()) is None


def test_insert_then_update(tmp_path):
    """Test that upsert keeps one row per id and round-trips the history."""
    first = make_product(price=4.00, when=DAY_D)
    second = first.model_copy(
        update={
            "current_price": 4.50,
            "price_history": [*first.price_history, DatedPrice(date=DAY_D1, price=4.50)],
            "last_updated": DAY_D1,
            "last_checked": DAY_D1,
            "category": ["milk", "dairy"],
        }
    )

    async def scenario():
        async with SQLiteStore(tmp_path / "products.db") as store:
            assert await store.upsert(UpsertDecision.NEW_PRODUCT, first) is UpsertDecision.NEW_PRODUCT
            assert await store.upsert(UpsertDecision.PRICE_CHANGED, second) is UpsertDecision.PRICE_CHANGED
            cursor = await store.db.execute("SELECT COUNT(*) FROM products")
            (count,) = await cursor.fetchone()
            return count, await store.get(first.id)

    count, stored = asyncio.run(scenario())

    assert count == 1
    assert stored == second
    assert stored.price_history[-1] == DatedPrice(date=DAY_D1, price=4.50)


def test_failed_decision_is_not_written(tmp_path):
    async def scenario():
        async with SQLiteStore(tmp_path / "products.db") as store:
            decision = await store.upsert(UpsertDecision.FAILED, make_product())
            return decision, await store.get("282764")

    decision, stored = asyncio.run(scenario())

    assert decision is UpsertDecision.FAILED
    assert stored is None


def test_write_error_reports_failed(tmp_path):
    """Test that a closed connection yields FAILED instead of raising."""
    async def scenario():
        store = SQLiteStore(tmp_path / "products.db")
        return await store.upsert(UpsertDecision.NEW_PRODUCT, make_product())

    assert asyncio.run(scenario()) is UpsertDecision.FAILED
