from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest import IsolatedAsyncioTestCase

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from spending_tracker.db import enable_sqlite_foreign_keys
from spending_tracker.models import Base, CostEntry
from spending_tracker.schemas.stat import Window
from spending_tracker.services import (
    ConflictError,
    LedgerStore,
    StoreError,
    ValidationError,
    compute_stat,
)

ACCOUNT = 528101001
OTHER_ACCOUNT = 528101002


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class LedgerStoreTests(IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        enable_sqlite_foreign_keys(self.engine)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False, class_=AsyncSession
        )
        self.store = LedgerStore(self.session_factory)

    async def asyncTearDown(self) -> None:
        await self.engine.dispose()

    async def test_categories_are_listed_in_creation_order(self) -> None:
        await self.store.create_category(ACCOUNT, "taxi", "Taxi")
        await self.store.create_category(ACCOUNT, "food", "Food")
        await self.store.create_category(OTHER_ACCOUNT, "rent", "Rent")

        categories = await self.store.list_categories(ACCOUNT)

        self.assertEqual([c.alias for c in categories], ["taxi", "food"])
        self.assertEqual(str(categories[1]), "Food (food)")

    async def test_duplicate_alias_conflicts_and_keeps_first_category(self) -> None:
        first_id = await self.store.create_category(ACCOUNT, "food", "Food")

        with self.assertRaises(ConflictError):
            await self.store.create_category(ACCOUNT, "food", "Groceries")

        categories = await self.store.list_categories(ACCOUNT)
        self.assertEqual(len(categories), 1)
        self.assertEqual(categories[0].id, first_id)
        self.assertEqual(categories[0].name, "Food")

    async def test_same_alias_is_allowed_in_another_account(self) -> None:
        await self.store.create_category(ACCOUNT, "food", "Food")
        await self.store.create_category(OTHER_ACCOUNT, "food", "Food")

        self.assertEqual(len(await self.store.list_categories(OTHER_ACCOUNT)), 1)

    async def test_find_category_by_alias_is_exact_and_case_sensitive(self) -> None:
        await self.store.create_category(ACCOUNT, "food", "Food")

        found = await self.store.find_category_by_alias(ACCOUNT, "food")

        self.assertIsNotNone(found)
        self.assertEqual(found.name, "Food")
        self.assertIsNone(await self.store.find_category_by_alias(ACCOUNT, "Food"))
        self.assertIsNone(await self.store.find_category_by_alias(ACCOUNT, "foo"))
        self.assertIsNone(await self.store.find_category_by_alias(OTHER_ACCOUNT, "food"))

    async def test_rename_category_by_id(self) -> None:
        category_id = await self.store.create_category(ACCOUNT, "food", "Food")

        renamed = await self.store.rename_category(ACCOUNT, category_id, "meal", "Meals")

        self.assertTrue(renamed)
        self.assertIsNone(await self.store.find_category_by_alias(ACCOUNT, "food"))
        category = await self.store.find_category_by_alias(ACCOUNT, "meal")
        self.assertEqual((category.id, category.name), (category_id, "Meals"))

    async def test_rename_unknown_or_foreign_category_fails(self) -> None:
        category_id = await self.store.create_category(OTHER_ACCOUNT, "food", "Food")

        self.assertFalse(await self.store.rename_category(ACCOUNT, category_id, "meal", "Meals"))
        self.assertFalse(await self.store.rename_category(ACCOUNT, 9999, "meal", "Meals"))
        untouched = await self.store.find_category_by_alias(OTHER_ACCOUNT, "food")
        self.assertEqual(untouched.name, "Food")

    async def test_rename_to_taken_alias_conflicts(self) -> None:
        await self.store.create_category(ACCOUNT, "food", "Food")
        taxi_id = await self.store.create_category(ACCOUNT, "taxi", "Taxi")

        with self.assertRaises(ConflictError):
            await self.store.rename_category(ACCOUNT, taxi_id, "food", "Taxi")

        taxi = await self.store.find_category_by_alias(ACCOUNT, "taxi")
        self.assertEqual(taxi.id, taxi_id)

    async def test_create_cost_defaults_to_now(self) -> None:
        category_id = await self.store.create_category(ACCOUNT, "food", "Food")
        before = datetime.now(timezone.utc)

        cost_id = await self.store.create_cost(category_id, 1250)

        after = datetime.now(timezone.utc)
        async with self.session_factory() as session:
            cost = await session.get(CostEntry, cost_id)
        self.assertEqual(cost.amount_minor, 1250)
        self.assertEqual(cost.occurred_at.tzinfo, timezone.utc)
        self.assertLessEqual(before - timedelta(seconds=1), cost.occurred_at)
        self.assertLessEqual(cost.occurred_at, after + timedelta(seconds=1))

    async def test_create_cost_keeps_explicit_timestamp(self) -> None:
        category_id = await self.store.create_category(ACCOUNT, "food", "Food")

        cost_id = await self.store.create_cost(category_id, 999, _utc(2025, 1, 15))

        async with self.session_factory() as session:
            cost = await session.get(CostEntry, cost_id)
        self.assertEqual(cost.occurred_at, _utc(2025, 1, 15))

    async def test_create_cost_for_unknown_category_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            await self.store.create_cost(4242, 100)

    async def test_remove_last_cost_follows_creation_order_not_timestamp(self) -> None:
        food = await self.store.create_category(ACCOUNT, "food", "Food")
        taxi = await self.store.create_category(ACCOUNT, "taxi", "Taxi")
        recent = await self.store.create_cost(food, 100, _utc(2025, 3, 1))
        backdated = await self.store.create_cost(taxi, 200, _utc(2024, 1, 1))

        self.assertEqual(await self.store.remove_last_cost(ACCOUNT), backdated)
        self.assertEqual(await self.store.remove_last_cost(ACCOUNT), recent)
        self.assertIsNone(await self.store.remove_last_cost(ACCOUNT))

    async def test_remove_last_cost_is_scoped_to_account(self) -> None:
        mine = await self.store.create_category(ACCOUNT, "food", "Food")
        theirs = await self.store.create_category(OTHER_ACCOUNT, "food", "Food")
        my_cost = await self.store.create_cost(mine, 100)
        await self.store.create_cost(theirs, 300)

        self.assertEqual(await self.store.remove_last_cost(ACCOUNT), my_cost)
        self.assertIsNone(await self.store.remove_last_cost(ACCOUNT))
        stat = await compute_stat(self.store, OTHER_ACCOUNT)
        self.assertEqual(stat.total_amount, 300)

    async def test_query_stats_uses_half_open_window(self) -> None:
        food = await self.store.create_category(ACCOUNT, "food", "Food")
        await self.store.create_cost(food, 100, _utc(2025, 1, 1))
        await self.store.create_cost(food, 200, _utc(2025, 1, 31, 23, 59, 59))
        await self.store.create_cost(food, 400, _utc(2025, 2, 1))

        groups = await self.store.query_stats(ACCOUNT, _utc(2025, 1, 1), _utc(2025, 2, 1))

        self.assertEqual(len(groups), 1)
        self.assertEqual((groups[0].entry_count, groups[0].amount_sum), (2, 300))

    async def test_query_stats_without_bounds_covers_full_history(self) -> None:
        food = await self.store.create_category(ACCOUNT, "food", "Food")
        await self.store.create_cost(food, 100, _utc(2001, 1, 1))
        await self.store.create_cost(food, 200, _utc(2030, 1, 1))

        only_from = await self.store.query_stats(ACCOUNT, date_from=_utc(2020, 1, 1))
        everything = await self.store.query_stats(ACCOUNT)

        self.assertEqual(only_from[0].amount_sum, 200)
        self.assertEqual(everything[0].amount_sum, 300)

    async def test_stat_totals_equal_direct_sums(self) -> None:
        food = await self.store.create_category(ACCOUNT, "food", "Food")
        taxi = await self.store.create_category(ACCOUNT, "taxi", "Taxi")
        fun = await self.store.create_category(ACCOUNT, "fun", "Fun")
        entries = [
            (food, 1250, _utc(2025, 1, 2)),
            (taxi, 999, _utc(2025, 1, 3)),
            (food, 1, _utc(2025, 1, 10)),
            (fun, 33333, _utc(2025, 1, 20)),
            (taxi, 10, _utc(2024, 12, 31)),
            (food, 70, _utc(2025, 2, 1)),
        ]
        for category_id, amount, occurred_at in entries:
            await self.store.create_cost(category_id, amount, occurred_at)
        window = Window(start=_utc(2025, 1, 1), end=_utc(2025, 2, 1))

        stat = await compute_stat(self.store, ACCOUNT, window)

        in_window = [amount for _, amount, at in entries if window.start <= at < window.end]
        self.assertEqual(stat.total_count, len(in_window))
        self.assertEqual(stat.total_amount, sum(in_window))
        self.assertEqual([g.alias for g in stat.groups], ["food", "taxi", "fun"])
        self.assertEqual([g.amount_sum for g in stat.groups], [1251, 999, 33333])

    async def test_empty_account_gives_zero_stat(self) -> None:
        await self.store.create_category(ACCOUNT, "food", "Food")

        stat = await compute_stat(self.store, ACCOUNT)

        self.assertEqual(stat.groups, [])
        self.assertEqual((stat.total_count, stat.total_amount), (0, 0))


class LedgerStoreFailureTests(IsolatedAsyncioTestCase):
    async def test_database_errors_surface_as_store_error(self) -> None:
        engine = create_async_engine("sqlite+aiosqlite:////nonexistent-dir/ledger.db")
        store = LedgerStore(async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession))
        try:
            with self.assertRaises(StoreError):
                await store.list_categories(ACCOUNT)
        finally:
            await engine.dispose()
