from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.category import Category
from ..models.cost import CostEntry
from ..schemas.stat import Stat, StatGroup, Window

if TYPE_CHECKING:
    from .store import LedgerStore


async def query_stats(
    session: AsyncSession,
    account_id: int,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> list[StatGroup]:
    """Per-category entry count and amount sum, ``date_from`` inclusive, ``date_to`` exclusive."""
    stmt = (
        select(
            Category.id,
            Category.alias,
            Category.name,
            func.count(CostEntry.id),
            func.coalesce(func.sum(CostEntry.amount_minor), 0),
        )
        .join(CostEntry, CostEntry.category_id == Category.id)
        .where(Category.account_id == account_id)
        .group_by(Category.id, Category.alias, Category.name)
        .order_by(Category.id)
    )
    if date_from is not None:
        stmt = stmt.where(CostEntry.occurred_at >= date_from)
    if date_to is not None:
        stmt = stmt.where(CostEntry.occurred_at < date_to)

    result = await session.execute(stmt)
    return [
        StatGroup(
            category_id=category_id,
            alias=alias,
            name=name,
            entry_count=int(count),
            amount_sum=int(amount),
        )
        for category_id, alias, name, count, amount in result.all()
    ]


def start_of_day(day: date) -> datetime:
    """Midnight UTC of ``day``."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def month_window(now: datetime) -> Window:
    """The UTC calendar month containing ``now``."""
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)
    return Window(start=start, end=end)


async def compute_stat(store: "LedgerStore", account_id: int, window: Optional[Window] = None) -> Stat:
    if window is None:
        groups = await store.query_stats(account_id)
    else:
        groups = await store.query_stats(account_id, window.start, window.end)
    return Stat(groups=groups)


async def compute_stat_this_month(
    store: "LedgerStore", account_id: int, now: Optional[datetime] = None
) -> Stat:
    window = month_window(now or datetime.now(timezone.utc))
    return await compute_stat(store, account_id, window)
