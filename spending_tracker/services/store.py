from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import Any, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.category import Category
from ..schemas.stat import StatGroup
from . import categories, costs, stats
from .errors import StoreError

T = TypeVar("T")


class LedgerStore:
    """Account-scoped access to categories and costs.

    Each call runs in its own session and is committed before it returns.
    Database failures surface as :class:`StoreError`; ``ConflictError`` and
    ``ValidationError`` from the services pass through untouched.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _run(self, operation: Callable[..., Awaitable[T]], *args: Any) -> T:
        try:
            async with self._session_factory() as session:
                return await operation(session, *args)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def list_categories(self, account_id: int) -> Sequence[Category]:
        return await self._run(categories.list_categories, account_id)

    async def find_category_by_alias(self, account_id: int, alias: str) -> Optional[Category]:
        return await self._run(categories.get_category_by_alias, account_id, alias)

    async def create_category(self, account_id: int, alias: str, name: str) -> int:
        category = await self._run(categories.create_category, account_id, alias, name)
        return category.id

    async def rename_category(
        self, account_id: int, category_id: int, new_alias: str, new_name: str
    ) -> bool:
        return await self._run(
            categories.rename_category, account_id, category_id, new_alias, new_name
        )

    async def create_cost(
        self, category_id: int, amount_minor: int, occurred_at: Optional[datetime] = None
    ) -> int:
        cost = await self._run(costs.create_cost, category_id, amount_minor, occurred_at)
        return cost.id

    async def remove_last_cost(self, account_id: int) -> Optional[int]:
        return await self._run(costs.remove_last_cost, account_id)

    async def query_stats(
        self,
        account_id: int,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[StatGroup]:
        return await self._run(stats.query_stats, account_id, date_from, date_to)
