from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.category import Category
from ..models.cost import CostEntry
from .errors import ValidationError


async def create_cost(
    session: AsyncSession,
    category_id: int,
    amount_minor: int,
    occurred_at: Optional[datetime] = None,
) -> CostEntry:
    """Persist a new cost entry; ``occurred_at`` defaults to now."""
    category = await session.get(Category, category_id)
    if category is None:
        raise ValidationError("Category not found")

    cost = CostEntry(
        category_id=category.id,
        amount_minor=amount_minor,
        occurred_at=occurred_at or utcnow(),
    )
    session.add(cost)
    await session.commit()
    await session.refresh(cost)
    return cost


async def remove_last_cost(session: AsyncSession, account_id: int) -> Optional[int]:
    """Delete the most recently created cost of an account.

    Recency is the insertion sequence (``CostEntry.id``), not ``occurred_at``,
    so a back-dated entry logged last is the one removed.
    """
    result = await session.execute(
        select(CostEntry.id)
        .join(Category, CostEntry.category_id == Category.id)
        .where(Category.account_id == account_id)
        .order_by(CostEntry.id.desc())
        .limit(1)
    )
    cost_id = result.scalars().first()
    if cost_id is None:
        return None
    await session.execute(delete(CostEntry).where(CostEntry.id == cost_id))
    await session.commit()
    return cost_id
