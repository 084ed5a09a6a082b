from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.category import Category
from .errors import ConflictError


async def list_categories(session: AsyncSession, account_id: int) -> Sequence[Category]:
    """Categories of an account in creation order."""
    result = await session.execute(
        select(Category).where(Category.account_id == account_id).order_by(Category.id)
    )
    return result.scalars().all()


async def get_category_by_alias(
    session: AsyncSession, account_id: int, alias: str
) -> Optional[Category]:
    result = await session.execute(
        select(Category)
        .where(Category.account_id == account_id, Category.alias == alias)
        .limit(1)
    )
    return result.scalars().first()


async def create_category(session: AsyncSession, account_id: int, alias: str, name: str) -> Category:
    category = Category(account_id=account_id, alias=alias, name=name)
    session.add(category)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError(f"Alias '{alias}' is already in use.") from exc
    await session.refresh(category)
    return category


async def rename_category(
    session: AsyncSession,
    account_id: int,
    category_id: int,
    new_alias: str,
    new_name: str,
) -> bool:
    """Change alias and name of a category addressed by its id.

    Returns ``False`` when the category does not exist in the account.
    """
    category = await session.get(Category, category_id)
    if category is None or category.account_id != account_id:
        return False
    category.alias = new_alias
    category.name = new_name
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError(f"Alias '{new_alias}' is already in use.") from exc
    return True
