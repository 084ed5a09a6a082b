from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from ..models.category import Category


def resolve_category(categories: Iterable[Category], token: str) -> Optional[Category]:
    """Return the single category whose alias equals ``token`` exactly.

    Matching is case-sensitive with no prefix or fuzzy matching. Zero or
    several matches both resolve to ``None``.
    """
    matches = [category for category in categories if category.alias == token]
    if len(matches) != 1:
        return None
    return matches[0]
