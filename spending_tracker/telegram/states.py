"""Per-account conversation states.

Each state is a small immutable record carrying only what its flow still
needs. ``ConversationState`` is the closed union of all of them; the
conversation dispatcher keeps one handler per member.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class AwaitingNewCategoryAlias:
    pass


@dataclass(frozen=True)
class AwaitingNewCategoryName:
    alias: str


@dataclass(frozen=True)
class AwaitingRenameAlias:
    pass


@dataclass(frozen=True)
class AwaitingRenameNewAlias:
    category_id: int
    alias: str


@dataclass(frozen=True)
class AwaitingRenameNewName:
    category_id: int
    alias: str
    new_alias: str


@dataclass(frozen=True)
class AwaitingCostCategory:
    amount_minor: int


@dataclass(frozen=True)
class AwaitingCostAmount:
    category_id: int


ConversationState = Union[
    Start,
    AwaitingNewCategoryAlias,
    AwaitingNewCategoryName,
    AwaitingRenameAlias,
    AwaitingRenameNewAlias,
    AwaitingRenameNewName,
    AwaitingCostCategory,
    AwaitingCostAmount,
]
