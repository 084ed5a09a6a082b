from __future__ import annotations

import logging
import textwrap
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, get_args

from ..models.base import utcnow
from ..models.category import ALIAS_MAX_LENGTH, NAME_MAX_LENGTH
from ..schemas.stat import Window
from ..services.errors import ConflictError, LedgerError, StoreError, ValidationError
from ..services.resolver import resolve_category
from ..services.stats import compute_stat, compute_stat_this_month, start_of_day
from ..services.store import LedgerStore
from .helpers import (
    format_amount,
    format_categories,
    format_stat,
    parse_amount_token,
    parse_iso_date,
)
from .sessions import SessionStore
from .states import (
    AwaitingCostAmount,
    AwaitingCostCategory,
    AwaitingNewCategoryAlias,
    AwaitingNewCategoryName,
    AwaitingRenameAlias,
    AwaitingRenameNewAlias,
    AwaitingRenameNewName,
    ConversationState,
    Start,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandSpec:
    name: str
    description: str
    aliases: tuple[str, ...] = ()
    usage: Optional[str] = None


COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec("help", "Show this help"),
    CommandSpec("start", "Start the bot"),
    CommandSpec("list_categories", "List of categories", aliases=("lc",)),
    CommandSpec("add_category", "New category", aliases=("nc",)),
    CommandSpec("update_category", "Update category", aliases=("uc",)),
    CommandSpec(
        "add_cost",
        "Add cost (alias YYYY-MM-DD XX.XX)",
        aliases=("cost",),
        usage="/add_cost <alias> <YYYY-MM-DD> <amount>",
    ),
    CommandSpec("remove_last_cost", "Remove last cost", aliases=("rm",)),
    CommandSpec("stat_this_month", "Stat this month", aliases=("stm",)),
    CommandSpec(
        "stat_period",
        "Overall stat in period (YYYY-MM-DD YYYY-MM-DD)",
        aliases=("sp",),
        usage="/stat_period <YYYY-MM-DD> <YYYY-MM-DD>",
    ),
)

COMMANDS_BY_NAME = {spec.name: spec for spec in COMMANDS}

GREETING = textwrap.dedent(
    """
    Hi! I keep track of your spending.

    Create a category with /add_category, then just send "<alias> <amount>" (e.g. "food 12.50") to log a cost.
    Send /help to see every command.
    """
).strip()

HELP_POINTER = "Send /help to see what I can do."
FAILURE_REPLY = "Something went wrong while talking to the database. Please try again."
ALIAS_TOO_LONG = f"Alias must be at most {ALIAS_MAX_LENGTH} characters"
NAME_TOO_LONG = f"Name must be at most {NAME_MAX_LENGTH} characters"


def help_text() -> str:
    lines = []
    for spec in COMMANDS:
        names = " | ".join(f"/{name}" for name in (spec.name, *spec.aliases))
        lines.append(f"{names} - {spec.description}")
    return "\n".join(lines)


StateHandler = Callable[[int, Any, str], Awaitable[str]]
CommandHandler = Callable[[int, list[str]], Awaitable[str]]


class Conversation:
    """Routes one account's messages through its conversation state.

    Top-level commands discard any pending flow before running. Plain text is
    handed to the handler of the account's current state. Handlers only move
    the state forward after their writes succeed, so a ``StoreError`` leaves the
    session where it was and the user can simply resend.
    """

    def __init__(
        self,
        store: LedgerStore,
        sessions: Optional[SessionStore] = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.sessions = sessions if sessions is not None else SessionStore()
        self._clock = clock
        self._state_handlers: dict[type, StateHandler] = {
            Start: self._on_free_text,
            AwaitingNewCategoryAlias: self._on_new_category_alias,
            AwaitingNewCategoryName: self._on_new_category_name,
            AwaitingRenameAlias: self._on_rename_alias,
            AwaitingRenameNewAlias: self._on_rename_new_alias,
            AwaitingRenameNewName: self._on_rename_new_name,
            AwaitingCostCategory: self._on_cost_category,
            AwaitingCostAmount: self._on_cost_amount,
        }
        missing = set(get_args(ConversationState)) - set(self._state_handlers)
        if missing:
            raise RuntimeError(f"No handler for states: {sorted(s.__name__ for s in missing)}")
        self._command_handlers: dict[str, CommandHandler] = {
            "help": self._cmd_help,
            "start": self._cmd_start,
            "list_categories": self._cmd_list_categories,
            "add_category": self._cmd_add_category,
            "update_category": self._cmd_update_category,
            "add_cost": self._cmd_add_cost,
            "remove_last_cost": self._cmd_remove_last_cost,
            "stat_this_month": self._cmd_stat_this_month,
            "stat_period": self._cmd_stat_period,
        }

    def state(self, account_id: int) -> ConversationState:
        return self.sessions.get(account_id)

    async def handle_command(self, account_id: int, name: str, args: Sequence[str] = ()) -> str:
        handler = self._command_handlers.get(name)
        if handler is None:
            return f"Unknown command /{name}. {HELP_POINTER}"
        async with self.sessions.lock(account_id):
            previous = self.sessions.get(account_id)
            self.sessions.reset(account_id)
            try:
                return await handler(account_id, list(args))
            except StoreError:
                logger.exception("Store failure while running /%s for account %s", name, account_id)
                self.sessions.set(account_id, previous)
                return FAILURE_REPLY
            except LedgerError as exc:
                return str(exc)

    async def handle_text(self, account_id: int, text: str) -> str:
        async with self.sessions.lock(account_id):
            state = self.sessions.get(account_id)
            handler = self._state_handlers[type(state)]
            try:
                return await handler(account_id, state, text.strip())
            except StoreError:
                logger.exception(
                    "Store failure in state %s for account %s", type(state).__name__, account_id
                )
                return FAILURE_REPLY
            except LedgerError as exc:
                return str(exc)

    # Commands

    async def _cmd_help(self, account_id: int, args: list[str]) -> str:
        return help_text()

    async def _cmd_start(self, account_id: int, args: list[str]) -> str:
        return GREETING

    async def _cmd_list_categories(self, account_id: int, args: list[str]) -> str:
        return format_categories(await self.store.list_categories(account_id))

    async def _cmd_add_category(self, account_id: int, args: list[str]) -> str:
        self.sessions.set(account_id, AwaitingNewCategoryAlias())
        return "Specify category alias"

    async def _cmd_update_category(self, account_id: int, args: list[str]) -> str:
        categories = await self.store.list_categories(account_id)
        self.sessions.set(account_id, AwaitingRenameAlias())
        return "Specify alias for category to update\n\n" + format_categories(categories)

    async def _cmd_add_cost(self, account_id: int, args: list[str]) -> str:
        if len(args) != 3:
            return "Usage: " + COMMANDS_BY_NAME["add_cost"].usage
        alias, date_raw, amount_raw = args
        category = await self.store.find_category_by_alias(account_id, alias)
        if category is None:
            raise ValidationError(
                f"Category '{alias}' not found. Provide an existing category alias."
            )
        try:
            day = parse_iso_date(date_raw)
        except ValueError as exc:
            raise ValidationError("Provide date in YYYY-MM-DD format") from exc
        try:
            amount = parse_amount_token(amount_raw)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        await self.store.create_cost(category.id, amount, start_of_day(day))
        logger.info("Cost of %s logged for account %s on %s", amount, account_id, day)
        return f"Created! {format_amount(amount)} for {category.name} on {day.isoformat()}"

    async def _cmd_remove_last_cost(self, account_id: int, args: list[str]) -> str:
        removed = await self.store.remove_last_cost(account_id)
        if removed is None:
            return "Nothing to remove"
        return "Removed"

    async def _cmd_stat_this_month(self, account_id: int, args: list[str]) -> str:
        stat = await compute_stat_this_month(self.store, account_id, now=self._clock())
        return format_stat(stat)

    async def _cmd_stat_period(self, account_id: int, args: list[str]) -> str:
        if len(args) != 2:
            return "Usage: " + COMMANDS_BY_NAME["stat_period"].usage
        try:
            date_from = parse_iso_date(args[0])
        except ValueError as exc:
            raise ValidationError("Provide date from in YYYY-MM-DD format") from exc
        try:
            date_to = parse_iso_date(args[1])
        except ValueError as exc:
            raise ValidationError("Provide date to in YYYY-MM-DD format") from exc
        if date_from >= date_to:
            raise ValidationError("Date from must be before date to")
        window = Window(start=start_of_day(date_from), end=start_of_day(date_to))
        return format_stat(await compute_stat(self.store, account_id, window))

    # Flow steps

    async def _on_free_text(self, account_id: int, state: Start, text: str) -> str:
        categories = await self.store.list_categories(account_id)
        amount: Optional[int] = None
        category = None
        # Later tokens overwrite earlier candidates: the last match wins.
        for token in text.split():
            try:
                amount = parse_amount_token(token)
            except ValueError:
                pass
            match = resolve_category(categories, token)
            if match is not None:
                category = match

        if amount is not None and category is not None:
            await self.store.create_cost(category.id, amount)
            logger.info("Cost of %s logged for account %s", amount, account_id)
            return f"Added! {format_amount(amount)} for {category.name}"
        if category is not None:
            self.sessions.set(account_id, AwaitingCostAmount(category_id=category.id))
            return "How much?"
        if amount is not None:
            self.sessions.set(account_id, AwaitingCostCategory(amount_minor=amount))
            return "Specify category alias\n\n" + format_categories(categories)
        return HELP_POINTER

    async def _on_new_category_alias(
        self, account_id: int, state: AwaitingNewCategoryAlias, text: str
    ) -> str:
        if not text or len(text.split()) != 1:
            return "Give a one-word alias for category"
        if len(text) > ALIAS_MAX_LENGTH:
            return ALIAS_TOO_LONG
        existing = await self.store.find_category_by_alias(account_id, text)
        if existing is not None:
            return f"This alias is reserved for {existing.name}"
        self.sessions.set(account_id, AwaitingNewCategoryName(alias=text))
        return "Give full name"

    async def _on_new_category_name(
        self, account_id: int, state: AwaitingNewCategoryName, text: str
    ) -> str:
        if not text:
            return "Give a name for category"
        if len(text) > NAME_MAX_LENGTH:
            return NAME_TOO_LONG
        try:
            await self.store.create_category(account_id, state.alias, text)
        except ConflictError as exc:
            return f"{exc} Send /add_category to start over."
        self.sessions.set(account_id, Start())
        logger.info("Category %r created for account %s", state.alias, account_id)
        return f"Category saved\nAlias={state.alias}\nName={text}"

    async def _on_rename_alias(self, account_id: int, state: AwaitingRenameAlias, text: str) -> str:
        categories = await self.store.list_categories(account_id)
        category = resolve_category(categories, text)
        if category is None:
            return "Specify alias for category to update\n\n" + format_categories(categories)
        self.sessions.set(
            account_id, AwaitingRenameNewAlias(category_id=category.id, alias=category.alias)
        )
        return "Provide new alias"

    async def _on_rename_new_alias(
        self, account_id: int, state: AwaitingRenameNewAlias, text: str
    ) -> str:
        if not text or len(text.split()) != 1:
            return "Provide a one-word alias"
        if len(text) > ALIAS_MAX_LENGTH:
            return ALIAS_TOO_LONG
        existing = await self.store.find_category_by_alias(account_id, text)
        if existing is not None and existing.id != state.category_id:
            return f"This alias is reserved for {existing.name}"
        self.sessions.set(
            account_id,
            AwaitingRenameNewName(category_id=state.category_id, alias=state.alias, new_alias=text),
        )
        return "Provide name"

    async def _on_rename_new_name(
        self, account_id: int, state: AwaitingRenameNewName, text: str
    ) -> str:
        if not text:
            return "Provide a name"
        if len(text) > NAME_MAX_LENGTH:
            return NAME_TOO_LONG
        try:
            renamed = await self.store.rename_category(
                account_id, state.category_id, state.new_alias, text
            )
        except ConflictError as exc:
            return f"{exc} Send /update_category to start over."
        self.sessions.set(account_id, Start())
        if not renamed:
            return "Category no longer exists"
        logger.info("Category %r renamed to %r for account %s", state.alias, state.new_alias, account_id)
        return "Category updated"

    async def _on_cost_category(
        self, account_id: int, state: AwaitingCostCategory, text: str
    ) -> str:
        categories = await self.store.list_categories(account_id)
        category = resolve_category(categories, text)
        if category is None:
            return "Specify category alias\n\n" + format_categories(categories)
        await self.store.create_cost(category.id, state.amount_minor)
        self.sessions.set(account_id, Start())
        return f"Saved! {format_amount(state.amount_minor)} for {category.name}"

    async def _on_cost_amount(self, account_id: int, state: AwaitingCostAmount, text: str) -> str:
        try:
            amount = parse_amount_token(text)
        except ValueError:
            return "Specify amount"
        await self.store.create_cost(state.category_id, amount)
        self.sessions.set(account_id, Start())
        return f"Created! {format_amount(amount)}"
