from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..models.category import Category
from ..schemas.stat import Stat

CENTS = Decimal("0.01")
MINOR_UNITS_PER_MAJOR = 100
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
AMOUNT_RE = re.compile(r"^\d[\d,]*(\.\d+)?$")
# Largest value the BIGINT amount column holds.
MAX_AMOUNT_MINOR = 2**63 - 1


def parse_amount_token(raw: str) -> int:
    """Parse ``12.50`` or ``1,250`` into a positive amount of minor units.

    Only plain digits with optional thousands commas and a decimal part are
    accepted; signs, exponents and underscores are rejected.
    """
    if not AMOUNT_RE.match(raw):
        raise ValueError(f"Invalid amount '{raw}'.")
    try:
        value = Decimal(raw.replace(",", "")).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError("Amount is too large.") from exc
    if value <= 0:
        raise ValueError("Amount must be greater than zero.")
    amount = int(value * MINOR_UNITS_PER_MAJOR)
    if amount > MAX_AMOUNT_MINOR:
        raise ValueError("Amount is too large.")
    return amount


def format_amount(amount_minor: int) -> str:
    return f"{Decimal(amount_minor).scaleb(-2):.2f}"


def parse_iso_date(value: str) -> date:
    if not ISO_DATE_RE.match(value):
        raise ValueError("Dates must be in YYYY-MM-DD format.")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError("Dates must be in YYYY-MM-DD format.") from exc


def format_categories(categories: Iterable[Category]) -> str:
    lines = [str(category) for category in categories]
    if not lines:
        return "No categories created"
    return "Categories\n" + "\n".join(lines)


def format_stat(stat: Stat) -> str:
    lines = [
        f"-> {group.name}: n={group.entry_count}, amount={format_amount(group.amount_sum)}"
        for group in stat.groups
    ]
    lines.append(f"Items: {stat.total_count}  Amount: {format_amount(stat.total_amount)}")
    return "\n".join(lines)
