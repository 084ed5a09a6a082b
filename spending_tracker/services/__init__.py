from .categories import create_category, get_category_by_alias, list_categories, rename_category
from .costs import create_cost, remove_last_cost
from .errors import ConflictError, LedgerError, StoreError, ValidationError
from .resolver import resolve_category
from .stats import compute_stat, compute_stat_this_month, month_window, query_stats, start_of_day
from .store import LedgerStore

__all__ = [
    "list_categories",
    "get_category_by_alias",
    "create_category",
    "rename_category",
    "create_cost",
    "remove_last_cost",
    "query_stats",
    "compute_stat",
    "compute_stat_this_month",
    "month_window",
    "start_of_day",
    "resolve_category",
    "LedgerStore",
    "LedgerError",
    "ValidationError",
    "ConflictError",
    "StoreError",
]
