from .base import Base, UTCDateTime
from .category import Category
from .cost import CostEntry

__all__ = [
    "Base",
    "UTCDateTime",
    "Category",
    "CostEntry",
]
