from .stat import Stat, StatGroup, Window

__all__ = [
    "Stat",
    "StatGroup",
    "Window",
]
