"""
Result cache package - SQLite only.
"""

from .models import CacheEntry
from .sqlite import SQLiteResultCache

__all__ = [
    "CacheEntry",
    "SQLiteResultCache",
]
