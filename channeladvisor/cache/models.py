"""
Pydantic models for cached results.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """A cached query result of one account."""
    account: str
    query: str
    payload: Any
    created_at: datetime
    expires_at: datetime
