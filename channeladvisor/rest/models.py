"""
Pydantic models and value types for the REST layer.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    """One page of a collection endpoint."""
    base_url: str
    page_index: int = 1  # 1-based
    page_size: Optional[int] = None
    request_total_count: bool = False

    @property
    def skip(self) -> int:
        """Number of records preceding this page."""
        if self.page_index == 1 or not self.page_size:
            return 0
        return (self.page_index - 1) * self.page_size


class PageResult(BaseModel, Generic[T]):
    """
    Decoded OData envelope of a collection response.

    ``total_count`` and ``next_page_link`` are only emitted by the server on
    the first page of a sequence.
    """
    model_config = ConfigDict(populate_by_name=True)

    items: List[T] = Field(default_factory=list, alias="value")
    total_count: Optional[int] = Field(default=None, alias="@odata.count")
    next_page_link: Optional[str] = Field(default=None, alias="@odata.nextLink")

    @classmethod
    def from_payload(cls, payload: Any) -> "PageResult[T]":
        """Build from a decoded JSON body (``Value`` or ``value`` key)."""
        if isinstance(payload, list):
            return cls(value=payload)
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected response payload: {type(payload).__name__}")

        data = dict(payload)
        if "value" not in data and "Value" in data:
            data["value"] = data.pop("Value")
        if data.get("value") is None:
            data["value"] = []
        return cls.model_validate(data)

    def page_count(self, page_size: int) -> int:
        """Pages needed for ``total_count`` records, plus one margin page."""
        if not self.total_count:
            return 1
        return math.ceil(self.total_count / page_size) + 1


@dataclass
class RetryContext:
    """State of one RetryPolicy.execute call."""
    attempt_number: int = 1
    last_error: Optional[BaseException] = None
    elapsed_backoff: float = 0.0
    backoffs: List[float] = field(default_factory=list)
