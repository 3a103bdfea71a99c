"""
ChannelAdvisor REST API module.
"""

from .client import ChannelAdvisorClient, convert_date
from .dispatch import RequestDispatcher
from .fetcher import PageFetcher, build_page_url
from .models import PageRequest, PageResult, RetryContext
from .paginator import Paginator
from .retry import RetryPolicy
from .throttle import ConcurrencyThrottle, ThrottleSlot

__all__ = [
    "ChannelAdvisorClient",
    "convert_date",
    "RequestDispatcher",
    "PageFetcher",
    "build_page_url",
    "PageRequest",
    "PageResult",
    "RetryContext",
    "Paginator",
    "RetryPolicy",
    "ConcurrencyThrottle",
    "ThrottleSlot",
]
