"""
ChannelAdvisor REST API access.
"""

from .auth import LegacyCredentials, RestCredentials, TokenManager
from .config import Settings, configure_logging, settings
from .errors import (
    AuthError,
    ChannelAdvisorError,
    ErrorKind,
    ThrottleQueueFull,
    TokenRefreshed,
)
from .rest import ChannelAdvisorClient

__all__ = [
    "LegacyCredentials",
    "RestCredentials",
    "TokenManager",
    "Settings",
    "configure_logging",
    "settings",
    "AuthError",
    "ChannelAdvisorError",
    "ErrorKind",
    "ThrottleQueueFull",
    "TokenRefreshed",
    "ChannelAdvisorClient",
]
