"""
Authentication package.
"""

from .tokens import (
    TokenManager,
    Credential,
    RestCredentials,
    LegacyCredentials,
    GrantFlow,
)

__all__ = [
    "TokenManager",
    "Credential",
    "RestCredentials",
    "LegacyCredentials",
    "GrantFlow",
]
