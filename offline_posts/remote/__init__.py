"""
Remote post sources.
"""

from .base import RemoteSource
from .http import POSTS_ENDPOINT, HttpRemoteSource, client_timeout

__all__ = [
    "RemoteSource",
    "HttpRemoteSource",
    "POSTS_ENDPOINT",
    "client_timeout",
]
