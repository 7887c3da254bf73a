"""
Screen state reducers.

Turns the repository's live cache streams and refresh outcomes into the
small closed set of states a UI renders.
"""

from .cell import StateCell
from .reducers import PostDetailReducer, PostListReducer
from .types import (
    CONNECTIVITY_HINT,
    LOADING,
    UNKNOWN_ERROR,
    ErrorState,
    Loading,
    PostDetailState,
    PostDetailSuccess,
    PostListState,
    PostListSuccess,
    is_success,
    mark_offline,
)

__all__ = [
    # Reducers
    "PostListReducer",
    "PostDetailReducer",
    "StateCell",
    # States
    "Loading",
    "LOADING",
    "PostListSuccess",
    "PostDetailSuccess",
    "ErrorState",
    "PostListState",
    "PostDetailState",
    "is_success",
    "mark_offline",
    # Messages
    "CONNECTIVITY_HINT",
    "UNKNOWN_ERROR",
]
