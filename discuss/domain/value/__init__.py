"""Domain value objects for discuss."""

from discuss.domain.value.identifiers import CommentId, PostId, UserId
from discuss.domain.value.types import (
    FetchPolicy,
    MutationKind,
    MutationState,
    RefusalReason,
    ViewerKind,
)

__all__ = [
    # Identifiers
    "CommentId",
    "PostId",
    "UserId",
    # Types
    "FetchPolicy",
    "MutationKind",
    "MutationState",
    "RefusalReason",
    "ViewerKind",
]
