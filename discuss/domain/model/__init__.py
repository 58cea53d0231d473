"""Domain model entities for discuss."""

from discuss.domain.model.change import (
    MergeResult,
    PageRequest,
    RemovedSubtree,
    TreeChange,
)
from discuss.domain.model.comment import EXHAUSTED, CommentNode, Pagination
from discuss.domain.model.tree import PostCommentTree

__all__ = [
    "CommentNode",
    "EXHAUSTED",
    "MergeResult",
    "PageRequest",
    "Pagination",
    "PostCommentTree",
    "RemovedSubtree",
    "TreeChange",
]
