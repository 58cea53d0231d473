"""Results returned by the merge engine and the pagination coordinator."""

from typing import Optional

from pydantic import Field

from discuss.domain.model.comment import CommentNode
from discuss.domain.model.common import DomainModel
from discuss.domain.model.tree import PostCommentTree
from discuss.domain.value import CommentId, MutationKind, RefusalReason


class RemovedSubtree(DomainModel):
    """Everything needed to put a deleted subtree back.

    ``index`` is the position the subtree root held in its parent's list.
    """

    root_id: CommentId
    parent_id: Optional[CommentId] = None
    index: int = Field(ge=0)
    nodes: dict[CommentId, CommentNode]


class TreeChange(DomainModel):
    """Describes what an operation did, for minimal re-rendering and undo.

    ``applied`` is False when the operation was a benign no-op (target no
    longer present, parent not loaded, nothing new on the page).
    ``changed_ids`` lists the nodes whose rendering changed: the target and
    its ancestors, or the parent of the level that changed. ``None`` in it
    stands for the top-level list.
    """

    kind: MutationKind
    target_id: Optional[CommentId] = None
    applied: bool = True
    changed_ids: tuple[Optional[CommentId], ...] = ()
    added_ids: tuple[CommentId, ...] = ()
    previous: Optional[CommentNode] = None
    removed: Optional[RemovedSubtree] = None

    @classmethod
    def noop(cls, kind: MutationKind, target_id: CommentId | None) -> "TreeChange":
        return cls(kind=kind, target_id=target_id, applied=False)


class MergeResult(DomainModel):
    """A new tree snapshot together with the change that produced it."""

    tree: PostCommentTree
    change: TreeChange


class PageRequest(DomainModel):
    """Outcome of asking whether a level should be fetched.

    When ``should_fetch`` is True, ``tree`` has the level marked as loading
    and ``page`` is the page to request. Otherwise ``tree`` is unchanged and
    ``reason`` says why.
    """

    tree: PostCommentTree
    should_fetch: bool
    page: int = Field(default=1, ge=1)
    reason: Optional[RefusalReason] = None
