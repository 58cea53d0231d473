"""Per-post comment tree.

One ``PostCommentTree`` exists per post per viewer. It is never shared
between viewers and never persisted: a viewer rebuilds it from the network
whenever it mounts.
"""

from pydantic import Field

from discuss.domain.model.comment import CommentNode, Pagination
from discuss.domain.model.common import DomainModel
from discuss.domain.value import CommentId, PostId


class PostCommentTree(DomainModel):
    """Flat arena of comment nodes plus the ordered top-level list.

    Attributes:
        post_id: Post the discussion belongs to
        nodes_by_id: Every loaded node at any depth, keyed by id
        root_ids: Top-level comment ids, newest first, local adds at the head
        root_pagination: Cursor for the top-level list
        comments_count: Server total of top-level comments only
        removed_ids: Ids deleted in this session, never re-admitted by a page
    """

    post_id: PostId
    nodes_by_id: dict[CommentId, CommentNode] = Field(default_factory=dict)
    root_ids: tuple[CommentId, ...] = ()
    root_pagination: Pagination = Pagination()
    comments_count: int = Field(default=0, ge=0)
    removed_ids: frozenset[CommentId] = frozenset()

    @classmethod
    def empty(cls, post_id: PostId, comments_count: int = 0) -> "PostCommentTree":
        """Create a tree with nothing loaded yet."""
        return cls(post_id=post_id, comments_count=comments_count)

    def __contains__(self, comment_id: object) -> bool:
        return comment_id in self.nodes_by_id

    def child_ids(self, parent_id: CommentId | None) -> tuple[CommentId, ...]:
        """Ordered ids under ``parent_id`` (``None`` for the top level)."""
        if parent_id is None:
            return self.root_ids
        node = self.nodes_by_id.get(parent_id)
        return node.children if node else ()

    def children_of(self, parent_id: CommentId | None) -> list[CommentNode]:
        """Ordered nodes under ``parent_id`` (``None`` for the top level)."""
        return [self.nodes_by_id[cid] for cid in self.child_ids(parent_id)]

    def pagination_for(self, parent_id: CommentId | None) -> Pagination | None:
        """Cursor for ``parent_id``'s level, or None when the node is absent."""
        if parent_id is None:
            return self.root_pagination
        node = self.nodes_by_id.get(parent_id)
        return node.pagination if node else None
