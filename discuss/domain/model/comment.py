"""Comment node entity.

Comments form a tree per post. The tree is stored flat (see
``PostCommentTree``): a node only references its children by id, which keeps
copy-on-write updates confined to the node being changed.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from discuss.domain.model.common import DomainModel
from discuss.domain.value import CommentId, PostId, UserId
from discuss.domain.value.payload import CommentPayload


class Pagination(DomainModel):
    """Cursor for one level of the tree (a node's replies or the root list).

    ``next_page`` is the page to request next, ``has_more`` is False once the
    server said there is nothing beyond what was loaded, and ``loading`` is
    True while a fetch for this level is in flight.
    """

    next_page: int = Field(default=1, ge=1)
    has_more: bool = True
    loading: bool = False

    @property
    def can_load(self) -> bool:
        return self.has_more and not self.loading

    def started(self) -> "Pagination":
        return self.model_copy(update={"loading": True})

    def failed(self) -> "Pagination":
        return self.model_copy(update={"loading": False})

    def advanced(self, page: int, has_more: bool) -> "Pagination":
        return Pagination(next_page=page + 1, has_more=has_more, loading=False)


EXHAUSTED = Pagination(has_more=False)


class CommentNode(DomainModel):
    """A comment or reply held in a viewer's cache.

    Counters are server-authoritative:
    - likes_count is what the server reported, even when like_user_ids only
      holds a partial liker list; the set only answers "does X like this"
    - replies_count counts direct children on the server and may exceed the
      number of children loaded locally
    """

    id: CommentId
    post_id: PostId
    parent_id: Optional[CommentId] = None
    author_id: UserId
    author_name: Optional[str] = None
    author_avatar: Optional[str] = None
    content: str
    created_at: datetime = Field(default_factory=datetime.now)
    edited_at: Optional[datetime] = None
    like_user_ids: frozenset[UserId] = frozenset()
    likes_count: int = Field(default=0, ge=0)
    replies_count: int = Field(default=0, ge=0)
    children: tuple[CommentId, ...] = ()
    pagination: Pagination = Pagination()
    provisional: bool = False

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def liked_by(self, user_id: UserId | None) -> bool:
        """Whether ``user_id`` is known to like this comment."""
        return user_id is not None and user_id in self.like_user_ids

    @classmethod
    def from_payload(
        cls,
        payload: CommentPayload,
        parent_id: CommentId | None = None,
        post_id: PostId | None = None,
    ) -> "CommentNode":
        """Build a childless node from a server record.

        Nested replies are not attached here; the merge engine registers them
        so that deduplication applies to them as well.

        Args:
            payload: Comment as delivered by the server
            parent_id: Parent to attach to, overriding the payload's own
            post_id: Owning post, overriding the payload's own

        Returns:
            Node whose pagination reflects how many replies the server holds
        """
        replies = payload.replies or []
        if payload.has_more is not None:
            has_more = payload.has_more
        else:
            has_more = len(replies) < payload.replies_count
        return cls(
            id=payload.id,
            post_id=post_id or payload.post_id,
            parent_id=parent_id if parent_id is not None else payload.parent_id,
            author_id=payload.author_id,
            author_name=payload.author_name,
            author_avatar=payload.author_avatar,
            content=payload.content,
            created_at=payload.created_at,
            edited_at=payload.edited_at,
            like_user_ids=payload.like_user_ids or frozenset(),
            likes_count=payload.likes_count,
            replies_count=payload.replies_count,
            pagination=Pagination(next_page=1, has_more=has_more),
        )
