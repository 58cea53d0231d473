"""Records exchanged with the network client.

These mirror what the remote API returns for comments, comment pages,
like toggles and posts. Field names accept both snake_case and the
camelCase spelling used on the wire.
"""

from datetime import datetime

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from discuss.domain.value.common import ValueObject
from discuss.domain.value.identifiers import CommentId, PostId, UserId


class WireRecord(ValueObject):
    """Value object that also validates from camelCase payloads."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CommentPayload(WireRecord):
    """A comment as delivered by the server.

    ``replies`` is only present when the query asked for nested replies,
    and may be a partial first page of them. ``like_user_ids`` is likewise
    optional and possibly partial; ``likes_count`` is authoritative.
    """

    id: CommentId
    post_id: PostId
    parent_id: CommentId | None = None
    author_id: UserId
    author_name: str | None = None
    author_avatar: str | None = None
    content: str
    created_at: datetime
    edited_at: datetime | None = None
    likes_count: int = Field(default=0, ge=0)
    like_user_ids: frozenset[UserId] | None = None
    replies_count: int = Field(default=0, ge=0)
    replies: list["CommentPayload"] | None = None
    has_more: bool | None = None


class CommentPage(WireRecord):
    """One page of comments or replies."""

    items: list[CommentPayload] = Field(default_factory=list)
    total_count: int | None = Field(default=None, ge=0)
    has_more: bool = False


class LikeSnapshot(WireRecord):
    """Server view of a comment's likes after a like or unlike."""

    comment_id: CommentId
    likes_count: int = Field(ge=0)
    like_user_ids: frozenset[UserId] | None = None


class PostSummary(WireRecord):
    """The parts of a post the comment viewers care about."""

    id: PostId
    author_id: UserId
    title: str = ""
    comments_count: int = Field(default=0, ge=0)
    likes_count: int = Field(default=0, ge=0)
    created_at: datetime | None = None


class PostPage(WireRecord):
    """One page of posts."""

    items: list[PostSummary] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)


CommentPayload.model_rebuild()
