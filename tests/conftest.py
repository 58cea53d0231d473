"""Test configuration and fixtures."""

from datetime import datetime, timedelta

import pytest

from discuss.domain.model import PostCommentTree
from discuss.domain.service import MergeEngine, PaginationCoordinator
from discuss.domain.value import CommentId, PostId, UserId
from discuss.domain.value.payload import CommentPayload

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def make_payload(
    comment_id: str,
    post_id: str = "p1",
    parent_id: str | None = None,
    author_id: str = "bob",
    content: str | None = None,
    likes_count: int = 0,
    like_user_ids: set[str] | None = None,
    replies_count: int = 0,
    replies: list[CommentPayload] | None = None,
    minutes: int = 0,
) -> CommentPayload:
    """Helper to build a server comment record for tests."""
    return CommentPayload(
        id=CommentId(comment_id),
        post_id=PostId(post_id),
        parent_id=CommentId(parent_id) if parent_id else None,
        author_id=UserId(author_id),
        content=content if content is not None else f"comment {comment_id}",
        created_at=BASE_TIME + timedelta(minutes=minutes),
        likes_count=likes_count,
        like_user_ids=frozenset(like_user_ids) if like_user_ids is not None else None,
        replies_count=replies_count,
        replies=replies,
    )


def load_roots(
    engine: MergeEngine, tree: PostCommentTree, *payloads: CommentPayload
) -> PostCommentTree:
    """Helper to merge a single exhausted top-level page into ``tree``."""
    return engine.merge_page(tree, None, 1, list(payloads), has_more=False).tree


@pytest.fixture
def engine() -> MergeEngine:
    return MergeEngine()


@pytest.fixture
def coordinator() -> PaginationCoordinator:
    return PaginationCoordinator()


@pytest.fixture
def empty_tree() -> PostCommentTree:
    return PostCommentTree.empty(PostId("p1"))
