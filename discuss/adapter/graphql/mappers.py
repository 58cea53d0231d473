"""Mappers between GraphQL response documents and domain payloads.

The server names ids ``_id``, nests the author under ``creator`` and lists
likers as ``likes: [{_id}]``. Everything here flattens that shape.
"""

from typing import Any

from discuss.domain.value import CommentId, PostId
from discuss.domain.value.payload import (
    CommentPage,
    CommentPayload,
    LikeSnapshot,
    PostPage,
    PostSummary,
)


def _like_ids(doc: dict[str, Any]) -> frozenset | None:
    likes = doc.get("likes")
    if likes is None:
        return None
    return frozenset(str(like["_id"]) for like in likes if like and like.get("_id"))


def comment_from_document(
    doc: dict[str, Any], post_id: PostId | None = None
) -> CommentPayload:
    """Convert a GraphQL comment document to a payload.

    Args:
        doc: Comment document as returned by the server
        post_id: Post to fall back to when the document does not say

    Returns:
        Comment payload, with nested replies converted recursively
    """
    creator = doc.get("creator") or {}
    owning_post = doc.get("post") or post_id
    replies = doc.get("replies")
    created_at = doc.get("createdAt")
    updated_at = doc.get("updatedAt")

    return CommentPayload(
        id=str(doc["_id"]),
        post_id=str(owning_post) if owning_post is not None else "",
        parent_id=str(doc["parentId"]) if doc.get("parentId") else None,
        author_id=str(creator.get("_id", "")),
        author_name=creator.get("name"),
        author_avatar=creator.get("avatar"),
        content=doc.get("content", ""),
        created_at=created_at,
        edited_at=updated_at if updated_at and updated_at != created_at else None,
        likes_count=doc.get("likesCount") or 0,
        like_user_ids=_like_ids(doc),
        replies_count=doc.get("repliesCount") or len(replies or []),
        replies=[comment_from_document(r, owning_post) for r in replies]
        if replies is not None
        else None,
        has_more=doc.get("hasMore"),
    )


def comment_page_from_document(
    doc: dict[str, Any] | None,
    items_key: str,
    total_key: str,
    post_id: PostId | None = None,
) -> CommentPage:
    """Convert ``paginatedComments``/``paginatedReplies`` to a page."""
    if not doc:
        return CommentPage(items=[], total_count=None, has_more=False)
    return CommentPage(
        items=[comment_from_document(item, post_id) for item in doc.get(items_key) or []],
        total_count=doc.get(total_key),
        has_more=bool(doc.get("hasMore")),
    )


def like_from_document(doc: dict[str, Any], comment_id: CommentId) -> LikeSnapshot:
    """Convert a like/unlike result to a snapshot."""
    return LikeSnapshot(
        comment_id=str(doc.get("_id") or comment_id),
        likes_count=doc.get("likesCount") or 0,
        like_user_ids=_like_ids(doc),
    )


def post_from_document(doc: dict[str, Any]) -> PostSummary:
    """Convert a GraphQL post document to a summary."""
    creator = doc.get("creator") or {}
    return PostSummary(
        id=str(doc["_id"]),
        author_id=str(creator.get("_id", "")),
        title=doc.get("title") or "",
        comments_count=doc.get("commentsCount") or 0,
        likes_count=doc.get("likesCount") or 0,
        created_at=doc.get("createdAt"),
    )


def post_page_from_document(doc: dict[str, Any] | None) -> PostPage:
    """Convert ``posts``/``userPosts`` to a page."""
    if not doc:
        return PostPage(items=[], total_count=0)
    return PostPage(
        items=[post_from_document(item) for item in doc.get("posts") or []],
        total_count=doc.get("totalPosts") or 0,
    )
