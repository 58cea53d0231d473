"""In-memory comment repository for testing.

Behaves like the remote API: pages are newest first, deletes cascade to
replies, likes and authorship are checked against the session's user, and
failures can be queued to exercise rollback paths.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from discuss.domain.error import ConflictError
from discuss.domain.repository import CommentRepository, SessionProvider
from discuss.domain.value import CommentId, PostId, UserId
from discuss.domain.value.ordering import newest_first
from discuss.domain.value.payload import (
    CommentPage,
    CommentPayload,
    LikeSnapshot,
    PostPage,
    PostSummary,
)

_EPOCH = datetime(2024, 1, 1)


@dataclass
class _StoredComment:
    id: CommentId
    post_id: PostId
    parent_id: CommentId | None
    author_id: UserId
    content: str
    created_at: datetime
    edited_at: datetime | None = None
    likers: set[UserId] = field(default_factory=set)


@dataclass
class _StoredPost:
    id: PostId
    author_id: UserId
    title: str
    created_at: datetime
    likes_count: int = 0


class InMemoryCommentRepository(CommentRepository):
    """In-memory implementation of CommentRepository for testing."""

    def __init__(self, session: SessionProvider, reply_preview: int = 0) -> None:
        """Initialize the fake server.

        Args:
            session: Decides who authors comments and whose likes toggle
            reply_preview: How many replies to embed in each top-level
                comment of a comment page
        """
        self.session = session
        self.reply_preview = reply_preview
        self.calls: list[str] = []
        self._posts: dict[PostId, _StoredPost] = {}
        self._comments: dict[CommentId, _StoredComment] = {}
        self._failures: list[Exception] = []
        self._sequence = 0
        self._next_id = 0

    # Test helpers

    def _tick(self) -> datetime:
        self._sequence += 1
        return _EPOCH + timedelta(seconds=self._sequence)

    def seed_post(
        self, post_id: PostId, author_id: UserId, title: str = "Post"
    ) -> PostId:
        """Store a post."""
        self._posts[post_id] = _StoredPost(
            id=post_id, author_id=author_id, title=title, created_at=self._tick()
        )
        return post_id

    def seed_comment(
        self,
        post_id: PostId,
        author_id: UserId,
        content: str,
        parent_id: CommentId | None = None,
        likers: set[UserId] | None = None,
    ) -> CommentId:
        """Store a comment directly, bypassing the session."""
        self._next_id += 1
        comment_id = CommentId(f"c{self._next_id}")
        self._comments[comment_id] = _StoredComment(
            id=comment_id,
            post_id=post_id,
            parent_id=parent_id,
            author_id=author_id,
            content=content,
            created_at=self._tick(),
            likers=set(likers or ()),
        )
        return comment_id

    def fail_next(self, error: Exception) -> None:
        """Make the next call raise ``error`` instead of answering."""
        self._failures.append(error)

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if self._failures:
            raise self._failures.pop(0)

    def _require_user(self) -> UserId:
        user_id = self.session.current_user_id()
        if user_id is None:
            raise ConflictError("Not authenticated")
        return user_id

    def _require_comment(self, comment_id: CommentId) -> _StoredComment:
        stored = self._comments.get(comment_id)
        if stored is None:
            raise ConflictError(f"Comment not found: {comment_id}")
        return stored

    # Reads

    def _children(self, post_id: PostId, parent_id: CommentId | None) -> list[_StoredComment]:
        return newest_first(
            c
            for c in self._comments.values()
            if c.post_id == post_id and c.parent_id == parent_id
        )

    def _payload(self, stored: _StoredComment, preview: int = 0) -> CommentPayload:
        children = self._children(stored.post_id, stored.id)
        replies = None
        if preview:
            replies = [self._payload(child) for child in children[:preview]]
        return CommentPayload(
            id=stored.id,
            post_id=stored.post_id,
            parent_id=stored.parent_id,
            author_id=stored.author_id,
            content=stored.content,
            created_at=stored.created_at,
            edited_at=stored.edited_at,
            likes_count=len(stored.likers),
            like_user_ids=frozenset(stored.likers),
            replies_count=len(children),
            replies=replies,
        )

    @staticmethod
    def _slice(items: list, page: int, limit: int) -> tuple[list, bool]:
        start = (page - 1) * limit
        return items[start : start + limit], start + limit < len(items)

    async def fetch_comments(
        self, post_id: PostId, page: int, limit: int
    ) -> CommentPage:
        self._enter("fetch_comments")
        roots = self._children(post_id, None)
        items, has_more = self._slice(roots, page, limit)
        return CommentPage(
            items=[self._payload(c, self.reply_preview) for c in items],
            total_count=len(roots),
            has_more=has_more,
        )

    async def fetch_replies(
        self, comment_id: CommentId, page: int, limit: int
    ) -> CommentPage:
        self._enter("fetch_replies")
        parent = self._require_comment(comment_id)
        replies = self._children(parent.post_id, comment_id)
        items, has_more = self._slice(replies, page, limit)
        return CommentPage(
            items=[self._payload(c) for c in items],
            total_count=len(replies),
            has_more=has_more,
        )

    def _summary(self, post: _StoredPost) -> PostSummary:
        return PostSummary(
            id=post.id,
            author_id=post.author_id,
            title=post.title,
            comments_count=len(self._children(post.id, None)),
            likes_count=post.likes_count,
            created_at=post.created_at,
        )

    async def fetch_post(self, post_id: PostId) -> PostSummary:
        self._enter("fetch_post")
        post = self._posts.get(post_id)
        if post is None:
            raise ConflictError(f"Post not found: {post_id}")
        return self._summary(post)

    async def fetch_posts(self, page: int, limit: int) -> PostPage:
        self._enter("fetch_posts")
        posts = newest_first(self._posts.values())
        items, _ = self._slice(posts, page, limit)
        return PostPage(items=[self._summary(p) for p in items], total_count=len(posts))

    async def fetch_user_posts(self, user_id: UserId, page: int, limit: int) -> PostPage:
        self._enter("fetch_user_posts")
        posts = newest_first(p for p in self._posts.values() if p.author_id == user_id)
        items, _ = self._slice(posts, page, limit)
        return PostPage(items=[self._summary(p) for p in items], total_count=len(posts))

    # Writes

    async def create_comment(
        self, post_id: PostId, content: str, parent_id: CommentId | None = None
    ) -> CommentPayload:
        self._enter("create_comment")
        author_id = self._require_user()
        if post_id not in self._posts:
            raise ConflictError(f"Post not found: {post_id}")
        if parent_id is not None:
            parent = self._require_comment(parent_id)
            if parent.post_id != post_id:
                raise ConflictError("Parent comment does not belong to this post")
        comment_id = self.seed_comment(post_id, author_id, content, parent_id)
        return self._payload(self._comments[comment_id])

    async def update_comment(self, comment_id: CommentId, content: str) -> CommentPayload:
        self._enter("update_comment")
        user_id = self._require_user()
        stored = self._require_comment(comment_id)
        if stored.author_id != user_id:
            raise ConflictError("Not authorized")
        stored.content = content
        stored.edited_at = self._tick()
        return self._payload(stored)

    async def delete_comment(self, comment_id: CommentId) -> bool:
        self._enter("delete_comment")
        user_id = self._require_user()
        stored = self._require_comment(comment_id)
        if stored.author_id != user_id:
            raise ConflictError("Not authorized")
        doomed = [comment_id]
        while doomed:
            current = doomed.pop()
            self._comments.pop(current, None)
            doomed.extend(c.id for c in self._comments.values() if c.parent_id == current)
        return True

    async def like_comment(self, comment_id: CommentId) -> LikeSnapshot:
        self._enter("like_comment")
        stored = self._require_comment(comment_id)
        stored.likers.add(self._require_user())
        return LikeSnapshot(
            comment_id=comment_id,
            likes_count=len(stored.likers),
            like_user_ids=frozenset(stored.likers),
        )

    async def unlike_comment(self, comment_id: CommentId) -> LikeSnapshot:
        self._enter("unlike_comment")
        stored = self._require_comment(comment_id)
        stored.likers.discard(self._require_user())
        return LikeSnapshot(
            comment_id=comment_id,
            likes_count=len(stored.likers),
            like_user_ids=frozenset(stored.likers),
        )


