"""Comment repository interface.

The remote API is the only store of record. This contract is what the
viewers need from it; implementations live in the adapter layer.
"""

from abc import ABC, abstractmethod

from discuss.domain.value import CommentId, PostId, UserId
from discuss.domain.value.payload import (
    CommentPage,
    CommentPayload,
    LikeSnapshot,
    PostPage,
    PostSummary,
)


class CommentRepository(ABC):
    """Network client for posts, comments and replies.

    Every method may raise ``TransportFailureError`` when the request could
    not be completed, and mutations raise ``ConflictError`` when the server
    refuses them.
    """

    @abstractmethod
    async def fetch_comments(
        self, post_id: PostId, page: int, limit: int
    ) -> CommentPage:
        """Fetch one page of a post's top-level comments, newest first.

        Args:
            post_id: The post ID
            page: 1-based page number
            limit: Page size

        Returns:
            Page of comments, possibly carrying a preview of their replies
        """
        pass

    @abstractmethod
    async def fetch_replies(
        self, comment_id: CommentId, page: int, limit: int
    ) -> CommentPage:
        """Fetch one page of a comment's direct replies, newest first.

        Args:
            comment_id: The parent comment ID
            page: 1-based page number
            limit: Page size

        Returns:
            Page of replies
        """
        pass

    @abstractmethod
    async def create_comment(
        self, post_id: PostId, content: str, parent_id: CommentId | None = None
    ) -> CommentPayload:
        """Create a comment, or a reply when ``parent_id`` is given.

        Returns:
            The comment as stored, with its server-assigned id
        """
        pass

    @abstractmethod
    async def update_comment(self, comment_id: CommentId, content: str) -> CommentPayload:
        """Replace a comment's content.

        Returns:
            The updated comment
        """
        pass

    @abstractmethod
    async def delete_comment(self, comment_id: CommentId) -> bool:
        """Delete a comment and its replies.

        Returns:
            True if the server deleted it
        """
        pass

    @abstractmethod
    async def like_comment(self, comment_id: CommentId) -> LikeSnapshot:
        """Like a comment as the current user."""
        pass

    @abstractmethod
    async def unlike_comment(self, comment_id: CommentId) -> LikeSnapshot:
        """Remove the current user's like from a comment."""
        pass

    @abstractmethod
    async def fetch_post(self, post_id: PostId) -> PostSummary:
        """Fetch a single post's summary."""
        pass

    @abstractmethod
    async def fetch_posts(self, page: int, limit: int) -> PostPage:
        """Fetch one page of the feed, newest first."""
        pass

    @abstractmethod
    async def fetch_user_posts(self, user_id: UserId, page: int, limit: int) -> PostPage:
        """Fetch one page of a user's posts, newest first."""
        pass
