"""Profile viewer."""

import logfire

from discuss.domain.value import FetchPolicy, PostId, UserId, ViewerKind
from discuss.domain.value.payload import PostPage

from .base import CommentViewer


class ProfileViewer(CommentViewer):
    """Comments under a user's posts, shown in the profile grid modal.

    The grid shows one page of posts at a time, and the modal one page of
    comments at a time, so both use the replace policy by default.
    """

    kind = ViewerKind.PROFILE
    default_policy = FetchPolicy.REPLACE

    def __init__(self, user_id: UserId, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.grid: tuple[PostId, ...] = ()

    async def load_posts(self, page: int = 1) -> PostPage:
        """Fetch one page of the user's posts, replacing the grid.

        Trees of posts that leave the grid are kept, so reopening a post
        shows what was loaded before.

        Raises:
            TransportFailureError: If the request failed
            ConflictError: If the server refused the request
        """
        self._ensure_open()
        with logfire.span(
            "profile_viewer.load_posts", user_id=self.user_id, page=page
        ):
            posts = await self.repository.fetch_user_posts(
                self.user_id, page, self.pagination.posts_per_page
            )
        if self.closed:
            return posts

        for post in posts.items:
            self.tree(post.id, post.comments_count)
        self.grid = tuple(post.id for post in posts.items)
        return posts
