"""Feed viewer."""

import logfire

from discuss.domain.value import FetchPolicy, PostId, ViewerKind
from discuss.domain.value.ordering import append_unique
from discuss.domain.value.payload import PostPage

from .base import CommentViewer


class FeedViewer(CommentViewer):
    """Comments under every post of the scrolling feed.

    Posts arrive a page at a time and are appended below the ones already
    shown; each post's tree starts empty, seeded with the post's comment
    total, and fills as its comments are expanded.
    """

    kind = ViewerKind.FEED
    default_policy = FetchPolicy.APPEND

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.feed: tuple[PostId, ...] = ()

    async def load_posts(self, page: int = 1) -> PostPage:
        """Fetch a page of the feed and register its posts.

        Raises:
            TransportFailureError: If the request failed
            ConflictError: If the server refused the request
        """
        self._ensure_open()
        with logfire.span("feed_viewer.load_posts", page=page):
            posts = await self.repository.fetch_posts(
                page, self.pagination.posts_per_page
            )
        if self.closed:
            return posts

        for post in posts.items:
            self.tree(post.id, post.comments_count)
        self.feed = append_unique(self.feed, [post.id for post in posts.items])
        logfire.info("Feed page loaded", page=page, posts=len(posts.items))
        return posts
