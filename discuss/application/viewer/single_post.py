"""Single post viewer."""

import logfire

from discuss.domain.value import FetchPolicy, PostId, ViewerKind
from discuss.domain.value.payload import PostSummary

from .base import CommentViewer


class SinglePostViewer(CommentViewer):
    """Comments of one post opened on its own page."""

    kind = ViewerKind.SINGLE_POST
    default_policy = FetchPolicy.APPEND

    def __init__(self, post_id: PostId, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.post_id = post_id
        self.post: PostSummary | None = None

    async def load_post(self) -> PostSummary:
        """Fetch the post summary and seed its comment total.

        Raises:
            TransportFailureError: If the request failed
            ConflictError: If the server refused the request
        """
        self._ensure_open()
        with logfire.span("single_post_viewer.load_post", post_id=self.post_id):
            post = await self.repository.fetch_post(self.post_id)
        if not self.closed:
            self.post = post
            self.tree(post.id, post.comments_count)
        return post
