"""GraphQL comment client.

Talks to the remote GraphQL API over HTTP: every operation is a POST of
``{"query", "variables"}`` with the session's bearer token.
"""

from collections.abc import Callable
from typing import Any, TypeVar

import httpx
import logfire
from pydantic import ValidationError

from discuss.domain.error import ConflictError, TransportFailureError
from discuss.domain.repository import CommentRepository, SessionProvider
from discuss.domain.value import CommentId, PostId, UserId
from discuss.domain.value.payload import (
    CommentPage,
    CommentPayload,
    LikeSnapshot,
    PostPage,
    PostSummary,
)

from . import queries
from .mappers import (
    comment_from_document,
    comment_page_from_document,
    like_from_document,
    post_from_document,
    post_page_from_document,
)

T = TypeVar("T")


class GraphQLCommentRepository(CommentRepository):
    """Comment repository backed by the remote GraphQL API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        graphql_url: str,
        session: SessionProvider,
    ) -> None:
        """Initialize GraphQL client.

        Args:
            client: Shared HTTP client (owns timeouts and connection pooling)
            graphql_url: GraphQL endpoint URL
            session: Source of the bearer token
        """
        self.client = client
        self.graphql_url = graphql_url
        self.session = session

    async def _execute(
        self, operation: str, query: str, variables: dict[str, Any]
    ) -> dict[str, Any]:
        """POST a GraphQL document and return its ``data``.

        Args:
            operation: Operation name, for tracing
            query: GraphQL document
            variables: Operation variables

        Returns:
            The ``data`` object of the response

        Raises:
            TransportFailureError: If the request failed or the response is unusable
            ConflictError: If the server answered with GraphQL errors
        """
        headers = {"Content-Type": "application/json"}
        token = self.session.auth_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        with logfire.span("graphql.execute", operation=operation):
            try:
                response = await self.client.post(
                    self.graphql_url,
                    json={"query": query, "variables": variables},
                    headers=headers,
                )
            except httpx.HTTPError as e:
                logfire.error(
                    "GraphQL request failed",
                    operation=operation,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise TransportFailureError(f"{operation} failed: {e}") from e

            try:
                body = response.json()
            except ValueError as e:
                logfire.error(
                    "GraphQL response is not JSON",
                    operation=operation,
                    status_code=response.status_code,
                )
                raise TransportFailureError(
                    f"{operation} returned an unreadable response "
                    f"(HTTP {response.status_code})"
                ) from e

            errors = body.get("errors") if isinstance(body, dict) else None
            if errors:
                message = errors[0].get("message") or "Request rejected"
                logfire.warn(
                    "GraphQL operation rejected",
                    operation=operation,
                    status_code=response.status_code,
                    message=message,
                )
                raise ConflictError(message)

            if response.is_error:
                logfire.error(
                    "GraphQL request returned error status",
                    operation=operation,
                    status_code=response.status_code,
                )
                raise TransportFailureError(
                    f"{operation} failed with HTTP {response.status_code}"
                )

            data = body.get("data") if isinstance(body, dict) else None
            if data is not None and not isinstance(data, dict):
                logfire.error("GraphQL response has no data object", operation=operation)
                raise TransportFailureError(f"{operation} returned an unusable response")
            return data or {}

    def _decode(
        self,
        operation: str,
        data: dict[str, Any],
        field: str,
        convert: Callable[[Any], T],
        required: bool = True,
    ) -> T:
        """Convert one field of a response's ``data`` with a mapper.

        Args:
            operation: Operation name, for tracing
            data: The ``data`` object of the response
            field: Field holding the operation's result
            convert: Mapper for the field's document
            required: Whether a missing or null field is a failure

        Raises:
            TransportFailureError: If the field is missing or malformed
        """
        doc = data.get(field)
        if doc is None and required:
            logfire.error(
                "GraphQL response missing field", operation=operation, field=field
            )
            raise TransportFailureError(f"{operation} returned no {field}")
        try:
            return convert(doc)
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            logfire.error(
                "GraphQL response malformed",
                operation=operation,
                field=field,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransportFailureError(
                f"{operation} returned a malformed {field}"
            ) from e

    async def fetch_comments(
        self, post_id: PostId, page: int, limit: int
    ) -> CommentPage:
        data = await self._execute(
            "PaginatedComments",
            queries.PAGINATED_COMMENTS,
            {"postId": post_id, "page": page, "limit": limit},
        )
        return self._decode(
            "PaginatedComments",
            data,
            "paginatedComments",
            lambda doc: comment_page_from_document(
                doc, "comments", "totalComments", post_id
            ),
            required=False,
        )

    async def fetch_replies(
        self, comment_id: CommentId, page: int, limit: int
    ) -> CommentPage:
        data = await self._execute(
            "PaginatedReplies",
            queries.PAGINATED_REPLIES,
            {"commentId": comment_id, "page": page, "limit": limit},
        )
        return self._decode(
            "PaginatedReplies",
            data,
            "paginatedReplies",
            lambda doc: comment_page_from_document(doc, "replies", "totalReplies"),
            required=False,
        )

    async def create_comment(
        self, post_id: PostId, content: str, parent_id: CommentId | None = None
    ) -> CommentPayload:
        data = await self._execute(
            "AddComment",
            queries.ADD_COMMENT,
            {"content": content, "postId": post_id, "parentId": parent_id},
        )
        return self._decode(
            "AddComment",
            data,
            "addComment",
            lambda doc: comment_from_document(doc, post_id),
        )

    async def update_comment(self, comment_id: CommentId, content: str) -> CommentPayload:
        data = await self._execute(
            "UpdateComment",
            queries.UPDATE_COMMENT,
            {"commentId": comment_id, "content": content},
        )
        return self._decode("UpdateComment", data, "updateComment", comment_from_document)

    async def delete_comment(self, comment_id: CommentId) -> bool:
        data = await self._execute(
            "DeleteComment", queries.DELETE_COMMENT, {"commentId": comment_id}
        )
        return bool(data.get("deleteComment"))

    async def like_comment(self, comment_id: CommentId) -> LikeSnapshot:
        data = await self._execute(
            "LikeComment", queries.LIKE_COMMENT, {"commentId": comment_id}
        )
        return self._decode(
            "LikeComment",
            data,
            "likeComment",
            lambda doc: like_from_document(doc, comment_id),
        )

    async def unlike_comment(self, comment_id: CommentId) -> LikeSnapshot:
        data = await self._execute(
            "UnlikeComment", queries.UNLIKE_COMMENT, {"commentId": comment_id}
        )
        return self._decode(
            "UnlikeComment",
            data,
            "unlikeComment",
            lambda doc: like_from_document(doc, comment_id),
        )

    async def fetch_post(self, post_id: PostId) -> PostSummary:
        data = await self._execute("FetchPost", queries.FETCH_POST, {"id": post_id})
        return self._decode("FetchPost", data, "post", post_from_document)

    async def fetch_posts(self, page: int, limit: int) -> PostPage:
        data = await self._execute(
            "FetchPosts", queries.FETCH_POSTS, {"page": page, "limit": limit}
        )
        return self._decode(
            "FetchPosts", data, "posts", post_page_from_document, required=False
        )

    async def fetch_user_posts(self, user_id: UserId, page: int, limit: int) -> PostPage:
        data = await self._execute(
            "FetchUserPosts",
            queries.FETCH_USER_POSTS,
            {"userId": user_id, "page": page, "limit": limit},
        )
        return self._decode(
            "FetchUserPosts", data, "userPosts", post_page_from_document, required=False
        )
