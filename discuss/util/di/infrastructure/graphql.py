"""GraphQL infrastructure providers."""

from collections.abc import AsyncIterator

import httpx
import logfire
from dishka import Scope, provide

from discuss.adapter.graphql import GraphQLCommentRepository
from discuss.adapter.session import StaticSessionProvider
from discuss.config import Settings
from discuss.domain.repository import CommentRepository, SessionProvider
from discuss.domain.value import UserId
from discuss.util.di.base import ProviderBase
from discuss.util.error import ConfigurationError


def validate_graphql_url(raw: str) -> str:
    """Check the configured endpoint is an absolute http(s) URL.

    Raises:
        ConfigurationError: If it is not
    """
    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"Invalid GraphQL URL {raw!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(f"GraphQL URL must be absolute http(s): {raw!r}")
    return raw


class GraphQLProvider(ProviderBase):
    """GraphQL component base."""

    __mock_component__ = "graphql"


class ProdGraphQLProvider(GraphQLProvider):
    """Production provider talking to the remote GraphQL API."""

    __is_mock__ = False

    scope = Scope.APP

    @provide(scope=Scope.APP)
    async def get_http_client(self, settings: Settings) -> AsyncIterator[httpx.AsyncClient]:
        """Provide the shared HTTP client, closed with the container."""
        async with httpx.AsyncClient(timeout=settings.api.timeout_seconds) as client:
            yield client
        logfire.info("HTTP client closed")

    @provide(scope=Scope.APP)
    def get_session_provider(self, settings: Settings) -> SessionProvider:
        """Provide the signed-in session handed over by the host."""
        user_id = settings.session.user_id
        return StaticSessionProvider(
            user_id=UserId(user_id) if user_id else None,
            token=settings.session.token,
        )

    @provide(scope=Scope.APP)
    def get_comment_repository(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        session: SessionProvider,
    ) -> CommentRepository:
        """Provide GraphQL comment repository."""
        return GraphQLCommentRepository(
            client=client,
            graphql_url=validate_graphql_url(settings.api.graphql_url),
            session=session,
        )
