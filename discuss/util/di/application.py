"""Application layer DI providers."""

from collections.abc import Iterator

from dishka import Scope, provide

from discuss.application.viewer import FeedViewer, ViewerFactory
from discuss.config import PaginationSettings
from discuss.domain.repository import CommentRepository, SessionProvider
from discuss.domain.service import MergeEngine, PaginationCoordinator
from discuss.util.di.base import ProviderBase


class ProdApplicationProvider(ProviderBase):
    """Production application provider - concrete, no mocks needed."""

    @provide(scope=Scope.REQUEST)
    def get_viewer_factory(
        self,
        engine: MergeEngine,
        coordinator: PaginationCoordinator,
        repository: CommentRepository,
        session: SessionProvider,
        pagination: PaginationSettings,
    ) -> ViewerFactory:
        """Provide viewer factory."""
        return ViewerFactory(
            engine=engine,
            coordinator=coordinator,
            repository=repository,
            session=session,
            pagination=pagination,
        )

    @provide(scope=Scope.REQUEST)
    def get_feed_viewer(self, factory: ViewerFactory) -> Iterator[FeedViewer]:
        """Provide a feed viewer, closed when the scope exits."""
        viewer = factory.feed()
        yield viewer
        viewer.close()
