"""Viewer factory."""

from discuss.config import PaginationSettings
from discuss.domain.repository import CommentRepository, SessionProvider
from discuss.domain.service import MergeEngine, PaginationCoordinator
from discuss.domain.value import FetchPolicy, PostId, UserId

from .feed import FeedViewer
from .profile import ProfileViewer
from .single_post import SinglePostViewer


class ViewerFactory:
    """Builds viewers bound to the shared services.

    Every call returns a new viewer with its own empty cache.
    """

    def __init__(
        self,
        engine: MergeEngine,
        coordinator: PaginationCoordinator,
        repository: CommentRepository,
        session: SessionProvider,
        pagination: PaginationSettings,
    ) -> None:
        self.engine = engine
        self.coordinator = coordinator
        self.repository = repository
        self.session = session
        self.pagination = pagination

    def _dependencies(self) -> tuple:
        return (
            self.engine,
            self.coordinator,
            self.repository,
            self.session,
            self.pagination,
        )

    def feed(self, policy: FetchPolicy | None = None) -> FeedViewer:
        return FeedViewer(*self._dependencies(), policy=policy)

    def single_post(
        self, post_id: PostId, policy: FetchPolicy | None = None
    ) -> SinglePostViewer:
        return SinglePostViewer(post_id, *self._dependencies(), policy=policy)

    def profile(
        self, user_id: UserId, policy: FetchPolicy | None = None
    ) -> ProfileViewer:
        return ProfileViewer(user_id, *self._dependencies(), policy=policy)
