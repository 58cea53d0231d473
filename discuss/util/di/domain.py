"""Domain layer DI providers."""

from dishka import Scope, provide

from discuss.domain.service import MergeEngine, PaginationCoordinator
from discuss.util.di.base import ProviderBase


class ProdDomainProvider(ProviderBase):
    """Production domain services provider - concrete, no mocks needed.

    The services hold no state (every call maps one tree snapshot to the
    next), so a single instance serves every viewer.
    """

    scope = Scope.APP

    @provide
    def get_merge_engine(self) -> MergeEngine:
        """Provide merge engine."""
        return MergeEngine()

    @provide
    def get_pagination_coordinator(self) -> PaginationCoordinator:
        """Provide pagination coordinator."""
        return PaginationCoordinator()
