"""Optimistic mutation tracking."""

from datetime import datetime

from pydantic import BaseModel, Field

from discuss.domain.value import CommentId, MutationKind, MutationState, PostId


class PendingMutation(BaseModel):
    """An optimistic change waiting for the server.

    Starts PENDING and settles exactly once, as CONFIRMED or ROLLED_BACK.
    For adds, ``target_id`` is the provisional id until the server assigns
    the real one.
    """

    kind: MutationKind
    post_id: PostId
    target_id: CommentId
    state: MutationState = MutationState.PENDING
    error: str | None = None
    started_at: datetime = Field(default_factory=datetime.now)

    @property
    def key(self) -> tuple[CommentId, MutationKind]:
        return (self.target_id, self.kind)

    def confirm(self, target_id: CommentId | None = None) -> None:
        """Mark the mutation as accepted by the server.

        Raises:
            ValueError: If the mutation has already settled
        """
        self._settle(MutationState.CONFIRMED)
        if target_id is not None:
            self.target_id = target_id

    def roll_back(self, error: BaseException) -> None:
        """Mark the mutation as undone.

        Raises:
            ValueError: If the mutation has already settled
        """
        self._settle(MutationState.ROLLED_BACK)
        self.error = str(error)

    def _settle(self, state: MutationState) -> None:
        if self.state.is_final:
            raise ValueError(
                f"{self.kind.value} on {self.target_id} already {self.state.value}"
            )
        self.state = state
