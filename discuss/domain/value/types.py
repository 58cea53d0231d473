"""Enumerations shared by the cache, the merge engine and the viewers."""

from enum import Enum


class MutationKind(str, Enum):
    """Kind of change applied to a comment tree."""

    ADD = "add"
    CONFIRM = "confirm"
    EDIT = "edit"
    DELETE = "delete"
    LIKE = "like"
    PAGE = "page"
    RESTORE = "restore"


class MutationState(str, Enum):
    """Lifecycle of an optimistic mutation.

    PENDING moves to exactly one of CONFIRMED or ROLLED_BACK.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"

    @property
    def is_final(self) -> bool:
        return self is not MutationState.PENDING


class FetchPolicy(str, Enum):
    """How a viewer pages through a post's top-level comments.

    - APPEND: infinite scroll, page N+1 is appended to what is visible
    - REPLACE: one page at a time, loading page N discards every other page
    """

    APPEND = "append"
    REPLACE = "replace"


class RefusalReason(str, Enum):
    """Why the pagination coordinator declined to start a fetch."""

    ALREADY_LOADING = "already_loading"
    EXHAUSTED = "exhausted"
    NOT_FOUND = "not_found"


class ViewerKind(str, Enum):
    """Presentation context a viewer is bound to."""

    FEED = "feed"
    SINGLE_POST = "single_post"
    PROFILE = "profile"
