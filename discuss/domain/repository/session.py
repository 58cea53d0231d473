"""Session provider interface."""

from abc import ABC, abstractmethod

from discuss.domain.value import UserId


class SessionProvider(ABC):
    """Supplies who is signed in.

    The current user decides the like/unlike branch of a toggle and whether
    a comment may be edited or deleted from this session.
    """

    @abstractmethod
    def current_user_id(self) -> UserId | None:
        """Return the signed-in user's ID, or None for anonymous sessions."""
        pass

    @abstractmethod
    def auth_token(self) -> str | None:
        """Return the bearer token to send with requests, if any."""
        pass
