"""Session provider backed by fixed values."""

from discuss.domain.repository import SessionProvider
from discuss.domain.value import UserId


class StaticSessionProvider(SessionProvider):
    """Session whose user and token are known up front.

    The host application owns sign-in and token storage; it builds one of
    these (directly or from settings) once it knows who is signed in.
    """

    def __init__(self, user_id: UserId | None = None, token: str | None = None) -> None:
        """Initialize static session.

        Args:
            user_id: Signed-in user, None for anonymous
            token: Bearer token to send with requests
        """
        self._user_id = user_id
        self._token = token

    def current_user_id(self) -> UserId | None:
        return self._user_id

    def auth_token(self) -> str | None:
        return self._token
