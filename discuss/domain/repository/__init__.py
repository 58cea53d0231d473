"""Domain repository interfaces."""

from discuss.domain.repository.comment import CommentRepository
from discuss.domain.repository.session import SessionProvider

__all__ = [
    "CommentRepository",
    "SessionProvider",
]
