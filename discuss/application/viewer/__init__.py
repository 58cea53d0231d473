"""Comment viewers."""

from .base import CommentViewer, Listener
from .factory import ViewerFactory
from .feed import FeedViewer
from .pending import PendingMutation
from .profile import ProfileViewer
from .single_post import SinglePostViewer

__all__ = [
    "CommentViewer",
    "FeedViewer",
    "Listener",
    "PendingMutation",
    "ProfileViewer",
    "SinglePostViewer",
    "ViewerFactory",
]
