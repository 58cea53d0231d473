"""Domain services."""

from . import node_store
from .base import Service
from .merge_engine import MergeEngine
from .pagination import PaginationCoordinator

__all__ = [
    "MergeEngine",
    "PaginationCoordinator",
    "Service",
    "node_store",
]
