"""GraphQL API adapter."""

from .client import GraphQLCommentRepository

__all__ = ["GraphQLCommentRepository"]
