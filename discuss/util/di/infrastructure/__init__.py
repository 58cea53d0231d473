"""Infrastructure providers."""

# Import bases
from .graphql import GraphQLProvider

# Import implementations (needed for __subclasses__())
from .graphql import ProdGraphQLProvider  # noqa: F401

__all__ = [
    "GraphQLProvider",
    "ProdGraphQLProvider",
]
