"""Mock providers for testing."""

from .graphql import TEST_USER_ID, MockGraphQLProvider
from .container import build_test_container

__all__ = [
    "MockGraphQLProvider",
    "TEST_USER_ID",
    "build_test_container",
]
