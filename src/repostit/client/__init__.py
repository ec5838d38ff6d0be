"""
GraphQL client used by the server-rendered frontend
"""

from .cache import CacheMiss, NormalizedCache, create_cache
from .client import RepostitClient
from .errors import GraphQLClientError, NotAuthenticatedError, to_error_map

__all__ = [
    "CacheMiss",
    "GraphQLClientError",
    "NormalizedCache",
    "NotAuthenticatedError",
    "RepostitClient",
    "create_cache",
    "to_error_map",
]
