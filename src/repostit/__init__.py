"""
Repostit
Forum-style post sharing: GraphQL API and server-rendered frontend
"""

__version__ = "0.1.0"

from .config import settings

__all__ = ["settings", "__version__"]
