"""
CardGraph - context assembly and staleness invalidation for card graphs.

Cards form a DAG; each card's generation context is assembled from its
ancestors, attachments and semantic-search neighbours, and responses are
marked stale when that context changes.
"""

from cardgraph.config import Config
from cardgraph.services.context_engine import ContextEngine

__version__ = "0.1.0"

__all__ = ["Config", "ContextEngine", "__version__"]
