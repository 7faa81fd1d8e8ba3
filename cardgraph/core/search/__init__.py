"""Semantic search over cards."""

from cardgraph.core.search.base import SemanticSearch
from cardgraph.core.search.memory_index import InMemorySearchIndex

__all__ = ["SemanticSearch", "InMemorySearchIndex"]
