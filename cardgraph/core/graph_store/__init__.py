"""Card graph storage."""

from cardgraph.core.graph_store.base import CardGraphStore
from cardgraph.core.graph_store.memory_store import InMemoryCardStore

__all__ = ["CardGraphStore", "InMemoryCardStore"]
