"""Document library (authoritative attachment surrogates)."""

from cardgraph.core.library.base import DocumentLibrary
from cardgraph.core.library.memory_library import InMemoryDocumentLibrary

__all__ = ["DocumentLibrary", "InMemoryDocumentLibrary"]
