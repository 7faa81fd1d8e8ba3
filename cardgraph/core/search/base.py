"""Base interface for semantic search over cards."""

from abc import ABC, abstractmethod

from cardgraph.models.context import SearchCandidate


class SemanticSearch(ABC):
    """
    Abstract semantic search service.

    Embeddings are produced by an external service; implementations only
    rank already-embedded cards against a query embedding.
    """

    @abstractmethod
    async def search(
        self,
        query_embedding: list[float],
        limit: int = 20,
        score_threshold: float = 0.0,
    ) -> list[SearchCandidate]:
        """
        Rank indexed cards by similarity to a query embedding.

        Args:
            query_embedding: Query vector
            limit: Maximum results
            score_threshold: Minimum similarity score (0-1)

        Returns:
            Candidates ordered by score, highest first

        Raises:
            SearchError: If the search cannot be performed
        """
        pass
