"""In-memory cosine similarity index."""

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity

from cardgraph.core.search.base import SemanticSearch
from cardgraph.models.context import SearchCandidate
from cardgraph.utils.exceptions import SearchError


class InMemorySearchIndex(SemanticSearch):
    """
    Brute-force cosine similarity over stored card embeddings.

    Lookups may lag behind the live card set (a deleted card stays indexed
    until removed); the virtual ancestor filter drops such hits.
    """

    def __init__(self):
        self._embeddings: dict[str, list[float]] = {}
        self._previews: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._embeddings)

    def upsert(self, card_id: str, embedding: list[float], preview: str = "") -> None:
        """
        Index or re-index a card.

        Args:
            card_id: Card identifier
            embedding: Card embedding vector
            preview: Short text shown next to the hit

        Raises:
            SearchError: If the embedding is empty or its dimension differs from the index
        """
        if not embedding:
            raise SearchError(f"Empty embedding for card {card_id}", {"card_id": card_id})
        # Only the sole indexed card may change the index dimension
        others = [vector for other_id, vector in self._embeddings.items() if other_id != card_id]
        dimension = len(others[0]) if others else None
        if dimension is not None and len(embedding) != dimension:
            raise SearchError(
                f"Embedding dimension mismatch: expected {dimension}, got {len(embedding)}",
                {"card_id": card_id},
            )
        self._embeddings[card_id] = list(embedding)
        self._previews[card_id] = preview

    def remove(self, card_id: str) -> None:
        """Drop a card from the index (no-op if absent)."""
        self._embeddings.pop(card_id, None)
        self._previews.pop(card_id, None)

    @property
    def dimension(self) -> int | None:
        for embedding in self._embeddings.values():
            return len(embedding)
        return None

    async def search(
        self,
        query_embedding: list[float],
        limit: int = 20,
        score_threshold: float = 0.0,
    ) -> list[SearchCandidate]:
        if not self._embeddings:
            return []
        if len(query_embedding) != self.dimension:
            raise SearchError(
                f"Query dimension mismatch: expected {self.dimension}, got {len(query_embedding)}"
            )

        card_ids = list(self._embeddings)
        query_vec = np.array(query_embedding).reshape(1, -1)
        embedding_matrix = np.array([self._embeddings[card_id] for card_id in card_ids])

        similarities = cosine_similarity(query_vec, embedding_matrix)[0]

        ranked = sorted(
            zip(card_ids, similarities.tolist(), strict=True),
            key=lambda item: item[1],
            reverse=True,
        )

        candidates = []
        for card_id, score in ranked:
            score = min(max(float(score), 0.0), 1.0)
            if score < score_threshold:
                continue
            candidates.append(
                SearchCandidate(card_id=card_id, score=score, preview=self._previews[card_id])
            )
            if len(candidates) >= limit:
                break

        return candidates
