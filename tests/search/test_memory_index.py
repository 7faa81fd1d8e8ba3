"""
Tests for InMemorySearchIndex.

Tests cover:
1. Ranking by cosine similarity
2. Threshold and limit handling
3. Dimension validation
4. Index maintenance
"""

import pytest

from cardgraph.core.search.memory_index import InMemorySearchIndex
from cardgraph.utils.exceptions import SearchError


@pytest.fixture
def index() -> InMemorySearchIndex:
    """Index with three 2-d card embeddings."""
    index = InMemorySearchIndex()
    index.upsert("near", [1.0, 0.1], preview="Close match")
    index.upsert("middle", [1.0, 1.0])
    index.upsert("opposite", [-1.0, 0.0])
    return index


@pytest.mark.unit
class TestSearch:
    """Tests for similarity search."""

    @pytest.mark.asyncio
    async def test_empty_index(self):
        assert await InMemorySearchIndex().search([1.0, 0.0]) == []

    @pytest.mark.asyncio
    async def test_ranked_by_similarity(self, index):
        results = await index.search([1.0, 0.0])

        assert [candidate.card_id for candidate in results] == ["near", "middle", "opposite"]
        assert results[0].preview == "Close match"

    @pytest.mark.asyncio
    async def test_negative_similarity_clamped(self, index):
        results = await index.search([1.0, 0.0])

        assert results[-1].score == 0.0

    @pytest.mark.asyncio
    async def test_threshold(self, index):
        results = await index.search([1.0, 0.0], score_threshold=0.9)

        assert [candidate.card_id for candidate in results] == ["near"]

    @pytest.mark.asyncio
    async def test_limit(self, index):
        results = await index.search([1.0, 0.0], limit=2)

        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_query_dimension_mismatch(self, index):
        with pytest.raises(SearchError):
            await index.search([1.0, 0.0, 0.0])


@pytest.mark.unit
class TestIndexMaintenance:
    """Tests for upsert and remove."""

    def test_empty_embedding_rejected(self):
        with pytest.raises(SearchError):
            InMemorySearchIndex().upsert("card", [])

    def test_dimension_mismatch_rejected(self, index):
        with pytest.raises(SearchError):
            index.upsert("other", [1.0, 0.0, 0.0])

    @pytest.mark.asyncio
    async def test_reindex_with_other_dimension_rejected(self, index):
        with pytest.raises(SearchError):
            index.upsert("near", [1.0, 0.0, 0.0])

        assert index.dimension == 2
        assert len(await index.search([1.0, 0.0])) == 3

    def test_sole_card_may_change_dimension(self):
        index = InMemorySearchIndex()
        index.upsert("only", [1.0, 0.0])

        index.upsert("only", [1.0, 0.0, 0.0])

        assert index.dimension == 3

    def test_upsert_replaces(self, index):
        index.upsert("near", [0.0, 1.0])

        assert len(index) == 3

    def test_remove(self, index):
        index.remove("near")
        index.remove("unknown")

        assert len(index) == 2
        assert index.dimension == 2

    @pytest.mark.asyncio
    async def test_removed_card_not_returned(self, index):
        index.remove("near")

        results = await index.search([1.0, 0.0])

        assert "near" not in [candidate.card_id for candidate in results]
