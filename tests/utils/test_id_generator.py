"""
Tests for ID generation utilities.

Tests cover:
1. Card ID generation
2. Edge ID derivation
"""

import pytest

from cardgraph.utils import generate_card_id, generate_edge_id


@pytest.mark.unit
class TestGenerateCardId:
    """Tests for Card ID generation."""

    def test_format(self):
        """Test Card ID format: card_xxx (12 hex chars)."""
        card_id = generate_card_id()

        assert card_id.startswith("card_")
        assert len(card_id) == 17  # "card_" (5) + 12 hex chars
        int(card_id[5:], 16)

    def test_uniqueness(self):
        """Test that generated Card IDs are unique."""
        ids = [generate_card_id() for _ in range(1000)]
        assert len(ids) == len(set(ids))


@pytest.mark.unit
class TestGenerateEdgeId:
    """Tests for Edge ID derivation."""

    def test_derived_from_endpoints(self):
        assert generate_edge_id("card_a", "card_b") == "edge_card_a_card_b"

    def test_direction_matters(self):
        assert generate_edge_id("a", "b") != generate_edge_id("b", "a")

    def test_stable(self):
        assert generate_edge_id("a", "b") == generate_edge_id("a", "b")

