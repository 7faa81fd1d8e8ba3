"""
Tests for AncestorCollector.

Tests cover:
1. Breadth-first order and levels
2. Uniqueness across converging paths (merge cards)
3. Termination on cyclic data
4. Descendant traversal
"""

import pytest

from cardgraph.models.card import Card
from cardgraph.services.ancestor_collector import AncestorCollector


def _ids(cards):
    return [card.id for card in cards]


@pytest.fixture
def diamond(store):
    """A is the root; B and C are its children; D merges B and C."""
    store.add_card(Card(id="A"))
    store.add_card(Card(id="B", parent_ids=["A"]))
    store.add_card(Card(id="C", parent_ids=["A"]))
    store.add_card(Card(id="D", parent_ids=["B", "C"]))
    return store


@pytest.mark.unit
class TestCollectAncestors:
    """Tests for ancestor collection."""

    def test_breadth_first_order(self, diamond, collector):
        assert _ids(collector.collect_ancestors("D")) == ["B", "C", "A"]

    def test_levels(self, diamond, collector):
        levels = [(card.id, level) for card, level in collector.collect_ancestor_levels("D")]

        assert levels == [("B", 0), ("C", 0), ("A", 1)]

    def test_each_ancestor_once(self, diamond, collector):
        ancestors = _ids(collector.collect_ancestors("D"))

        assert len(ancestors) == len(set(ancestors))

    def test_root_has_no_ancestors(self, diamond, collector):
        assert collector.collect_ancestors("A") == []

    def test_unknown_card(self, collector):
        assert collector.collect_ancestors("missing") == []

    def test_cycle_terminates(self, store, collector):
        store.add_card(Card(id="A", parent_ids=["B"]))
        store.add_card(Card(id="B", parent_ids=["A"]))

        assert _ids(collector.collect_ancestors("A")) == ["B"]
        assert "A" not in collector.ancestor_ids("A")

    def test_iteration_ceiling(self, store, resolver):
        store.add_card(Card(id="n0"))
        for index in range(1, 10):
            store.add_card(Card(id=f"n{index}", parent_ids=[f"n{index - 1}"]))
        collector = AncestorCollector(resolver, max_iterations=3)

        assert _ids(collector.collect_ancestors("n9")) == ["n8", "n7", "n6"]


@pytest.mark.unit
class TestCollectDescendants:
    """Tests for descendant collection."""

    def test_breadth_first_order(self, store, collector):
        store.add_card(Card(id="A"))
        store.add_card(Card(id="B", parent_ids=["A"]))
        store.add_card(Card(id="D", parent_ids=["A"]))
        store.add_card(Card(id="C", parent_ids=["B"]))

        assert _ids(collector.collect_descendants("A")) == ["B", "D", "C"]

    def test_merge_card_once(self, diamond, collector):
        assert _ids(collector.collect_descendants("A")) == ["B", "C", "D"]
        assert collector.descendant_ids("B") == {"D"}
