"""
Tests for GraphResolver.

Tests cover:
1. Parent priority rule (explicit > edges > legacy)
2. Silent dropping of unknown parents
3. Forward (children) resolution
"""

import pytest

from cardgraph.core.graph_store.memory_store import InMemoryCardStore
from cardgraph.models.card import Card, EdgeParents, ExplicitParents, LegacyParent, NoParents
from cardgraph.models.edge import Edge
from cardgraph.services.graph_resolver import GraphResolver


def _ids(cards):
    return [card.id for card in cards]


@pytest.mark.unit
class TestParentResolution:
    """Tests for parents_of and parent_link."""

    def test_explicit_parents_win_over_edges(self, store, resolver):
        for card_id in ["a", "b"]:
            store.add_card(Card(id=card_id))
        store.add_card(Card(id="c", parent_ids=["a"]))
        store.add_edge("b", "c")

        assert isinstance(resolver.parent_link(store.get_card("c")), ExplicitParents)
        assert _ids(resolver.parents_of("c")) == ["a"]

    def test_explicit_order_kept(self, store, resolver):
        for card_id in ["a", "b"]:
            store.add_card(Card(id=card_id))
        store.add_card(Card(id="merge", parent_ids=["b", "a"]))

        assert _ids(resolver.parents_of("merge")) == ["b", "a"]

    def test_edges_in_discovery_order(self, store, resolver):
        for card_id in ["a", "b", "c"]:
            store.add_card(Card(id=card_id))
        store.add_edge("b", "c")
        store.add_edge("a", "c")

        assert isinstance(resolver.parent_link(store.get_card("c")), EdgeParents)
        assert _ids(resolver.parents_of("c")) == ["b", "a"]

    def test_edges_win_over_legacy(self, store, resolver):
        for card_id in ["a", "b"]:
            store.add_card(Card(id=card_id))
        store.add_card(Card(id="c", parent_id="a"))
        store.add_edge("b", "c")

        assert _ids(resolver.parents_of("c")) == ["b"]

    def test_legacy_parent(self, store, resolver):
        store.add_card(Card(id="a"))
        store.add_card(Card(id="c", parent_id="a"))

        assert isinstance(resolver.parent_link(store.get_card("c")), LegacyParent)
        assert _ids(resolver.parents_of("c")) == ["a"]

    def test_dangling_edges_fall_through_to_legacy(self):
        store = InMemoryCardStore(
            cards=[Card(id="a"), Card(id="c", parent_id="a")],
            edges=[Edge(id="edge_ghost_c", source="ghost", target="c")],
        )
        resolver = GraphResolver(store)

        assert _ids(resolver.parents_of("c")) == ["a"]

    def test_unknown_explicit_parents_dropped(self, store, resolver):
        store.add_card(Card(id="a"))
        store.add_card(Card(id="c", parent_ids=["ghost", "a", "a"]))

        assert _ids(resolver.parents_of("c")) == ["a"]

    def test_unknown_explicit_parents_do_not_fall_through(self, store, resolver):
        store.add_card(Card(id="a"))
        store.add_card(Card(id="c", parent_ids=["ghost"], parent_id="a"))

        assert resolver.parents_of("c") == []

    def test_root_card(self, store, resolver):
        store.add_card(Card(id="root"))

        assert isinstance(resolver.parent_link(store.get_card("root")), NoParents)
        assert resolver.parents_of("root") == []

    def test_unknown_card(self, resolver):
        assert resolver.parents_of("missing") == []
        assert resolver.parent_ids_of("missing") == []

    def test_self_reference_ignored(self, store, resolver):
        store.add_card(Card(id="a", parent_ids=["a"]))

        assert resolver.parents_of("a") == []


@pytest.mark.unit
class TestChildResolution:
    """Tests for children_of."""

    def test_children_from_fields_and_edges(self, store, resolver):
        store.add_card(Card(id="a"))
        store.add_card(Card(id="field_child", parent_ids=["a"]))
        store.add_card(Card(id="legacy_child", parent_id="a"))
        store.add_card(Card(id="edge_child"))
        store.add_edge("a", "edge_child")

        assert _ids(resolver.children_of("a")) == ["edge_child", "field_child", "legacy_child"]

    def test_edge_shadowed_by_explicit_parents(self, store, resolver):
        store.add_card(Card(id="a"))
        store.add_card(Card(id="b"))
        store.add_card(Card(id="c", parent_ids=["b"]))
        store.add_edge("a", "c")

        assert resolver.children_of("a") == []
        assert _ids(resolver.children_of("b")) == ["c"]
