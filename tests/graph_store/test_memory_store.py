"""
Tests for InMemoryCardStore.

Tests cover:
1. Card CRUD and update validation
2. Edge creation, dedup and ordering
3. Card removal detaching children
4. Snapshot load/dump (JSON and YAML)
"""

from datetime import datetime

import pytest

from cardgraph.core.graph_store.memory_store import InMemoryCardStore
from cardgraph.models.canvas import CanvasSnapshot
from cardgraph.models.card import Card
from cardgraph.models.edge import Edge
from cardgraph.utils.exceptions import GraphStoreError, NotFoundError, ValidationError


@pytest.mark.unit
class TestCardOperations:
    """Tests for card mutations."""

    def test_add_and_get(self, store):
        card = store.add_card(Card(id="a", prompt="Question"))

        assert store.get_card("a") == card
        assert store.has_card("a")
        assert store.get_card("missing") is None

    def test_list_in_insertion_order(self, store):
        for card_id in ["c", "a", "b"]:
            store.add_card(Card(id=card_id))

        assert [card.id for card in store.list_cards()] == ["c", "a", "b"]

    def test_duplicate_id_rejected(self, store):
        store.add_card(Card(id="a"))

        with pytest.raises(GraphStoreError):
            store.add_card(Card(id="a"))

    def test_update_card(self, store):
        store.add_card(Card(id="a", updated_at=datetime(2020, 1, 1)))

        updated = store.update_card("a", {"prompt": "New", "response": "Answer"})

        assert updated.prompt == "New"
        assert store.get_card("a").response == "Answer"
        assert updated.updated_at > datetime(2020, 1, 1)

    def test_update_unknown_card(self, store):
        with pytest.raises(NotFoundError):
            store.update_card("missing", {"prompt": "x"})

    def test_update_unknown_field(self, store):
        store.add_card(Card(id="a"))

        with pytest.raises(ValidationError) as exc_info:
            store.update_card("a", {"colour": "red"})

        assert exc_info.value.context["fields"] == ["colour"]

    def test_update_immutable_field(self, store):
        store.add_card(Card(id="a"))

        with pytest.raises(ValidationError):
            store.update_card("a", {"id": "b"})

    def test_update_invalid_value(self, store):
        store.add_card(Card(id="a"))

        with pytest.raises(ValidationError):
            store.update_card("a", {"kind": "essay"})
        assert store.get_card("a").kind == "answerable"


@pytest.mark.unit
class TestEdgeOperations:
    """Tests for edge mutations."""

    def test_add_edge(self, store):
        store.add_card(Card(id="a"))
        store.add_card(Card(id="b"))

        edge = store.add_edge("a", "b")

        assert edge.id == "edge_a_b"
        assert store.incoming_edges("b") == [edge]
        assert store.outgoing_edges("a") == [edge]

    def test_duplicate_edge_returns_existing(self, store):
        store.add_card(Card(id="a"))
        store.add_card(Card(id="b"))

        first = store.add_edge("a", "b")
        second = store.add_edge("a", "b")

        assert first is second
        assert len(store.list_edges()) == 1

    def test_incoming_edges_in_discovery_order(self, store):
        for card_id in ["a", "b", "c"]:
            store.add_card(Card(id=card_id))
        store.add_edge("b", "c")
        store.add_edge("a", "c")

        assert [edge.source for edge in store.incoming_edges("c")] == ["b", "a"]

    def test_self_edge_rejected(self, store):
        store.add_card(Card(id="a"))

        with pytest.raises(GraphStoreError):
            store.add_edge("a", "a")

    def test_edge_to_missing_card(self, store):
        store.add_card(Card(id="a"))

        with pytest.raises(NotFoundError):
            store.add_edge("a", "missing")

    def test_remove_edge(self, store):
        store.add_card(Card(id="a"))
        store.add_card(Card(id="b"))
        store.add_edge("a", "b")

        store.remove_edge("a", "b")

        assert store.list_edges() == []
        assert store.incoming_edges("b") == []

    def test_underscore_ids_keep_edges_apart(self, store):
        for card_id in ["a_b", "c", "a", "b_c"]:
            store.add_card(Card(id=card_id))

        first = store.add_edge("a_b", "c")
        second = store.add_edge("a", "b_c")

        assert first is not second
        assert [(edge.source, edge.target) for edge in store.list_edges()] == [
            ("a_b", "c"),
            ("a", "b_c"),
        ]
        assert [edge.source for edge in store.incoming_edges("b_c")] == ["a"]

        store.remove_edge("a", "b_c")

        assert [edge.source for edge in store.incoming_edges("c")] == ["a_b"]
        assert store.incoming_edges("b_c") == []

    def test_remove_missing_edge(self, store):
        with pytest.raises(NotFoundError):
            store.remove_edge("a", "b")


@pytest.mark.unit
class TestRemoveCard:
    """Tests for card removal."""

    def test_children_detached(self, store):
        store.add_card(Card(id="p"))
        store.add_card(Card(id="q"))
        store.add_card(Card(id="edge_child"))
        store.add_card(Card(id="merge", parent_ids=["p", "q"]))
        store.add_card(Card(id="legacy", parent_id="p"))
        store.add_edge("p", "edge_child")

        children = store.remove_card("p")

        assert children == ["edge_child", "merge", "legacy"]
        assert not store.has_card("p")
        assert store.get_card("merge").parent_ids == ["q"]
        assert store.get_card("legacy").parent_id is None
        assert store.list_edges() == []

    def test_remove_missing_card(self, store):
        with pytest.raises(NotFoundError):
            store.remove_card("missing")


@pytest.mark.unit
class TestSnapshots:
    """Tests for snapshot load and dump."""

    @pytest.mark.parametrize("suffix", [".json", ".yaml"])
    def test_write_then_read(self, store, tmp_path, suffix):
        store.add_card(Card(id="a", prompt="Вопрос", response="Ответ"))
        store.add_card(Card(id="b", parent_ids=["a"]))
        store.add_edge("a", "b")
        path = tmp_path / f"canvas{suffix}"

        InMemoryCardStore.write_snapshot(store.snapshot(), path)
        restored = InMemoryCardStore.from_snapshot(InMemoryCardStore.read_snapshot(path))

        assert [card.id for card in restored.list_cards()] == ["a", "b"]
        assert restored.get_card("a").prompt == "Вопрос"
        assert [edge.id for edge in restored.list_edges()] == ["edge_a_b"]

    def test_snapshot_edges_with_missing_endpoints_loaded(self):
        snapshot = CanvasSnapshot(
            cards=[Card(id="b")],
            edges=[Edge(id="edge_ghost_b", source="ghost", target="b")],
        )

        store = InMemoryCardStore.from_snapshot(snapshot)

        assert [edge.source for edge in store.incoming_edges("b")] == ["ghost"]

    def test_unsupported_suffix(self, store, tmp_path):
        path = tmp_path / "canvas.txt"

        with pytest.raises(ValidationError):
            InMemoryCardStore.write_snapshot(store.snapshot(), path)

        assert not path.exists()

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            InMemoryCardStore.read_snapshot(tmp_path / "missing.json")

    def test_read_invalid_content(self, tmp_path):
        path = tmp_path / "canvas.json"
        path.write_text('{"cards": [{"prompt": "no id"}]}')

        with pytest.raises(ValidationError):
            InMemoryCardStore.read_snapshot(path)
