"""
In-memory card graph store.

Keeps cards and edges in insertion-ordered dicts with per-card edge indices,
so incoming-edge order equals edge discovery order.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from cardgraph.core.graph_store.base import CardGraphStore
from cardgraph.models.canvas import CanvasSnapshot
from cardgraph.models.card import Card
from cardgraph.models.edge import Edge
from cardgraph.utils.exceptions import GraphStoreError, NotFoundError, ValidationError
from cardgraph.utils.id_generator import generate_edge_id
from cardgraph.utils.logger import get_logger

logger = get_logger(__name__)

_IMMUTABLE_FIELDS = {"id", "created_at"}

EdgeKey = tuple[str, str]


class InMemoryCardStore(CardGraphStore):
    """
    Dict-backed card graph store.

    Features:
    - O(1) card lookup by ID
    - Incoming/outgoing edge indices in discovery order
    - Snapshot load/dump (JSON or YAML)
    """

    def __init__(self, cards: list[Card] | None = None, edges: list[Edge] | None = None):
        """
        Initialize store, optionally pre-populated.

        Args:
            cards: Initial cards
            edges: Initial edges (endpoints need not exist)
        """
        self._cards: dict[str, Card] = {}
        # Edges are keyed by endpoints; edge IDs are not unique when card IDs contain "_"
        self._edges: dict[EdgeKey, Edge] = {}
        self._incoming: dict[str, list[EdgeKey]] = {}
        self._outgoing: dict[str, list[EdgeKey]] = {}

        for card in cards or []:
            self.add_card(card)
        for edge in edges or []:
            self._index_edge(edge)

    # ═══════════════════════════════════════════════════════════
    # QUERY SURFACE
    # ═══════════════════════════════════════════════════════════

    def get_card(self, card_id: str) -> Card | None:
        return self._cards.get(card_id)

    def list_cards(self) -> list[Card]:
        return list(self._cards.values())

    def list_edges(self) -> list[Edge]:
        return list(self._edges.values())

    def has_card(self, card_id: str) -> bool:
        return card_id in self._cards

    def incoming_edges(self, card_id: str) -> list[Edge]:
        return [self._edges[key] for key in self._incoming.get(card_id, [])]

    def outgoing_edges(self, card_id: str) -> list[Edge]:
        return [self._edges[key] for key in self._outgoing.get(card_id, [])]

    # ═══════════════════════════════════════════════════════════
    # CARD MUTATIONS
    # ═══════════════════════════════════════════════════════════

    def add_card(self, card: Card) -> Card:
        if card.id in self._cards:
            raise GraphStoreError(f"Card already exists: {card.id}", {"card_id": card.id})
        self._cards[card.id] = card
        return card

    def update_card(self, card_id: str, changes: dict[str, Any]) -> Card:
        card = self._require_card(card_id)

        unknown = set(changes) - set(Card.model_fields)
        if unknown:
            raise ValidationError(
                f"Unknown card fields: {', '.join(sorted(unknown))}",
                {"card_id": card_id, "fields": sorted(unknown)},
            )
        immutable = set(changes) & _IMMUTABLE_FIELDS
        if immutable:
            raise ValidationError(
                f"Card fields cannot be changed: {', '.join(sorted(immutable))}",
                {"card_id": card_id, "fields": sorted(immutable)},
            )

        try:
            updated = Card.model_validate({**card.model_dump(), **changes})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid card update: {e}", {"card_id": card_id}) from e

        updated.touch()
        self._cards[card_id] = updated
        return updated

    def remove_card(self, card_id: str) -> list[str]:
        self._require_card(card_id)

        children: list[str] = []
        for edge in self.outgoing_edges(card_id):
            children.append(edge.target)
        for card in self._cards.values():
            if card_id in card.parent_ids or card.parent_id == card_id:
                if card.id not in children:
                    children.append(card.id)

        for edge in self.incoming_edges(card_id) + self.outgoing_edges(card_id):
            self._unindex_edge(edge)

        del self._cards[card_id]

        # Children keep their other parents; references to the removed card are dropped
        for child_id in children:
            child = self._cards.get(child_id)
            if child is None:
                continue
            changes: dict[str, Any] = {}
            if card_id in child.parent_ids:
                changes["parent_ids"] = [pid for pid in child.parent_ids if pid != card_id]
            if child.parent_id == card_id:
                changes["parent_id"] = None
            if changes:
                self.update_card(child_id, changes)

        logger.debug(f"Removed card {card_id} ({len(children)} children detached)")
        return children

    # ═══════════════════════════════════════════════════════════
    # EDGE MUTATIONS
    # ═══════════════════════════════════════════════════════════

    def add_edge(self, source_id: str, target_id: str) -> Edge:
        if source_id == target_id:
            raise GraphStoreError(
                f"Card cannot be its own parent: {source_id}", {"card_id": source_id}
            )
        self._require_card(source_id)
        self._require_card(target_id)

        existing = self._edges.get((source_id, target_id))
        if existing is not None:
            return existing

        edge = Edge(id=generate_edge_id(source_id, target_id), source=source_id, target=target_id)
        self._index_edge(edge)
        return edge

    def remove_edge(self, source_id: str, target_id: str) -> Edge:
        edge = self._edges.get((source_id, target_id))
        if edge is None:
            raise NotFoundError(
                f"Edge not found: {source_id} -> {target_id}",
                {"source": source_id, "target": target_id},
            )
        self._unindex_edge(edge)
        return edge

    # ═══════════════════════════════════════════════════════════
    # SNAPSHOTS
    # ═══════════════════════════════════════════════════════════

    def snapshot(self) -> CanvasSnapshot:
        """Dump cards and edges (documents are owned by the library)."""
        return CanvasSnapshot(cards=self.list_cards(), edges=self.list_edges())

    @classmethod
    def from_snapshot(cls, snapshot: CanvasSnapshot) -> "InMemoryCardStore":
        """Build a store from a snapshot."""
        return cls(cards=snapshot.cards, edges=snapshot.edges)

    @staticmethod
    def read_snapshot(path: str | Path) -> CanvasSnapshot:
        """
        Read a snapshot file.

        Args:
            path: .json, .yaml or .yml file

        Returns:
            Parsed snapshot

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: If the suffix is unsupported or the content is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {path}")

        with open(path) as f:
            if path.suffix == ".json":
                data = json.load(f)
            elif path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                raise ValidationError(f"Unsupported snapshot format: {path.suffix}")

        try:
            return CanvasSnapshot.model_validate(data or {})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid snapshot {path}: {e}") from e

    @staticmethod
    def write_snapshot(snapshot: CanvasSnapshot, path: str | Path) -> None:
        """Write a snapshot file; format follows the suffix (.json or .yaml/.yml)."""
        path = Path(path)
        if path.suffix not in (".json", ".yaml", ".yml"):
            raise ValidationError(f"Unsupported snapshot format: {path.suffix}")
        path.parent.mkdir(parents=True, exist_ok=True)
        data = snapshot.model_dump(mode="json")

        with open(path, "w") as f:
            if path.suffix == ".json":
                json.dump(data, f, indent=2, ensure_ascii=False)
            else:
                yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)

    # ═══════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════

    def _require_card(self, card_id: str) -> Card:
        card = self._cards.get(card_id)
        if card is None:
            raise NotFoundError(f"Card not found: {card_id}", {"card_id": card_id})
        return card

    def _index_edge(self, edge: Edge) -> None:
        key = (edge.source, edge.target)
        if key in self._edges:
            return
        self._edges[key] = edge
        self._incoming.setdefault(edge.target, []).append(key)
        self._outgoing.setdefault(edge.source, []).append(key)

    def _unindex_edge(self, edge: Edge) -> None:
        key = (edge.source, edge.target)
        self._edges.pop(key, None)
        if key in self._incoming.get(edge.target, []):
            self._incoming[edge.target].remove(key)
        if key in self._outgoing.get(edge.source, []):
            self._outgoing[edge.source].remove(key)
