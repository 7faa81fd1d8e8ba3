"""
Graph Resolver - direct parents and children of a card.

Parent references live in three places for schema-migration reasons. They
are resolved once into a ParentLink; the priority rule below is the only
business logic:

1. Explicit ordered parent list (multi-parent merge cards)
2. Incoming edges, in edge discovery order
3. Legacy single parent field
"""

from cardgraph.core.graph_store.base import CardGraphStore
from cardgraph.models.card import (
    Card,
    EdgeParents,
    ExplicitParents,
    LegacyParent,
    NoParents,
    ParentLink,
)


class GraphResolver:
    """Resolves parent and child links over a card graph snapshot."""

    def __init__(self, store: CardGraphStore):
        """
        Initialize resolver.

        Args:
            store: Card/edge query surface
        """
        self.store = store

    def parent_link(self, card: Card) -> ParentLink:
        """
        Decide which mechanism supplies a card's parents.

        The edge tier only wins when at least one edge source still exists;
        otherwise resolution falls through to the legacy field.

        Args:
            card: Card to resolve

        Returns:
            Tagged parent link
        """
        if card.parent_ids:
            return ExplicitParents(ids=_unique(card.parent_ids))

        edge_sources = _unique([edge.source for edge in self.store.incoming_edges(card.id)])
        if any(self.store.has_card(source) for source in edge_sources):
            return EdgeParents(ids=edge_sources)

        if card.parent_id:
            return LegacyParent(ids=[card.parent_id])

        return NoParents()

    def parent_ids_of(self, card_id: str) -> list[str]:
        """
        IDs of a card's direct parents that exist in the store.

        Args:
            card_id: Card identifier

        Returns:
            Ordered parent IDs (empty for unknown cards)
        """
        card = self.store.get_card(card_id)
        if card is None:
            return []
        link = self.parent_link(card)
        return [
            parent_id
            for parent_id in link.ids
            if parent_id != card_id and self.store.has_card(parent_id)
        ]

    def parents_of(self, card_id: str) -> list[Card]:
        """
        A card's direct parents, in priority-rule order.

        Unknown parent IDs are dropped silently.

        Args:
            card_id: Card identifier

        Returns:
            Ordered list of parent cards
        """
        parents = []
        for parent_id in self.parent_ids_of(card_id):
            parent = self.store.get_card(parent_id)
            if parent is not None:
                parents.append(parent)
        return parents

    def children_of(self, card_id: str) -> list[Card]:
        """
        Cards whose resolved parents include the given card.

        Candidates come from outgoing edges and from explicit/legacy parent
        fields; each is confirmed against the priority rule so a stale edge
        shadowed by an explicit parent list doesn't count.

        Args:
            card_id: Card identifier

        Returns:
            Child cards, edge children first, then field-linked children
        """
        candidate_ids = [edge.target for edge in self.store.outgoing_edges(card_id)]
        for card in self.store.list_cards():
            if card_id in card.parent_ids or card.parent_id == card_id:
                candidate_ids.append(card.id)

        children = []
        for child_id in _unique(candidate_ids):
            if child_id == card_id:
                continue
            if card_id in self.parent_ids_of(child_id):
                child = self.store.get_card(child_id)
                if child is not None:
                    children.append(child)
        return children


def _unique(ids: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered = []
    for item in ids:
        if item and item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered
