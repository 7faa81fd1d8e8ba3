"""
Base interface for card graph storage.

The engine reads a consistent snapshot through the query methods; the
mutation methods are used by the host application (facade, HTTP layer)
and never by the compiler or fingerprinter.
"""

from abc import ABC, abstractmethod
from typing import Any

from cardgraph.models.card import Card
from cardgraph.models.edge import Edge


class CardGraphStore(ABC):
    """Abstract base class for card graph storage implementations."""

    # ═══════════════════════════════════════════════════════════
    # QUERY SURFACE (consumed by the engine)
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    def get_card(self, card_id: str) -> Card | None:
        """
        Retrieve a card by ID.

        Args:
            card_id: Card identifier

        Returns:
            Card or None if not found
        """
        pass

    @abstractmethod
    def list_cards(self) -> list[Card]:
        """List all cards in insertion order."""
        pass

    @abstractmethod
    def list_edges(self) -> list[Edge]:
        """List all edges in discovery (insertion) order."""
        pass

    def has_card(self, card_id: str) -> bool:
        """Check whether a card exists."""
        return self.get_card(card_id) is not None

    def incoming_edges(self, card_id: str) -> list[Edge]:
        """
        Edges whose target is the given card, in discovery order.

        Implementations may override with an indexed lookup.
        """
        return [edge for edge in self.list_edges() if edge.target == card_id]

    def outgoing_edges(self, card_id: str) -> list[Edge]:
        """Edges whose source is the given card, in discovery order."""
        return [edge for edge in self.list_edges() if edge.source == card_id]

    # ═══════════════════════════════════════════════════════════
    # MUTATIONS (host application only)
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    def add_card(self, card: Card) -> Card:
        """
        Add a card.

        Args:
            card: Card to store

        Returns:
            Stored card

        Raises:
            GraphStoreError: If a card with the same ID exists
        """
        pass

    @abstractmethod
    def update_card(self, card_id: str, changes: dict[str, Any]) -> Card:
        """
        Apply field changes to a card.

        Args:
            card_id: Card identifier
            changes: Field name → new value

        Returns:
            Updated card

        Raises:
            NotFoundError: If the card doesn't exist
            ValidationError: If the changes don't validate
        """
        pass

    @abstractmethod
    def remove_card(self, card_id: str) -> list[str]:
        """
        Remove a card and every edge touching it.

        Args:
            card_id: Card identifier

        Returns:
            IDs of the removed card's former children

        Raises:
            NotFoundError: If the card doesn't exist
        """
        pass

    @abstractmethod
    def add_edge(self, source_id: str, target_id: str) -> Edge:
        """
        Link a parent card to a child card.

        Args:
            source_id: Parent card ID
            target_id: Child card ID

        Returns:
            New or already existing edge

        Raises:
            NotFoundError: If either card doesn't exist
            GraphStoreError: If source and target are the same card
        """
        pass

    @abstractmethod
    def remove_edge(self, source_id: str, target_id: str) -> Edge:
        """
        Remove the edge between two cards.

        Raises:
            NotFoundError: If no such edge exists
        """
        pass
