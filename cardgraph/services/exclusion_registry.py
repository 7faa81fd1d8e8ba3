"""
Exclusion Registry - per-card sets of switched-off ancestors and attachments.

The preview and the generation string are both built from the ExclusionSet
returned here, through the same compile call, so what the user sees as
context is exactly what is sent.
"""

from cardgraph.core.graph_store.base import CardGraphStore
from cardgraph.models.card import Card
from cardgraph.models.context import ExclusionSet
from cardgraph.utils.exceptions import NotFoundError, ValidationError


class ExclusionRegistry:
    """Reads and toggles the exclusion sets stored on cards."""

    def __init__(self, store: CardGraphStore):
        self.store = store

    @staticmethod
    def exclusions_of(card: Card) -> ExclusionSet:
        """Exclusion set of a card."""
        return ExclusionSet(
            ancestor_ids=frozenset(card.excluded_ancestor_ids),
            attachment_ids=frozenset(card.excluded_attachment_ids),
        )

    def for_card(self, card_id: str) -> ExclusionSet:
        """
        Exclusion set of a card by ID.

        Unknown cards have nothing excluded.
        """
        card = self.store.get_card(card_id)
        if card is None:
            return ExclusionSet()
        return self.exclusions_of(card)

    def toggle_ancestor(self, card_id: str, ancestor_id: str) -> bool:
        """
        Toggle an ancestor (or virtual ancestor) in a card's exclusions.

        Args:
            card_id: Card whose context is affected
            ancestor_id: Ancestor to switch off or back on

        Returns:
            True if the ancestor is now excluded

        Raises:
            NotFoundError: If the card doesn't exist
            ValidationError: If a card would exclude itself
        """
        if card_id == ancestor_id:
            raise ValidationError("A card cannot exclude itself", {"card_id": card_id})
        card = self._require_card(card_id)
        excluded, now_excluded = _toggle(card.excluded_ancestor_ids, ancestor_id)
        self.store.update_card(card_id, {"excluded_ancestor_ids": excluded})
        return now_excluded

    def toggle_attachment(self, card_id: str, attachment_id: str) -> bool:
        """
        Toggle an attachment in a card's exclusions.

        The exclusion applies to the attachment wherever it appears in the
        card's context (own attachments and inherited ones).

        Returns:
            True if the attachment is now excluded

        Raises:
            NotFoundError: If the card doesn't exist
        """
        card = self._require_card(card_id)
        excluded, now_excluded = _toggle(card.excluded_attachment_ids, attachment_id)
        self.store.update_card(card_id, {"excluded_attachment_ids": excluded})
        return now_excluded

    def _require_card(self, card_id: str) -> Card:
        card = self.store.get_card(card_id)
        if card is None:
            raise NotFoundError(f"Card not found: {card_id}", {"card_id": card_id})
        return card


def _toggle(ids: list[str], item: str) -> tuple[list[str], bool]:
    if item in ids:
        return [existing for existing in ids if existing != item], False
    return [*ids, item], True
