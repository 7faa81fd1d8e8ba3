"""
Ancestor Collector - breadth-first lineage traversal.

Multi-parent merge cards turn the graph into a converging DAG, so every walk
keys a visited-set by card ID. An iteration ceiling guarantees termination
on malformed (cyclic) data.
"""

from collections import deque
from collections.abc import Callable

from cardgraph.models.card import Card
from cardgraph.services.graph_resolver import GraphResolver
from cardgraph.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 500


class AncestorCollector:
    """Collects ancestors and descendants of a card."""

    def __init__(self, resolver: GraphResolver, max_iterations: int = DEFAULT_MAX_ITERATIONS):
        """
        Initialize collector.

        Args:
            resolver: Parent/child resolver
            max_iterations: Hard ceiling on dequeued cards per traversal
        """
        self.resolver = resolver
        self.max_iterations = max_iterations

    def collect_ancestor_levels(self, card_id: str) -> list[tuple[Card, int]]:
        """
        Ancestors with their level (0 = direct parent, 1 = grandparent, ...).

        Args:
            card_id: Card to start from (never part of the result)

        Returns:
            (card, level) pairs in breadth-first discovery order
        """
        return self._walk(card_id, self.resolver.parents_of, "ancestors")

    def collect_ancestors(self, card_id: str) -> list[Card]:
        """
        Full ancestor set in breadth-first discovery order.

        Each card appears once even when reachable via several paths.

        Args:
            card_id: Card to start from

        Returns:
            Ordered list of ancestor cards
        """
        return [card for card, _ in self.collect_ancestor_levels(card_id)]

    def collect_descendants(self, card_id: str) -> list[Card]:
        """
        Every card reachable forward from the given card, breadth-first.

        Args:
            card_id: Card to start from

        Returns:
            Ordered list of descendant cards
        """
        return [card for card, _ in self._walk(card_id, self.resolver.children_of, "descendants")]

    def ancestor_ids(self, card_id: str) -> set[str]:
        return {card.id for card in self.collect_ancestors(card_id)}

    def descendant_ids(self, card_id: str) -> set[str]:
        return {card.id for card in self.collect_descendants(card_id)}

    def _walk(
        self,
        card_id: str,
        neighbours: Callable[[str], list[Card]],
        direction: str,
    ) -> list[tuple[Card, int]]:
        result: list[tuple[Card, int]] = []
        visited: set[str] = {card_id}
        queue: deque[tuple[str, int]] = deque([(card_id, -1)])
        iterations = 0

        while queue:
            if iterations >= self.max_iterations:
                logger.warning(
                    f"Stopped collecting {direction} of {card_id} after "
                    f"{self.max_iterations} iterations ({len(result)} found)"
                )
                break
            iterations += 1

            current_id, level = queue.popleft()
            for neighbour in neighbours(current_id):
                if neighbour.id in visited:
                    continue
                visited.add(neighbour.id)
                result.append((neighbour, level + 1))
                queue.append((neighbour.id, level + 1))

        return result
