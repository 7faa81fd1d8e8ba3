"""
Virtual Ancestor Filter - keeps lineage out of semantic-search context.

Lineage already reaches a card through the compiler. Admitting an ancestor
again via search would duplicate it; admitting a descendant would leak the
card's own future context into its present generation.
"""

from cardgraph.core.graph_store.base import CardGraphStore
from cardgraph.models.context import SearchCandidate
from cardgraph.services.ancestor_collector import AncestorCollector
from cardgraph.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TOP_K = 5


class VirtualAncestorFilter:
    """Filters similarity-search candidates against a card's lineage."""

    def __init__(
        self,
        store: CardGraphStore,
        collector: AncestorCollector,
        top_k: int = DEFAULT_TOP_K,
    ):
        """
        Initialize filter.

        Args:
            store: Live card set
            collector: Lineage walker
            top_k: Candidates kept after filtering
        """
        self.store = store
        self.collector = collector
        self.top_k = top_k

    def lineage_ids(self, card_id: str) -> set[str]:
        """The card itself plus all of its ancestors and descendants."""
        return {card_id} | self.collector.ancestor_ids(card_id) | self.collector.descendant_ids(card_id)

    def filter(
        self,
        card_id: str,
        candidates: list[SearchCandidate],
        score_threshold: float | None = None,
        top_k: int | None = None,
    ) -> list[SearchCandidate]:
        """
        Remove lineage, deleted cards and weak hits from raw candidates.

        Args:
            card_id: Card the search was run for
            candidates: Raw ranked candidates
            score_threshold: Minimum score, if any
            top_k: Override for the configured cap

        Returns:
            At most top_k candidates, highest score first
        """
        top_k = self.top_k if top_k is None else top_k
        lineage = self.lineage_ids(card_id)

        kept: list[SearchCandidate] = []
        seen: set[str] = set()
        for candidate in candidates:
            if candidate.card_id in seen:
                continue
            seen.add(candidate.card_id)
            if candidate.card_id in lineage:
                continue
            if not self.store.has_card(candidate.card_id):
                continue
            if score_threshold is not None and candidate.score < score_threshold:
                continue
            kept.append(candidate)

        kept.sort(key=lambda candidate: candidate.score, reverse=True)
        dropped = len(candidates) - len(kept)
        if dropped:
            logger.debug(f"Virtual filter for {card_id}: dropped {dropped} of {len(candidates)}")
        return kept[:top_k]

    def filter_ids(self, ids: list[str], lineage: set[str], top_k: int | None = None) -> list[str]:
        """
        Re-filter stored virtual ancestor IDs at assembly time.

        Stored lists may predate a deletion or a new edge, so the same rules
        apply again; the stored order is kept.

        Args:
            ids: Stored virtual ancestor IDs
            lineage: Lineage of the card being assembled (see lineage_ids)
            top_k: Override for the configured cap

        Returns:
            Surviving IDs in stored order
        """
        top_k = self.top_k if top_k is None else top_k
        kept: list[str] = []
        for virtual_id in ids:
            if virtual_id in lineage or virtual_id in kept:
                continue
            if not self.store.has_card(virtual_id):
                continue
            kept.append(virtual_id)
        return kept[:top_k]
