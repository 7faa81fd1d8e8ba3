"""
Staleness Engine - marks, cascades and clears stale responses.

A response is stale when the context it was generated from (its saved
fingerprint) no longer matches the card's current context.

Mutation handling:
1. Collect the affected region: changed cards, their descendants, and cards
   that surface any of those as virtual ancestors (repeated to a fixpoint)
2. Invalidate: mark each card in the region stale when it has a response
   and its fingerprint differs from the saved one
3. Re-check quotes whose source is in the region
4. Reconcile (always last): clear stale cards whose fingerprint matches again

The saved fingerprint is written only when a generation commits.
"""

from collections import deque

from cardgraph.core.graph_store.base import CardGraphStore
from cardgraph.models.card import Card
from cardgraph.models.context import CompileSettings
from cardgraph.models.staleness import RegenerationPlan, StaleReport
from cardgraph.services.ancestor_collector import AncestorCollector
from cardgraph.services.fingerprint import ContextFingerprinter
from cardgraph.services.graph_resolver import GraphResolver
from cardgraph.utils.exceptions import NotFoundError
from cardgraph.utils.logger import get_logger

logger = get_logger(__name__)


class StalenessEngine:
    """Keeps `is_stale`, `is_quote_invalidated` and saved fingerprints consistent."""

    def __init__(
        self,
        store: CardGraphStore,
        resolver: GraphResolver,
        collector: AncestorCollector,
        fingerprinter: ContextFingerprinter,
        settings: CompileSettings | None = None,
    ):
        """
        Initialize staleness engine.

        Args:
            store: Card store (stale flags are written through it)
            resolver: Parent/child resolver
            collector: Lineage walker
            fingerprinter: Fingerprint source
            settings: Settings generation compiles with
        """
        self.store = store
        self.resolver = resolver
        self.collector = collector
        self.fingerprinter = fingerprinter
        self.settings = settings or CompileSettings()

    def fingerprint(self, card_id: str) -> str | None:
        return self.fingerprinter.fingerprint(card_id, self._card_settings())

    # ═══════════════════════════════════════════════════════════
    # MUTATION HANDLING
    # ═══════════════════════════════════════════════════════════

    def handle_mutation(self, changed_ids: list[str]) -> StaleReport:
        """
        Re-evaluate staleness after primary inputs of some cards changed.

        Args:
            changed_ids: Cards whose own inputs changed (unknown IDs are ignored)

        Returns:
            What changed
        """
        report = StaleReport()
        region = self.affected_region(changed_ids)

        for card_id in region:
            self._invalidate(card_id, report)

        self._check_quotes(region, report)
        self.reconcile(report)

        if report.changed:
            logger.info(
                f"Mutation of {len(changed_ids)} card(s): "
                f"{len(report.marked_stale)} stale, {len(report.cleared)} cleared, "
                f"{len(report.quotes_invalidated)} quotes invalidated, "
                f"{len(report.quotes_restored)} quotes restored"
            )
        return report

    def affected_region(self, changed_ids: list[str]) -> list[str]:
        """
        Cards whose context may depend on the changed cards.

        Args:
            changed_ids: Cards whose own inputs changed

        Returns:
            IDs in breadth-first order, changed cards first
        """
        region: list[str] = []
        visited: set[str] = set()
        queue: deque[str] = deque()
        for card_id in changed_ids:
            if card_id not in visited and self.store.has_card(card_id):
                visited.add(card_id)
                queue.append(card_id)

        while queue:
            current_id = queue.popleft()
            region.append(current_id)

            dependants = [child.id for child in self.resolver.children_of(current_id)]
            dependants += [
                card.id
                for card in self.store.list_cards()
                if current_id in card.virtual_ancestor_ids
            ]
            for dependant_id in dependants:
                if dependant_id not in visited:
                    visited.add(dependant_id)
                    queue.append(dependant_id)

        return region

    def invalidate(self, card_id: str) -> StaleReport:
        """
        Check one card and cascade to its descendants.

        Args:
            card_id: Card to check

        Returns:
            Cards newly marked stale
        """
        report = StaleReport()
        self._invalidate(card_id, report)
        for descendant in self.collector.collect_descendants(card_id):
            self._invalidate(descendant.id, report)
        return report

    def reconcile(self, report: StaleReport | None = None) -> StaleReport:
        """
        Clear every stale card whose context is back to the saved fingerprint.

        Cards without a saved fingerprint stay stale.

        Args:
            report: Report to extend (a new one by default)

        Returns:
            The report with cleared cards added
        """
        report = report or StaleReport()
        for card in self.store.list_cards():
            if not card.is_stale or not card.last_context_fingerprint:
                continue
            if self.fingerprint(card.id) == card.last_context_fingerprint:
                self.store.update_card(card.id, {"is_stale": False})
                if card.id in report.marked_stale:
                    report.marked_stale.remove(card.id)
                else:
                    report.cleared.append(card.id)
                logger.debug(f"Card {card.id} context matches its saved fingerprint again")
        return report

    # ═══════════════════════════════════════════════════════════
    # GENERATION LIFECYCLE
    # ═══════════════════════════════════════════════════════════

    def commit_generation(self, card_id: str, response: str) -> StaleReport:
        """
        Store a finished response together with the context it was built from.

        Args:
            card_id: Generated card
            response: Final response text

        Returns:
            Staleness changes caused downstream

        Raises:
            NotFoundError: If the card doesn't exist
        """
        self._require_card(card_id)
        fingerprint = self.fingerprint(card_id)
        self.store.update_card(
            card_id,
            {
                "response": response,
                "is_stale": False,
                "last_context_fingerprint": fingerprint,
            },
        )
        logger.info(f"Committed generation for {card_id} ({len(response)} chars)")
        return self.handle_mutation([card_id])

    def cancel_generation(self, card_id: str, partial: str | None = None) -> StaleReport:
        """
        Finish an interrupted generation.

        Non-empty partial output is committed as the final response; otherwise
        the previous response stays. Stale flags are reconciled either way.

        Args:
            card_id: Generated card
            partial: Output received before cancellation

        Returns:
            Staleness changes

        Raises:
            NotFoundError: If the card doesn't exist
        """
        self._require_card(card_id)
        if partial:
            logger.info(f"Generation for {card_id} cancelled, keeping partial output")
            return self.commit_generation(card_id, partial)

        logger.info(f"Generation for {card_id} cancelled without output")
        return self.reconcile()

    # ═══════════════════════════════════════════════════════════
    # QUERIES
    # ═══════════════════════════════════════════════════════════

    def is_stale(self, card_id: str) -> bool:
        card = self.store.get_card(card_id)
        return bool(card and card.is_stale)

    def stale_count(self) -> int:
        """Number of stale cards that carry a response."""
        return sum(1 for card in self.store.list_cards() if card.is_stale and card.has_response)

    def regeneration_plan(self) -> RegenerationPlan:
        """
        Order stale cards for regeneration.

        Each level only holds cards whose stale ancestors sit in earlier
        levels. Cards caught in a cycle are appended as a final level.

        Returns:
            Regeneration plan
        """
        stale = [card.id for card in self.store.list_cards() if card.is_stale and card.has_response]
        stale_set = set(stale)
        waiting_on = {
            card_id: self.collector.ancestor_ids(card_id) & stale_set for card_id in stale
        }

        levels: list[list[str]] = []
        placed: set[str] = set()
        remaining = list(stale)
        while remaining:
            level = [card_id for card_id in remaining if waiting_on[card_id] <= placed]
            if not level:
                logger.warning(f"Cyclic stale dependencies among {len(remaining)} cards")
                levels.append(remaining)
                break
            levels.append(level)
            placed.update(level)
            remaining = [card_id for card_id in remaining if card_id not in placed]

        return RegenerationPlan(levels=levels)

    # ═══════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════

    def _invalidate(self, card_id: str, report: StaleReport) -> None:
        card = self.store.get_card(card_id)
        if card is None or card.is_stale or not card.has_response:
            return
        if self.fingerprint(card_id) == card.last_context_fingerprint:
            return
        self.store.update_card(card_id, {"is_stale": True})
        report.marked_stale.append(card_id)
        logger.debug(f"Card {card_id} marked stale")

    def _check_quotes(self, region: list[str], report: StaleReport) -> None:
        region_set = set(region)
        for card in self.store.list_cards():
            if not card.quote or not card.quote_source_id:
                continue
            if card.id not in region_set and card.quote_source_id not in region_set:
                continue

            source = self.store.get_card(card.quote_source_id)
            invalidated = source is None or card.quote not in (source.response or "")
            if invalidated == card.is_quote_invalidated:
                continue

            self.store.update_card(card.id, {"is_quote_invalidated": invalidated})
            if invalidated:
                report.quotes_invalidated.append(card.id)
                logger.info(f"Quote of {card.id} no longer found in {card.quote_source_id}")
            else:
                report.quotes_restored.append(card.id)

    def _card_settings(self) -> CompileSettings:
        # Stale checks always use each card's own exclusions
        if self.settings.exclusions is None:
            return self.settings
        return self.settings.model_copy(update={"exclusions": None})

    def _require_card(self, card_id: str) -> Card:
        card = self.store.get_card(card_id)
        if card is None:
            raise NotFoundError(f"Card not found: {card_id}", {"card_id": card_id})
        return card
