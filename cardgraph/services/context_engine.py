"""
Context Engine - single entry point for hosts of the card graph.

Brings together:
- Graph resolution and lineage traversal
- Context compilation (preview blocks and generation string)
- Exclusion registry
- Virtual ancestors via semantic search
- Fingerprinting and staleness handling

Every mutation goes through the store first and then through the staleness
engine's mutation handler, whose last step is always reconciliation.
"""

from typing import Any

from cardgraph.config import Config
from cardgraph.core.graph_store.base import CardGraphStore
from cardgraph.core.graph_store.memory_store import InMemoryCardStore
from cardgraph.core.library.base import DocumentLibrary
from cardgraph.core.library.memory_library import InMemoryDocumentLibrary
from cardgraph.core.search.base import SemanticSearch
from cardgraph.core.search.memory_index import InMemorySearchIndex
from cardgraph.models.attachment import Attachment
from cardgraph.models.canvas import CanvasSnapshot
from cardgraph.models.card import Card
from cardgraph.models.context import CompileSettings, ContextBlock, ExclusionSet, SearchCandidate
from cardgraph.models.staleness import RegenerationPlan, StaleReport
from cardgraph.services.ancestor_collector import AncestorCollector
from cardgraph.services.attachment_context import AttachmentContextLayer
from cardgraph.services.context_compiler import ContextCompiler, render_context
from cardgraph.services.exclusion_registry import ExclusionRegistry
from cardgraph.services.fingerprint import ContextFingerprinter
from cardgraph.services.graph_resolver import GraphResolver
from cardgraph.services.staleness import StalenessEngine
from cardgraph.services.virtual_filter import VirtualAncestorFilter
from cardgraph.utils.exceptions import NotFoundError, SearchError, ValidationError
from cardgraph.utils.logger import get_logger

logger = get_logger(__name__)

# Written by the engine only
_ENGINE_FIELDS = {"is_stale", "is_quote_invalidated", "last_context_fingerprint"}


class ContextEngine:
    """
    Context assembly and staleness engine over one card graph.

    Features:
    - Ordered context blocks and the matching generation string
    - Per-card exclusions honored identically by preview and generation
    - Lineage-filtered semantic-search ancestors
    - Stale marking, cascading and auto-clearing on every mutation
    - Generation commit/cancel lifecycle and regeneration ordering
    """

    def __init__(
        self,
        store: CardGraphStore,
        config: Config | None = None,
        library: DocumentLibrary | None = None,
        search: SemanticSearch | None = None,
    ):
        """
        Initialize Context Engine.

        Args:
            store: Card graph store
            config: Configuration object
            library: Authoritative attachment surrogates
            search: Semantic search service for virtual ancestors
        """
        self.store = store
        self.config = config or Config()
        self.library = library
        self.search = search

        self.resolver = GraphResolver(store)
        self.collector = AncestorCollector(
            self.resolver, max_iterations=self.config.context.max_ancestor_iterations
        )
        self.registry = ExclusionRegistry(store)
        self.attachments = AttachmentContextLayer(library)
        self.virtual_filter = VirtualAncestorFilter(
            store, self.collector, top_k=self.config.context.virtual_top_k
        )
        self.compiler = ContextCompiler(
            store=store,
            collector=self.collector,
            attachments=self.attachments,
            virtual_filter=self.virtual_filter,
            registry=self.registry,
        )
        self.fingerprinter = ContextFingerprinter(store, self.compiler)
        self.staleness = StalenessEngine(
            store=store,
            resolver=self.resolver,
            collector=self.collector,
            fingerprinter=self.fingerprinter,
            settings=self.config.compile_settings(),
        )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: CanvasSnapshot,
        config: Config | None = None,
        search: SemanticSearch | None = None,
    ) -> "ContextEngine":
        """
        Build an engine over in-memory stores loaded from a snapshot.

        Args:
            snapshot: Cards, edges and library documents
            config: Configuration object
            search: Semantic search service

        Returns:
            ContextEngine instance
        """
        store = InMemoryCardStore.from_snapshot(snapshot)
        library = InMemoryDocumentLibrary(snapshot.documents)
        logger.info(
            f"Loaded canvas: {len(snapshot.cards)} cards, {len(snapshot.edges)} edges, "
            f"{len(snapshot.documents)} documents"
        )
        return cls(store=store, config=config, library=library, search=search)

    def snapshot(self) -> CanvasSnapshot:
        """Dump the current canvas state."""
        documents = (
            self.library.list_documents()
            if isinstance(self.library, InMemoryDocumentLibrary)
            else []
        )
        return CanvasSnapshot(
            cards=self.store.list_cards(),
            edges=self.store.list_edges(),
            documents=documents,
        )

    # ═══════════════════════════════════════════════════════════
    # CONTEXT ASSEMBLY
    # ═══════════════════════════════════════════════════════════

    def settings(
        self,
        use_summarization: bool | None = None,
        exclusions: ExclusionSet | None = None,
    ) -> CompileSettings:
        """
        Compile settings from config, with optional overrides.

        Args:
            use_summarization: Override for the configured flag
            exclusions: Override for the card's stored exclusions

        Returns:
            CompileSettings
        """
        settings = self.config.compile_settings(use_summarization)
        if exclusions is not None:
            settings = settings.model_copy(update={"exclusions": exclusions})
        return settings

    def compile(
        self,
        card_id: str,
        use_summarization: bool | None = None,
        exclusions: ExclusionSet | None = None,
    ) -> list[ContextBlock]:
        """
        Ordered context blocks of a card.

        Args:
            card_id: Card identifier
            use_summarization: Override for the configured flag
            exclusions: Override for the card's stored exclusions

        Returns:
            Context blocks (empty for unknown cards)
        """
        return self.compiler.compile(card_id, self.settings(use_summarization, exclusions))

    def preview(self, card_id: str, use_summarization: bool | None = None) -> list[ContextBlock]:
        """
        Blocks shown to the user before generating.

        Without an override these are exactly the blocks build_context
        flattens; an override only changes what is displayed.
        """
        return self.compile(card_id, use_summarization)

    def build_context(self, card_id: str) -> str:
        """
        Context string sent with a generation request.

        Always compiled with the configured settings, the same ones
        commit_generation fingerprints with.

        Args:
            card_id: Card identifier

        Returns:
            Rendered context (empty for unknown cards or cards without context)
        """
        return render_context(self.compile(card_id))

    def fingerprint(self, card_id: str) -> str | None:
        """Current context fingerprint of a card (None for unknown cards)."""
        return self.staleness.fingerprint(card_id)

    def is_stale(self, card_id: str) -> bool:
        return self.staleness.is_stale(card_id)

    def get_card(self, card_id: str) -> Card:
        """
        Retrieve a card.

        Raises:
            NotFoundError: If the card doesn't exist
        """
        card = self.store.get_card(card_id)
        if card is None:
            raise NotFoundError(f"Card not found: {card_id}", {"card_id": card_id})
        return card

    # ═══════════════════════════════════════════════════════════
    # CARD MUTATIONS
    # ═══════════════════════════════════════════════════════════

    def add_card(self, card: Card) -> StaleReport:
        """
        Add a card to the graph.

        Raises:
            GraphStoreError: If a card with the same ID exists
            ValidationError: If the card sets engine-owned state
        """
        if card.last_context_fingerprint is not None:
            raise ValidationError(
                "New cards cannot carry a saved fingerprint", {"card_id": card.id}
            )
        self.store.add_card(card)
        logger.debug(f"Added card {card.id}")
        return self.staleness.handle_mutation([card.id])

    def update_card(self, card_id: str, changes: dict[str, Any]) -> StaleReport:
        """
        Apply host edits (prompt, response, summary, quote, parents, ...).

        Args:
            card_id: Card identifier
            changes: Field name → new value

        Returns:
            Staleness changes

        Raises:
            NotFoundError: If the card doesn't exist
            ValidationError: If the changes are invalid or touch engine-owned fields
        """
        owned = set(changes) & _ENGINE_FIELDS
        if owned:
            raise ValidationError(
                f"Fields are managed by the engine: {', '.join(sorted(owned))}",
                {"card_id": card_id, "fields": sorted(owned)},
            )

        self.get_card(card_id)
        changed_ids = [card_id]
        if "parent_ids" in changes or "parent_id" in changes:
            changed_ids += [descendant.id for descendant in self.collector.collect_descendants(card_id)]
        self.store.update_card(card_id, changes)
        return self.staleness.handle_mutation(changed_ids)

    def remove_card(self, card_id: str) -> StaleReport:
        """
        Remove a card and its edges.

        Children keep their other parents. Cards that surfaced the removed
        card (as child, quote source or virtual ancestor) are re-evaluated.

        Raises:
            NotFoundError: If the card doesn't exist
        """
        self.get_card(card_id)
        dependants = [
            card.id
            for card in self.store.list_cards()
            if card.quote_source_id == card_id or card_id in card.virtual_ancestor_ids
        ]
        children = self.store.remove_card(card_id)
        if isinstance(self.search, InMemorySearchIndex):
            self.search.remove(card_id)
        logger.info(f"Removed card {card_id}")
        return self.staleness.handle_mutation(children + dependants)

    def toggle_excluded_ancestor(self, card_id: str, ancestor_id: str) -> StaleReport:
        """
        Switch an ancestor (or virtual ancestor) off or back on for a card.

        Raises:
            NotFoundError: If the card doesn't exist
            ValidationError: If the card would exclude itself
        """
        excluded = self.registry.toggle_ancestor(card_id, ancestor_id)
        logger.debug(f"Ancestor {ancestor_id} {'excluded from' if excluded else 'restored to'} {card_id}")
        return self.staleness.handle_mutation([card_id])

    def toggle_excluded_attachment(self, card_id: str, attachment_id: str) -> StaleReport:
        """
        Switch an attachment off or back on for a card.

        Raises:
            NotFoundError: If the card doesn't exist
        """
        excluded = self.registry.toggle_attachment(card_id, attachment_id)
        logger.debug(
            f"Attachment {attachment_id} {'excluded from' if excluded else 'restored to'} {card_id}"
        )
        return self.staleness.handle_mutation([card_id])

    def add_attachment(self, card_id: str, attachment: Attachment) -> StaleReport:
        """
        Attach a document to a card.

        Raises:
            NotFoundError: If the card doesn't exist
            ValidationError: If the document is already attached to the card
        """
        card = self.get_card(card_id)
        if any(existing.attachment_id == attachment.attachment_id for existing in card.attachments):
            raise ValidationError(
                f"Attachment already present: {attachment.attachment_id}",
                {"card_id": card_id, "attachment_id": attachment.attachment_id},
            )
        self.store.update_card(card_id, {"attachments": [*card.attachments, attachment]})
        return self.staleness.handle_mutation([card_id])

    def remove_attachment(self, card_id: str, attachment_id: str) -> StaleReport:
        """
        Detach a document from a card.

        Raises:
            NotFoundError: If the card or the attachment doesn't exist
        """
        card = self.get_card(card_id)
        remaining = [a for a in card.attachments if a.attachment_id != attachment_id]
        if len(remaining) == len(card.attachments):
            raise NotFoundError(
                f"Attachment not found: {attachment_id}",
                {"card_id": card_id, "attachment_id": attachment_id},
            )
        self.store.update_card(
            card_id,
            {
                "attachments": remaining,
                "excluded_attachment_ids": [
                    excluded for excluded in card.excluded_attachment_ids if excluded != attachment_id
                ],
            },
        )
        return self.staleness.handle_mutation([card_id])

    def document_changed(self, doc_id: str) -> StaleReport:
        """
        Re-evaluate cards after a library document's surrogates were replaced.

        Args:
            doc_id: Document identifier

        Returns:
            Staleness changes for the owners and their descendants
        """
        owners = [
            card.id
            for card in self.store.list_cards()
            if any(attachment.attachment_id == doc_id for attachment in card.attachments)
        ]
        return self.staleness.handle_mutation(owners)

    # ═══════════════════════════════════════════════════════════
    # EDGE MUTATIONS
    # ═══════════════════════════════════════════════════════════

    def add_edge(self, source_id: str, target_id: str) -> StaleReport:
        """
        Link a parent to a child card.

        Raises:
            NotFoundError: If either card doesn't exist
            GraphStoreError: If source and target are the same card
            ValidationError: If the edge would close a cycle
        """
        self.get_card(target_id)
        if source_id in self.collector.descendant_ids(target_id):
            raise ValidationError(
                f"Edge {source_id} -> {target_id} would create a cycle",
                {"source": source_id, "target": target_id},
            )
        self.store.add_edge(source_id, target_id)
        return self.staleness.handle_mutation([target_id])

    def remove_edge(self, source_id: str, target_id: str) -> StaleReport:
        """
        Remove the link between two cards.

        Raises:
            NotFoundError: If no such edge exists
        """
        self.store.remove_edge(source_id, target_id)
        return self.staleness.handle_mutation([target_id])

    # ═══════════════════════════════════════════════════════════
    # VIRTUAL ANCESTORS
    # ═══════════════════════════════════════════════════════════

    def set_virtual_ancestors(self, card_id: str, candidates: list[SearchCandidate]) -> StaleReport:
        """
        Store filtered search hits as a card's virtual ancestors.

        Args:
            card_id: Card the search was run for
            candidates: Raw ranked candidates

        Returns:
            Staleness changes

        Raises:
            NotFoundError: If the card doesn't exist
        """
        self.get_card(card_id)
        kept = self.virtual_filter.filter(
            card_id,
            candidates,
            score_threshold=self.config.search.similarity_threshold,
        )
        self.store.update_card(
            card_id,
            {
                "virtual_ancestor_ids": [candidate.card_id for candidate in kept],
                "virtual_ancestor_scores": {candidate.card_id: candidate.score for candidate in kept},
            },
        )
        logger.debug(f"Stored {len(kept)} of {len(candidates)} virtual ancestors for {card_id}")
        return self.staleness.handle_mutation([card_id])

    async def refresh_virtual_ancestors(
        self, card_id: str, query_embedding: list[float]
    ) -> StaleReport:
        """
        Re-run semantic search for a card and store the filtered hits.

        Search failures degrade to an empty candidate list.

        Args:
            card_id: Card the search is run for
            query_embedding: Embedding of the card's question

        Returns:
            Staleness changes

        Raises:
            NotFoundError: If the card doesn't exist
        """
        self.get_card(card_id)
        candidates: list[SearchCandidate] = []
        if self.search is None:
            logger.warning(f"No search service configured, clearing virtual ancestors of {card_id}")
        else:
            try:
                candidates = await self.search.search(
                    query_embedding,
                    limit=self.config.search.limit,
                    score_threshold=self.config.search.similarity_threshold,
                )
            except SearchError as e:
                logger.warning(f"Semantic search failed for {card_id}: {e}")

        return self.set_virtual_ancestors(card_id, candidates)

    # ═══════════════════════════════════════════════════════════
    # GENERATION LIFECYCLE
    # ═══════════════════════════════════════════════════════════

    def commit_generation(self, card_id: str, response: str) -> StaleReport:
        """Store a finished response and its context fingerprint."""
        return self.staleness.commit_generation(card_id, response)

    def cancel_generation(self, card_id: str, partial: str | None = None) -> StaleReport:
        """Finish an interrupted generation (partial output is kept when non-empty)."""
        return self.staleness.cancel_generation(card_id, partial)

    def stale_count(self) -> int:
        return self.staleness.stale_count()

    def regeneration_plan(self) -> RegenerationPlan:
        return self.staleness.regeneration_plan()

