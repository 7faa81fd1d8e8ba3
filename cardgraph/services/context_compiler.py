"""
Context Compiler - turns a card's lineage into an ordered list of context blocks.

Sequence:
1. Direct semantic-search hits (level -1)
2. The card's own attachments (level 0, fullest surrogate)
3. Per direct parent: parent block, its attachments, its virtual ancestors (level 1)
4. Per deeper ancestor: ancestor block, its attachments, its virtual ancestors (level + 1)

Selection per ancestor:
- A quote of the ancestor held anywhere downstream (the card itself, a direct
  parent, or another ancestor) pins the block to that quote.
- Without a quote: full response, or the summary when summarization is on
  and one exists. Summaries are produced asynchronously, so a missing one
  falls back to the full response.
- Direct parents always surface their full response outside quotes.

The same blocks feed the preview and the generation string; `content_kind`
is display metadata and never changes assembled text.
"""

from cardgraph.core.graph_store.base import CardGraphStore
from cardgraph.models.card import Card
from cardgraph.models.context import (
    BlockKind,
    BlockOrigin,
    CompileSettings,
    ContentKind,
    ContextBlock,
    ExclusionSet,
)
from cardgraph.services.ancestor_collector import AncestorCollector
from cardgraph.services.attachment_context import AttachmentContextLayer
from cardgraph.services.exclusion_registry import ExclusionRegistry
from cardgraph.services.virtual_filter import VirtualAncestorFilter
from cardgraph.utils.logger import get_logger
from cardgraph.utils.text import truncate

logger = get_logger(__name__)


class ContextCompiler:
    """Rule engine assembling context blocks for a card."""

    def __init__(
        self,
        store: CardGraphStore,
        collector: AncestorCollector,
        attachments: AttachmentContextLayer,
        virtual_filter: VirtualAncestorFilter,
        registry: ExclusionRegistry,
    ):
        """
        Initialize compiler.

        Args:
            store: Card query surface
            collector: Lineage walker
            attachments: Attachment surrogate layer
            virtual_filter: Lineage filter for semantic-search hits
            registry: Exclusion sets per card
        """
        self.store = store
        self.collector = collector
        self.attachments = attachments
        self.virtual_filter = virtual_filter
        self.registry = registry

    def compile(self, card_id: str, settings: CompileSettings | None = None) -> list[ContextBlock]:
        """
        Assemble the ordered context of a card.

        Args:
            card_id: Card whose context is assembled
            settings: Summarization flag, exclusion override and caps

        Returns:
            Ordered context blocks (empty for unknown cards)
        """
        settings = settings or CompileSettings()
        card = self.store.get_card(card_id)
        if card is None:
            logger.warning(f"Cannot compile context for unknown card {card_id}")
            return []

        exclusions = settings.exclusions or self.registry.exclusions_of(card)
        limits = settings.limits

        levels = self.collector.collect_ancestor_levels(card_id)
        chain = [ancestor for ancestor, _ in levels]
        lineage = {card_id} | {ancestor.id for ancestor in chain}
        lineage |= self.collector.descendant_ids(card_id)

        blocks: list[ContextBlock] = []
        seen_attachments: set[str] = set()
        surfaced_virtual: set[str] = set()

        for virtual_id in self._visible_virtual_ids(
            card.virtual_ancestor_ids, lineage, exclusions, surfaced_virtual, limits.virtual_top_k
        ):
            virtual = self.store.get_card(virtual_id)
            if virtual is None or not (virtual.prompt or virtual.response):
                continue
            blocks.append(
                ContextBlock(
                    level=-1,
                    kind=BlockKind.VIRTUAL,
                    content_kind=ContentKind.FULL,
                    source_id=virtual.id,
                    card_kind=virtual.kind,
                    prompt=virtual.prompt,
                    text=virtual.response or "",
                    score=card.virtual_ancestor_scores.get(virtual.id),
                )
            )

        blocks.extend(
            self.attachments.attachment_blocks(
                card,
                level=0,
                prefer_summary=False,
                exclusions=exclusions,
                seen=seen_attachments,
                limits=limits,
            )
        )

        for ancestor, level in levels:
            if exclusions.excludes_card(ancestor.id):
                continue

            quote = self.find_quote(ancestor.id, card, chain, exclusions)
            if level == 0:
                block = self._parent_block(ancestor, quote, settings)
                virtual_cap = limits.virtual_parent_truncation_chars
            else:
                block = self._ancestor_block(ancestor, level, quote, settings)
                virtual_cap = limits.virtual_ancestor_truncation_chars

            if block is not None:
                blocks.append(block)

            blocks.extend(
                self.attachments.attachment_blocks(
                    ancestor,
                    level=level,
                    prefer_summary=True,
                    exclusions=exclusions,
                    seen=seen_attachments,
                    limits=limits,
                )
            )

            for virtual_id in self._visible_virtual_ids(
                ancestor.virtual_ancestor_ids,
                lineage,
                exclusions,
                surfaced_virtual,
                limits.virtual_top_k,
            ):
                virtual = self.store.get_card(virtual_id)
                if virtual is None:
                    continue
                virtual_block = self._transitive_virtual_block(
                    virtual, level + 1, virtual_cap, settings.use_summarization
                )
                if virtual_block is not None:
                    blocks.append(virtual_block)

        logger.debug(
            f"Compiled {len(blocks)} blocks for {card_id} "
            f"({len(chain)} ancestors, summarization={settings.use_summarization})"
        )
        return blocks

    def find_quote(
        self,
        ancestor_id: str,
        card: Card,
        chain: list[Card],
        exclusions: ExclusionSet,
    ) -> str | None:
        """
        Find a downstream quote of an ancestor.

        Searched in order: the card itself, then the ancestor chain (direct
        parents come first in it). The ancestor itself and excluded
        ancestors are skipped.

        Args:
            ancestor_id: Ancestor whose display may be pinned
            card: Card whose context is assembled
            chain: Ancestor chain in discovery order
            exclusions: Exclusion set of the card

        Returns:
            The quote verbatim, or None
        """
        for candidate in [card, *chain]:
            if candidate.id == ancestor_id:
                continue
            if candidate.id != card.id and exclusions.excludes_card(candidate.id):
                continue
            if candidate.quote_source_id == ancestor_id and candidate.quote:
                return candidate.quote
        return None

    @staticmethod
    def render(blocks: list[ContextBlock]) -> str:
        """Flatten compiled blocks into the generation string (see render_context)."""
        return render_context(blocks)

    def _parent_block(
        self, parent: Card, quote: str | None, settings: CompileSettings
    ) -> ContextBlock | None:
        if quote:
            if settings.use_summarization and parent.summary:
                text, content_kind = parent.summary, ContentKind.SUMMARY
            else:
                text, content_kind = parent.response or "", ContentKind.FULL
            return self._card_block(parent, 0, BlockKind.QUOTE, content_kind, text, quote)

        if not (parent.prompt or parent.response):
            return None
        return self._card_block(parent, 0, BlockKind.FULL, ContentKind.FULL, parent.response or "")

    def _ancestor_block(
        self, ancestor: Card, level: int, quote: str | None, settings: CompileSettings
    ) -> ContextBlock | None:
        response = ancestor.response or ""

        if quote:
            if settings.use_summarization and ancestor.summary:
                text, content_kind = ancestor.summary, ContentKind.SUMMARY
            elif not settings.use_summarization:
                text, content_kind = response, ContentKind.FULL
            else:
                text, truncated = truncate(response, settings.limits.quote_truncation_chars)
                content_kind = ContentKind.SUMMARY if truncated else ContentKind.FULL
            return self._card_block(ancestor, level, BlockKind.QUOTE, content_kind, text, quote)

        if settings.use_summarization and ancestor.summary:
            return self._card_block(
                ancestor, level, BlockKind.SUMMARY, ContentKind.SUMMARY, ancestor.summary
            )

        if not (ancestor.prompt or response):
            return None
        return self._card_block(ancestor, level, BlockKind.FULL, ContentKind.FULL, response)

    def _transitive_virtual_block(
        self, virtual: Card, level: int, cap: int, use_summarization: bool
    ) -> ContextBlock | None:
        response = virtual.response or ""
        if not use_summarization:
            text, content_kind = response, ContentKind.FULL
        elif virtual.summary:
            text, content_kind = virtual.summary, ContentKind.SUMMARY
        else:
            text, truncated = truncate(response, cap)
            content_kind = ContentKind.SUMMARY if truncated else ContentKind.FULL

        if not (virtual.prompt or text):
            return None
        return ContextBlock(
            level=level,
            kind=BlockKind.VIRTUAL,
            content_kind=content_kind,
            source_id=virtual.id,
            card_kind=virtual.kind,
            prompt=virtual.prompt,
            text=text,
        )

    def _visible_virtual_ids(
        self,
        ids: list[str],
        lineage: set[str],
        exclusions: ExclusionSet,
        surfaced: set[str],
        top_k: int,
    ) -> list[str]:
        # Excluded and already surfaced IDs do not count towards top_k
        candidates = [
            virtual_id
            for virtual_id in ids
            if not exclusions.excludes_card(virtual_id) and virtual_id not in surfaced
        ]
        visible = self.virtual_filter.filter_ids(candidates, lineage, top_k)
        surfaced.update(visible)
        return visible

    @staticmethod
    def _card_block(
        card: Card,
        level: int,
        kind: BlockKind,
        content_kind: ContentKind,
        text: str,
        quote: str | None = None,
    ) -> ContextBlock:
        return ContextBlock(
            level=level,
            kind=kind,
            content_kind=content_kind,
            origin=BlockOrigin.CARD,
            source_id=card.id,
            card_kind=card.kind,
            prompt=card.prompt,
            text=text,
            quote_text=quote,
        )


def render_context(blocks: list[ContextBlock]) -> str:
    """
    Flatten blocks into the context string sent with a generation request.

    Each block gets a deterministic header naming its source type, level and
    kind. Display-only fields (content kind, similarity score) are left out.

    Args:
        blocks: Compiled blocks

    Returns:
        Context string (empty when there are no blocks)
    """
    return "\n\n".join(_render_block(block) for block in blocks)


def _render_block(block: ContextBlock) -> str:
    is_note = block.card_kind is not None and block.card_kind.value == "note"

    if block.origin == BlockOrigin.ATTACHMENT:
        label = "ATTACHMENT"
    elif block.kind == BlockKind.VIRTUAL:
        label = "SEMANTIC SEARCH" if block.level < 0 else "VIRTUAL ANCESTOR"
    elif block.level == 0:
        label = "PARENT NOTE" if is_note else "PARENT CARD"
    else:
        label = "ANCESTOR NOTE" if is_note else "ANCESTOR CARD"

    lines = [f"=== {label} | level {block.level} | {block.kind.value} ==="]

    if block.origin == BlockOrigin.ATTACHMENT:
        lines.append(f"Document: {block.prompt}")
        lines.append(f"Content: {block.text}")
        return "\n".join(lines)

    if block.prompt:
        lines.append(f"{'Note title' if is_note else 'Question'}: {block.prompt}")

    if block.quote_text is not None:
        lines.append(f'Quote: "{block.quote_text}"')
        if block.text:
            lines.append(f"Context: {block.text}")
    elif block.text:
        if block.kind == BlockKind.SUMMARY:
            lines.append(f"Summary: {block.text}")
        else:
            lines.append(f"{'Note content' if is_note else 'Answer'}: {block.text}")

    return "\n".join(lines)
