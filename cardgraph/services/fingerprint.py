"""
Context Fingerprinter - comparable hash of a card's primary context inputs.

The hash is taken over the compiled blocks (the content generation would
actually receive) plus the card's own linkage fields, never over the
rendered string: headers, similarity scores and content kinds are display
concerns and must not make a card stale.

Text is normalized (trim + lowercase) first, so whitespace or case-only
edits upstream do not invalidate anything.
"""

import json
from typing import Any

from cardgraph.core.graph_store.base import CardGraphStore
from cardgraph.models.context import CompileSettings, ContextBlock
from cardgraph.services.context_compiler import ContextCompiler
from cardgraph.services.exclusion_registry import ExclusionRegistry
from cardgraph.utils.text import normalize_for_hash, sha256_digest


class ContextFingerprinter:
    """Computes context fingerprints on demand (no memoization)."""

    def __init__(self, store: CardGraphStore, compiler: ContextCompiler):
        """
        Initialize fingerprinter.

        Args:
            store: Card query surface
            compiler: Compiler producing the blocks being hashed
        """
        self.store = store
        self.compiler = compiler

    def fingerprint(self, card_id: str, settings: CompileSettings | None = None) -> str | None:
        """
        Fingerprint a card's current context.

        Args:
            card_id: Card identifier
            settings: Same settings generation would compile with

        Returns:
            "sha256:<hex>" or None for unknown cards
        """
        card = self.store.get_card(card_id)
        if card is None:
            return None

        settings = settings or CompileSettings()
        exclusions = settings.exclusions or ExclusionRegistry.exclusions_of(card)
        blocks = self.compiler.compile(card_id, settings)

        payload: dict[str, Any] = {
            "prompt": normalize_for_hash(card.prompt),
            "quote": normalize_for_hash(card.quote),
            "quote_source_id": card.quote_source_id,
            "excluded_ancestor_ids": sorted(exclusions.ancestor_ids),
            "excluded_attachment_ids": sorted(exclusions.attachment_ids),
            "attachment_ids": [attachment.attachment_id for attachment in card.attachments],
            "virtual_ancestor_ids": list(card.virtual_ancestor_ids),
            "blocks": [_block_payload(block) for block in blocks],
        }
        return sha256_digest(json.dumps(payload, sort_keys=True, ensure_ascii=False))


def _block_payload(block: ContextBlock) -> dict[str, Any]:
    # content_kind and score are display-only
    return {
        "level": block.level,
        "kind": block.kind.value,
        "origin": block.origin.value,
        "source_id": block.source_id,
        "owner_id": block.owner_id,
        "card_kind": block.card_kind.value if block.card_kind else None,
        "prompt": normalize_for_hash(block.prompt),
        "text": normalize_for_hash(block.text),
        "quote_text": normalize_for_hash(block.quote_text),
    }
