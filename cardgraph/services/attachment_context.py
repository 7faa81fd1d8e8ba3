"""
Attachment Context Layer - text surrogates of attached documents.

Ownership rule: only the card a document is attached to sees its fullest
surrogate. Descendants inherit a condensed surrogate (summary, else
excerpt), clamped, so context does not grow with every generation.

Image documents only ever surface a caption-style description; recognized
text from the image is never propagated.
"""

from cardgraph.core.library.base import DocumentLibrary
from cardgraph.models.attachment import Attachment, AttachmentKind
from cardgraph.models.card import Card
from cardgraph.models.context import (
    BlockKind,
    BlockOrigin,
    ContentKind,
    ContextBlock,
    ContextLimits,
    ExclusionSet,
)
from cardgraph.utils.text import clamp, normalize_image_description

IMAGE_PLACEHOLDER = "(no image description available)"
SUMMARY_PLACEHOLDER = "(no saved summary or excerpt; open the preview in the source card)"
FULL_TEXT_PLACEHOLDER = "(document text is not available yet)"


class AttachmentContextLayer:
    """Builds attachment blocks for one owning card at a time."""

    def __init__(self, library: DocumentLibrary | None = None):
        """
        Initialize layer.

        Args:
            library: Authoritative surrogate store; legacy per-card copies
                are used when it is missing or has no record
        """
        self.library = library

    def resolve_surrogate(
        self,
        owner: Card,
        attachment: Attachment,
        prefer_summary: bool,
        limits: ContextLimits | None = None,
    ) -> tuple[str, ContentKind]:
        """
        Pick the text that stands in for an attached document.

        Args:
            owner: Card whose attachment list holds the document
            attachment: Attachment reference
            prefer_summary: True for documents inherited from an ancestor
            limits: Character caps

        Returns:
            (text, content kind); text is a placeholder when nothing is stored
        """
        limits = limits or ContextLimits()
        attachment_id = attachment.attachment_id
        document = self.library.get_document(attachment_id) if self.library else None

        summary = _first_filled(
            document.summary if document else None,
            owner.attachment_summaries.get(attachment_id),
        )
        excerpt = _first_filled(
            document.excerpt if document else None,
            owner.attachment_excerpts.get(attachment_id),
        )
        image_description = _first_filled(
            document.image_description if document else None,
            owner.attachment_image_descriptions.get(attachment_id),
        )
        kind = document.kind if document else attachment.kind

        if kind == AttachmentKind.IMAGE:
            description = normalize_image_description(image_description)
            if prefer_summary:
                description = clamp(description, limits.attachment_snippet_chars)
            content_kind = ContentKind.SUMMARY if prefer_summary else ContentKind.FULL
            return description or IMAGE_PLACEHOLDER, content_kind

        if prefer_summary:
            chosen = clamp(summary or excerpt, limits.attachment_snippet_chars)
            return chosen or SUMMARY_PLACEHOLDER, ContentKind.SUMMARY

        full_text = _first_filled(document.full_text if document else None)
        chosen = full_text or excerpt or summary
        return chosen or FULL_TEXT_PLACEHOLDER, ContentKind.FULL

    def attachment_blocks(
        self,
        owner: Card,
        level: int,
        prefer_summary: bool,
        exclusions: ExclusionSet | None = None,
        seen: set[str] | None = None,
        limits: ContextLimits | None = None,
    ) -> list[ContextBlock]:
        """
        Blocks for every visible attachment of an owning card.

        Args:
            owner: Card whose attachments are surfaced
            level: Block level (the owner's level in the assembly)
            prefer_summary: False for the target card's own attachments
            exclusions: Exclusion set of the target card
            seen: Attachment IDs already surfaced in this assembly; updated
                in place so the nearest owner wins
            limits: Character caps and per-owner attachment limit

        Returns:
            Attachment blocks in the owner's attachment order
        """
        limits = limits or ContextLimits()
        exclusions = exclusions or ExclusionSet()
        seen = seen if seen is not None else set()

        blocks = []
        for attachment in owner.attachments:
            if len(blocks) >= limits.max_attachments_per_card:
                break
            attachment_id = attachment.attachment_id
            if exclusions.excludes_attachment(attachment_id) or attachment_id in seen:
                continue
            seen.add(attachment_id)

            text, content_kind = self.resolve_surrogate(owner, attachment, prefer_summary, limits)
            blocks.append(
                ContextBlock(
                    level=level,
                    kind=BlockKind.SUMMARY if prefer_summary else BlockKind.FULL,
                    content_kind=content_kind,
                    origin=BlockOrigin.ATTACHMENT,
                    source_id=attachment_id,
                    owner_id=owner.id,
                    card_kind=owner.kind,
                    prompt=attachment.label,
                    text=text,
                )
            )

        return blocks


def _first_filled(*values: str | None) -> str:
    for value in values:
        if value and value.strip():
            return value.strip()
    return ""
