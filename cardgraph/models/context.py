"""
Context assembly models.

ContextBlocks are ephemeral: they are rebuilt on every compile call and
never persisted.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from cardgraph.models.card import CardKind


class BlockKind(str, Enum):
    """How a block's content was selected."""

    FULL = "full"
    QUOTE = "quote"
    SUMMARY = "summary"
    VIRTUAL = "virtual"


class ContentKind(str, Enum):
    """What the surfaced text actually is (display semantics only)."""

    FULL = "full"
    SUMMARY = "summary"


class BlockOrigin(str, Enum):
    """What produced a block."""

    CARD = "card"
    ATTACHMENT = "attachment"


class ContextBlock(BaseModel):
    """One unit of assembled context."""

    model_config = ConfigDict(frozen=True)

    level: int = Field(..., description="0 = direct parent, 1+ = deeper, -1 = direct search hit")
    kind: BlockKind
    content_kind: ContentKind
    origin: BlockOrigin = BlockOrigin.CARD
    source_id: str = Field(..., description="Card ID, or attachment ID for attachment blocks")
    owner_id: str | None = Field(default=None, description="Owning card of an attachment block")
    card_kind: CardKind | None = Field(default=None, description="Type of the source card")
    prompt: str = Field(default="", description="Source card prompt or attachment label")
    text: str = Field(default="", description="Surfaced body text")
    quote_text: str | None = Field(default=None, description="Pinned quote, verbatim")
    score: float | None = Field(default=None, description="Similarity score (display only)")


class ExclusionSet(BaseModel):
    """Ancestor and attachment IDs a card's owner has switched off."""

    model_config = ConfigDict(frozen=True)

    ancestor_ids: frozenset[str] = Field(default_factory=frozenset)
    attachment_ids: frozenset[str] = Field(default_factory=frozenset)

    def excludes_card(self, card_id: str) -> bool:
        return card_id in self.ancestor_ids

    def excludes_attachment(self, attachment_id: str) -> bool:
        return attachment_id in self.attachment_ids


class ContextLimits(BaseModel):
    """
    Character caps applied while compiling.

    The 500/300 split between virtual ancestors of direct parents and of
    deeper ancestors is observed behavior, kept configurable.
    """

    quote_truncation_chars: int = Field(default=500, ge=1)
    virtual_parent_truncation_chars: int = Field(default=500, ge=1)
    virtual_ancestor_truncation_chars: int = Field(default=300, ge=1)
    attachment_snippet_chars: int = Field(default=1200, ge=1)
    max_attachments_per_card: int = Field(default=10, ge=0)
    virtual_top_k: int = Field(default=5, ge=0)


class CompileSettings(BaseModel):
    """Explicit inputs to a compile call besides the graph snapshot."""

    use_summarization: bool = False
    exclusions: ExclusionSet | None = Field(
        default=None,
        description="Override for the card's own exclusion registry entry",
    )
    limits: ContextLimits = Field(default_factory=ContextLimits)


class SearchCandidate(BaseModel):
    """Ranked semantic-search hit."""

    card_id: str
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    preview: str = ""
