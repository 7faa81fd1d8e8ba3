"""
Card model and parent-link resolution types.

A card is a node of the canvas graph: either an answerable question whose
response is generated from its context, or a free-form note.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from cardgraph.models.attachment import Attachment


class CardKind(str, Enum):
    """Types of cards on the canvas."""

    ANSWERABLE = "answerable"
    NOTE = "note"


class Card(BaseModel):
    """
    A node of the card graph.

    Parent references come from one of three mechanisms, resolved by
    priority: explicit ordered `parent_ids`, incoming edges, then the
    legacy single `parent_id`.

    Fields written by external async services (summary, legacy attachment
    surrogate maps, virtual ancestors) are only read by the engine. The
    engine itself writes `is_stale`, `is_quote_invalidated` and, at
    generation commit, `last_context_fingerprint`.
    """

    # Core identity
    id: str = Field(..., description="Unique card ID")
    kind: CardKind = Field(default=CardKind.ANSWERABLE, description="Card type")
    prompt: str = Field(default="", description="Question text or note title")
    response: str | None = Field(default=None, description="Generated answer or note body")
    summary: str | None = Field(default=None, description="Condensed response for descendants")

    # Quote linkage
    quote: str | None = Field(default=None, description="Quoted fragment of an ancestor")
    quote_source_id: str | None = Field(default=None, description="ID of the quoted card")

    # Parent references
    parent_ids: list[str] = Field(default_factory=list, description="Explicit ordered parents")
    parent_id: str | None = Field(default=None, description="Legacy single parent")

    # Attachments
    attachments: list[Attachment] = Field(default_factory=list, description="Attached documents")
    attachment_summaries: dict[str, str] = Field(
        default_factory=dict, description="Legacy cached summaries keyed by attachment ID"
    )
    attachment_excerpts: dict[str, str] = Field(
        default_factory=dict, description="Legacy cached excerpts keyed by attachment ID"
    )
    attachment_image_descriptions: dict[str, str] = Field(
        default_factory=dict,
        description="Legacy cached image descriptions keyed by attachment ID",
    )

    # Exclusion registry
    excluded_ancestor_ids: list[str] = Field(
        default_factory=list, description="Ancestor/virtual IDs removed from context"
    )
    excluded_attachment_ids: list[str] = Field(
        default_factory=list, description="Attachment IDs removed from context"
    )

    # Semantic search
    virtual_ancestor_ids: list[str] = Field(
        default_factory=list, description="Filtered semantic-search hits"
    )
    virtual_ancestor_scores: dict[str, float] = Field(
        default_factory=dict, description="Similarity score per virtual ancestor"
    )

    # Staleness
    is_stale: bool = Field(default=False, description="Response no longer matches context")
    is_quote_invalidated: bool = Field(
        default=False, description="Quoted text no longer present in its source"
    )
    last_context_fingerprint: str | None = Field(
        default=None, description="Context fingerprint saved at last generation"
    )

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.now, description="Last update timestamp")

    @property
    def has_response(self) -> bool:
        """True if the card carries a non-empty response."""
        return bool(self.response)

    @property
    def is_note(self) -> bool:
        return self.kind == CardKind.NOTE

    def touch(self) -> None:
        """Bump the update timestamp."""
        self.updated_at = datetime.now()


class ExplicitParents(BaseModel):
    """Parents taken from the card's ordered parent list."""

    source: Literal["explicit"] = "explicit"
    ids: list[str]


class EdgeParents(BaseModel):
    """Parents taken from incoming edges, in edge discovery order."""

    source: Literal["edges"] = "edges"
    ids: list[str]


class LegacyParent(BaseModel):
    """Parent taken from the legacy single parent field."""

    source: Literal["legacy"] = "legacy"
    ids: list[str]


class NoParents(BaseModel):
    """Root card."""

    source: Literal["none"] = "none"
    ids: list[str] = Field(default_factory=list)


ParentLink = Annotated[
    ExplicitParents | EdgeParents | LegacyParent | NoParents,
    Field(discriminator="source"),
]
