"""
Data models for CardGraph.

Core models:
- Card, CardKind: Graph nodes (answerable cards and notes)
- ParentLink: Tagged union describing where a card's parents come from
- Edge: Parent → child link
- Attachment, AttachmentKind, LibraryDocument: Attached documents and their surrogates
- ContextBlock, BlockKind, ContentKind, BlockOrigin: Assembled context units
- CompileSettings, ContextLimits, ExclusionSet: Compile inputs
- SearchCandidate: Semantic search hit
- CanvasSnapshot: Serializable canvas state
- StaleReport, RegenerationPlan: Staleness results
"""

from cardgraph.models.attachment import Attachment, AttachmentKind, LibraryDocument
from cardgraph.models.canvas import CanvasSnapshot
from cardgraph.models.card import (
    Card,
    CardKind,
    EdgeParents,
    ExplicitParents,
    LegacyParent,
    NoParents,
    ParentLink,
)
from cardgraph.models.context import (
    BlockKind,
    BlockOrigin,
    CompileSettings,
    ContentKind,
    ContextBlock,
    ContextLimits,
    ExclusionSet,
    SearchCandidate,
)
from cardgraph.models.edge import Edge
from cardgraph.models.staleness import RegenerationPlan, StaleReport

__all__ = [
    # Card models
    "Card",
    "CardKind",
    "ParentLink",
    "ExplicitParents",
    "EdgeParents",
    "LegacyParent",
    "NoParents",
    # Edge
    "Edge",
    # Canvas
    "CanvasSnapshot",
    # Attachments
    "Attachment",
    "AttachmentKind",
    "LibraryDocument",
    # Context
    "ContextBlock",
    "BlockKind",
    "ContentKind",
    "BlockOrigin",
    "CompileSettings",
    "ContextLimits",
    "ExclusionSet",
    "SearchCandidate",
    # Staleness
    "StaleReport",
    "RegenerationPlan",
]
