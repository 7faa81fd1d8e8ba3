"""Canvas snapshot model: the serializable state of a whole card graph."""

from pydantic import BaseModel, Field

from cardgraph.models.attachment import LibraryDocument
from cardgraph.models.card import Card
from cardgraph.models.edge import Edge


class CanvasSnapshot(BaseModel):
    """Cards, edges and library documents of one canvas."""

    cards: list[Card] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    documents: list[LibraryDocument] = Field(default_factory=list)
