"""
Attachment models.

An Attachment is a reference from a card to a content-addressed document.
The same document may be attached to several cards; the card whose list
contains the reference is its owner.
"""

from enum import Enum

from pydantic import BaseModel, Field


class AttachmentKind(str, Enum):
    """Kinds of attached documents."""

    TEXT = "text"
    IMAGE = "image"


class Attachment(BaseModel):
    """Reference from a card to a library document."""

    attachment_id: str = Field(..., description="Content-addressed document ID")
    kind: AttachmentKind = Field(default=AttachmentKind.TEXT, description="Document kind")
    name: str | None = Field(default=None, description="Original file name")
    version: str | None = Field(
        default=None,
        description="Content hash or update timestamp, used for cache-busting only",
    )

    @property
    def label(self) -> str:
        """Display label: file name when known, otherwise the document ID."""
        if self.name and self.name.strip():
            return self.name.strip()
        return self.attachment_id


class LibraryDocument(BaseModel):
    """
    Authoritative surrogate record for a document.

    Written by the external analysis services (excerpting, summarization,
    image captioning); the engine only reads it.
    """

    doc_id: str = Field(..., description="Content-addressed document ID")
    kind: AttachmentKind = Field(default=AttachmentKind.TEXT, description="Document kind")
    full_text: str = Field(default="", description="Extracted full text (text documents)")
    excerpt: str = Field(default="", description="Leading excerpt of the document")
    summary: str = Field(default="", description="Condensed summary of the document")
    image_description: str = Field(default="", description="Caption-style description (images)")
    version: str | None = Field(default=None, description="Cache-busting version marker")
