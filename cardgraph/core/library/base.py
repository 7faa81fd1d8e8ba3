"""Base interface for the authoritative document surrogate store."""

from abc import ABC, abstractmethod

from cardgraph.models.attachment import LibraryDocument


class DocumentLibrary(ABC):
    """
    Lookup of analyzed documents by content-addressed ID.

    Upload, storage and analysis of documents happen elsewhere; the engine
    only reads the surrogate fields.
    """

    @abstractmethod
    def get_document(self, doc_id: str) -> LibraryDocument | None:
        """
        Retrieve a document record.

        Args:
            doc_id: Document identifier

        Returns:
            LibraryDocument or None if the library has no record
        """
        pass
