"""In-memory document library."""

from cardgraph.core.library.base import DocumentLibrary
from cardgraph.models.attachment import LibraryDocument
from cardgraph.utils.exceptions import NotFoundError


class InMemoryDocumentLibrary(DocumentLibrary):
    """Dict-backed document library."""

    def __init__(self, documents: list[LibraryDocument] | None = None):
        self._documents: dict[str, LibraryDocument] = {}
        for document in documents or []:
            self.upsert_document(document)

    def get_document(self, doc_id: str) -> LibraryDocument | None:
        return self._documents.get(doc_id)

    def upsert_document(self, document: LibraryDocument) -> LibraryDocument:
        """Insert or replace a document record."""
        self._documents[document.doc_id] = document
        return document

    def remove_document(self, doc_id: str) -> None:
        """
        Remove a document record.

        Raises:
            NotFoundError: If the library has no such record
        """
        if doc_id not in self._documents:
            raise NotFoundError(f"Document not found: {doc_id}", {"doc_id": doc_id})
        del self._documents[doc_id]

    def list_documents(self) -> list[LibraryDocument]:
        return list(self._documents.values())
