"""
Exception hierarchy for CardGraph.

Context assembly itself never raises on malformed graphs; these errors are
raised by the host-facing layers (stores, facade, configuration) when a
caller asks for something that cannot be done.
"""


class CardGraphError(Exception):
    """
    Base exception for all CardGraph errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize CardGraph error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class GraphStoreError(CardGraphError):
    """
    Graph store operation errors.
    Raised when a card or edge mutation would corrupt the store
    (duplicate ids, self-edges).
    """

    pass


class NotFoundError(CardGraphError):
    """
    Resource not found errors.
    Raised when a mutation targets a card, edge or attachment that doesn't exist.
    """

    pass


class ValidationError(CardGraphError):
    """
    Validation errors.
    Raised when a mutation payload is invalid.
    """

    pass


class ConfigurationError(CardGraphError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass


class SearchError(CardGraphError):
    """
    Semantic search errors.
    Raised by search index implementations; the engine degrades to an
    empty candidate list instead of propagating them.
    """

    pass
