"""Utility modules for CardGraph."""

from cardgraph.utils.exceptions import (
    CardGraphError,
    ConfigurationError,
    GraphStoreError,
    NotFoundError,
    SearchError,
    ValidationError,
)
from cardgraph.utils.id_generator import generate_card_id, generate_edge_id
from cardgraph.utils.logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # ID Generators
    "generate_card_id",
    "generate_edge_id",
    # Exceptions
    "CardGraphError",
    "GraphStoreError",
    "NotFoundError",
    "ValidationError",
    "ConfigurationError",
    "SearchError",
]
