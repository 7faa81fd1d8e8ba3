"""
ID generation utilities for CardGraph.

Provides consistent ID generation for graph entities:
- Cards: card_xxx
- Edges: edge_<source>_<target>
"""

from uuid import uuid4


def generate_card_id() -> str:
    """
    Generate unique Card ID.

    Returns:
        ID in format "card_xxx" where xxx is 12 hex characters
    """
    return f"card_{uuid4().hex[:12]}"


def generate_edge_id(source_id: str, target_id: str) -> str:
    """
    Generate Edge ID from its endpoints.

    At most one edge exists per (source, target) pair, so the ID is
    derived rather than random.

    Args:
        source_id: Parent card ID
        target_id: Child card ID

    Returns:
        ID in format "edge_<source>_<target>"
    """
    return f"edge_{source_id}_{target_id}"

