"""Graph edge model."""

from datetime import datetime

from pydantic import BaseModel, Field


class Edge(BaseModel):
    """Parent → child link between two cards."""

    id: str = Field(..., description="Edge ID (edge_<source>_<target>)")
    source: str = Field(..., description="Parent card ID")
    target: str = Field(..., description="Child card ID")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
