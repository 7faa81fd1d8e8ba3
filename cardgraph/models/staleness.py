"""Result models for staleness handling."""

from pydantic import BaseModel, Field


class StaleReport(BaseModel):
    """Outcome of one mutation handler run."""

    marked_stale: list[str] = Field(default_factory=list, description="Cards newly marked stale")
    cleared: list[str] = Field(default_factory=list, description="Cards whose stale flag cleared")
    quotes_invalidated: list[str] = Field(
        default_factory=list, description="Cards whose quote no longer matches its source"
    )
    quotes_restored: list[str] = Field(
        default_factory=list, description="Cards whose quote matches its source again"
    )

    @property
    def changed(self) -> bool:
        return bool(
            self.marked_stale or self.cleared or self.quotes_invalidated or self.quotes_restored
        )


class RegenerationPlan(BaseModel):
    """
    Stale cards grouped into levels.

    Every card appears after all of its stale ancestors; cards within a level
    are independent of each other.
    """

    levels: list[list[str]] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(len(level) for level in self.levels)
