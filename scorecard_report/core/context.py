"""
Stage Context

An immutable value describing where the run currently is. The pipeline
passes it from stage to stage instead of mutating a shared counter, and uses
it to annotate errors and progress messages.
"""

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class StageContext:
    """Position of the run: stage number, stage name and current dataset."""

    run_id: str
    index: int = 0
    stage: str = "start"
    dataset: Optional[str] = None

    def advance(self, stage: str) -> "StageContext":
        """Context for the next stage; the dataset is reset."""
        return replace(self, index=self.index + 1, stage=stage, dataset=None)

    def for_dataset(self, dataset: Optional[str]) -> "StageContext":
        """Same stage, scoped to one dataset."""
        return replace(self, dataset=dataset)

    @property
    def label(self) -> str:
        if self.dataset:
            return f"{self.index}-{self.stage}[{self.dataset}]"
        return f"{self.index}-{self.stage}"


@dataclass(frozen=True)
class SheetProgress:
    """Progress notification emitted once per completed report sheet."""

    number: int
    sheet: str
    run_id: str

    @property
    def message(self) -> str:
        return f"sheet{self.number}-{self.sheet}"
