"""Outcome of one refresh cycle."""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class RefreshReport:
    """Per-bucket results of an Updater run."""

    started_at: float
    finished_at: float = 0.0
    successful: List[str] = field(default_factory=list)
    empty: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    total_records: int = 0

    @property
    def duration(self) -> float:
        return max(0.0, self.finished_at - self.started_at)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return (
            f"{len(self.successful)} successful, {len(self.empty)} empty, "
            f"{len(self.failed)} failed, {self.total_records} records "
            f"in {self.duration:.1f}s"
        )
