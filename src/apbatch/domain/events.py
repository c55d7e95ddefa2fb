"""Progress events emitted by a running batch."""

import math
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProgressEvent:
    """Base class for all progress events."""

    @property
    def is_terminal(self) -> bool:
        """True when no further events follow for the batch."""
        return False


@dataclass(frozen=True)
class JobStarted(ProgressEvent):
    job_id: int
    total_jobs: int


@dataclass(frozen=True)
class JobCompleted(ProgressEvent):
    job_id: int
    completed_count: int
    total_jobs: int
    progress: float

    @property
    def percent(self) -> int:
        """Progress floored to a whole percentage for display."""
        return math.floor(self.progress)


@dataclass(frozen=True)
class JobFailed(ProgressEvent):
    job_id: int
    error_detail: str
    error: Optional[Exception] = None

    @property
    def is_terminal(self) -> bool:
        return True


@dataclass(frozen=True)
class BatchCompleted(ProgressEvent):
    completed_count: int = 0

    @property
    def is_terminal(self) -> bool:
        return True


@dataclass(frozen=True)
class BatchCancelled(ProgressEvent):
    completed_count: int = 0

    @property
    def is_terminal(self) -> bool:
        return True
