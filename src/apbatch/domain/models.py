"""Domain models for batch analysis runs."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from apbatch.domain.analysis import AnalysisType
from apbatch.domain.config_tree import freeze
from apbatch.domain.options import OptionValue


@dataclass(frozen=True)
class AnalysisRequest:
    """Declarative description of one batch submitted by the operator."""

    analysis_type: AnalysisType
    label: str
    config_template_id: str
    input_files: Tuple[Path, ...]
    output_root: Path
    options: Mapping[str, OptionValue] = field(default_factory=dict)
    config_overrides: Optional[Mapping[str, Any]] = None

    def __post_init__(self):
        if not self.label or not self.label.strip():
            raise ValueError("Label must not be empty")
        if not self.config_template_id:
            raise ValueError("Config template id must not be empty")
        if not isinstance(self.analysis_type, AnalysisType):
            object.__setattr__(self, "analysis_type", AnalysisType.parse(str(self.analysis_type)))
        object.__setattr__(self, "input_files", tuple(Path(p) for p in self.input_files))
        object.__setattr__(self, "output_root", Path(self.output_root))
        wrapped = {name: OptionValue.of(value) for name, value in dict(self.options).items()}
        object.__setattr__(self, "options", MappingProxyType(wrapped))
        if self.config_overrides is not None:
            object.__setattr__(self, "config_overrides", freeze(self.config_overrides))


@dataclass(frozen=True)
class Job:
    """One invocation of the analysis tool against one input file."""

    id: int
    analysis_type: AnalysisType
    label: str
    input_file: Path
    resolved_config_path: Path
    output_directory: Path
    flags: Tuple[str, ...] = ()

    def arguments(self) -> List[str]:
        """Arguments passed to the executable, verb first."""
        return [
            self.analysis_type.value,
            str(self.input_file),
            str(self.resolved_config_path),
            str(self.output_directory),
            *self.flags,
        ]


class JobOutcome(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SIGNALLED = "signalled"


@dataclass(frozen=True)
class JobResult:
    """Terminal result of a single job."""

    outcome: JobOutcome
    exit_code: Optional[int] = None
    signal: Optional[int] = None
    output_tail: Tuple[str, ...] = ()
    duration_seconds: float = 0.0

    @classmethod
    def success(cls, output_tail=(), duration_seconds: float = 0.0) -> "JobResult":
        return cls(JobOutcome.SUCCESS, exit_code=0, output_tail=tuple(output_tail),
                   duration_seconds=duration_seconds)

    @classmethod
    def failure(cls, exit_code: int, output_tail=(), duration_seconds: float = 0.0) -> "JobResult":
        return cls(JobOutcome.FAILURE, exit_code=exit_code, output_tail=tuple(output_tail),
                   duration_seconds=duration_seconds)

    @classmethod
    def signalled(cls, signal: int, output_tail=(), duration_seconds: float = 0.0) -> "JobResult":
        return cls(JobOutcome.SIGNALLED, signal=signal, output_tail=tuple(output_tail),
                   duration_seconds=duration_seconds)

    @property
    def ok(self) -> bool:
        return self.outcome is JobOutcome.SUCCESS

    def describe(self) -> str:
        """Short human readable reason for a non-successful result."""
        if self.outcome is JobOutcome.FAILURE:
            return f"exited with code {self.exit_code}"
        if self.outcome is JobOutcome.SIGNALLED:
            return f"terminated by signal {self.signal}"
        return "completed"


class BatchState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (BatchState.CANCELLED, BatchState.COMPLETED, BatchState.FAILED)


@dataclass
class BatchRun:
    """Planned jobs plus the mutable run state owned by the controller."""

    jobs: Tuple[Job, ...]
    state: BatchState = BatchState.IDLE
    completed_count: int = 0
    active_job_id: Optional[int] = None
    error: Optional[Exception] = None
    results: Dict[int, JobResult] = field(default_factory=dict)

    @property
    def total_jobs(self) -> int:
        return len(self.jobs)

    @property
    def progress(self) -> float:
        """Completion percentage at full precision."""
        if not self.jobs:
            return 0.0
        return self.completed_count * 100 / self.total_jobs


@dataclass(frozen=True)
class Plan:
    """Result of planning a request."""

    jobs: Tuple[Job, ...]
    batch_timestamp: int
    config_path: Path
    batch_directory: Path
