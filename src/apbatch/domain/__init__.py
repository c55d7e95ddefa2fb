"""Domain layer package."""

from apbatch.domain.analysis import (
    AnalysisType,
    AnalysisOption,
    AlignToMinute,
    MixDownToMono,
    LogLevel,
)
from apbatch.domain.models import (
    AnalysisRequest,
    Job,
    JobOutcome,
    JobResult,
    BatchState,
    BatchRun,
    Plan,
)
from apbatch.domain.options import OptionKind, OptionValue, OptionEncoder, encode_options
from apbatch.domain.config_tree import ConfigMerger, merge
from apbatch.domain.events import (
    ProgressEvent,
    JobStarted,
    JobCompleted,
    JobFailed,
    BatchCompleted,
    BatchCancelled,
)
from apbatch.domain.exceptions import (
    DomainException,
    ConfigurationError,
    PlanningError,
    EmptyBatchError,
    TemplateNotFoundError,
    SerializationError,
    StorageWriteError,
    ConfigKeyMismatchError,
    LaunchError,
    ExecutionFailure,
    BatchStateError,
)
from apbatch.domain.protocols import ITemplateStore, IMaterializer, IJobRunner, IMetricsCollector

__all__ = [
    # Vocabulary
    "AnalysisType",
    "AnalysisOption",
    "AlignToMinute",
    "MixDownToMono",
    "LogLevel",
    # Models
    "AnalysisRequest",
    "Job",
    "JobOutcome",
    "JobResult",
    "BatchState",
    "BatchRun",
    "Plan",
    "OptionKind",
    "OptionValue",
    "OptionEncoder",
    "encode_options",
    "ConfigMerger",
    "merge",
    # Events
    "ProgressEvent",
    "JobStarted",
    "JobCompleted",
    "JobFailed",
    "BatchCompleted",
    "BatchCancelled",
    # Exceptions
    "DomainException",
    "ConfigurationError",
    "PlanningError",
    "EmptyBatchError",
    "TemplateNotFoundError",
    "SerializationError",
    "StorageWriteError",
    "ConfigKeyMismatchError",
    "LaunchError",
    "ExecutionFailure",
    "BatchStateError",
    # Protocols
    "ITemplateStore",
    "IMaterializer",
    "IJobRunner",
    "IMetricsCollector",
]
