"""Domain exceptions for the batch analysis engine."""

from pathlib import Path
from typing import Optional, Sequence


class DomainException(Exception):
    """Base exception for all domain errors."""
    pass


class ConfigurationError(DomainException):
    """Raised when application settings are invalid."""
    pass


class PlanningError(DomainException):
    """Raised when a batch cannot be planned. The batch never starts."""
    pass


class EmptyBatchError(PlanningError):
    """Raised when a request has no input files."""
    pass


class TemplateNotFoundError(PlanningError):
    """Raised when a config template id is unknown to the template store."""

    def __init__(self, template_id: str, search_path: Optional[Path] = None):
        self.template_id = template_id
        self.search_path = search_path
        where = f" in {search_path}" if search_path else ""
        super().__init__(f"Config template not found: {template_id}{where}")


class SerializationError(PlanningError):
    """Raised when a resolved config cannot be written in the template format."""
    pass


class StorageWriteError(PlanningError):
    """Raised when a config file or output directory cannot be written."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)


class ConfigKeyMismatchError(PlanningError):
    """Raised by a strict merge when an override key does not exist in the base."""

    def __init__(self, key_path: Sequence[str]):
        self.key_path = tuple(key_path)
        super().__init__(f"Override key not present in template: {'.'.join(self.key_path)}")


class LaunchError(DomainException):
    """Raised when the analysis executable cannot be started."""

    def __init__(self, job_id: int, command: Sequence[str], cause: OSError):
        self.job_id = job_id
        self.command = list(command)
        self.cause = cause
        super().__init__(f"Job {job_id}: failed to launch {self.command[0]!r}: {cause}")


class ExecutionFailure(DomainException):
    """A job ran but exited unsuccessfully (non-zero exit or signal)."""

    def __init__(self, job_id: int, reason: str, output_tail: Sequence[str] = ()):
        self.job_id = job_id
        self.reason = reason
        self.output_tail = list(output_tail)
        super().__init__(f"Job {job_id}: {reason}")


class BatchStateError(DomainException):
    """Raised when a control call is not valid in the current batch state."""
    pass
