"""Protocol definitions for dependency inversion."""

from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from apbatch.domain.models import Job, JobResult

OutputListener = Callable[[int, str], None]


class ITemplateStore(Protocol):
    """Read-only store of named config templates."""

    def get(self, template_id: str) -> Dict[str, Any]:
        """Load a template tree. Raises TemplateNotFoundError if unknown."""
        ...

    def list(self) -> List[str]:
        """List available template ids."""
        ...


class IMaterializer(Protocol):
    """Writes resolved configs to the temporary-file area."""

    def materialize_template(
        self,
        template_id: str,
        overrides: Optional[Mapping[str, Any]],
        batch_timestamp: int
    ) -> Path:
        """Resolve a template and write it once for a batch."""
        ...

    def cleanup(self, path: Path) -> None:
        """Remove a previously materialized file."""
        ...


class IJobRunner(Protocol):
    """Executes a single job as an external process."""

    supports_kill: bool

    def run(self, job: Job, on_output: Optional[OutputListener] = None) -> JobResult:
        """Run the job to completion. Raises LaunchError if it cannot start."""
        ...

    def kill(self) -> bool:
        """Terminate the in-flight process. Returns False if nothing was running."""
        ...


class IMetricsCollector(Protocol):
    """Interface for collecting metrics."""

    def start_timer(self, name: str) -> None:
        ...

    def stop_timer(self, name: str) -> float:
        ...

    def increment_counter(self, name: str, amount: int = 1) -> None:
        ...

    def get_summary(self) -> dict:
        ...

    def format_summary(self) -> List[str]:
        ...
