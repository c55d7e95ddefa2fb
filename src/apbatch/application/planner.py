"""Turns an analysis request into an ordered list of jobs."""

import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

from apbatch.domain.exceptions import EmptyBatchError, StorageWriteError
from apbatch.domain.models import AnalysisRequest, Job, Plan
from apbatch.domain.options import OptionEncoder
from apbatch.domain.protocols import IMaterializer
from apbatch.shared.logging import get_logger

logger = get_logger(__name__)


def unix_millis() -> int:
    return int(time.time() * 1000)


def batch_directory(output_root: Path, label: str, batch_timestamp: int) -> Path:
    """``{output_root}/{label}({timestamp})``"""
    return Path(output_root) / f"{label}({batch_timestamp})"


def job_output_directory(batch_dir: Path, input_file: Path) -> Path:
    """``{batch_dir}/{basename without extension}``"""
    return batch_dir / Path(input_file).stem


class BatchPlanner:
    """
    Plans a batch: one shared resolved config, one output directory and one
    Job per input file, in request order.

    Planning either completes or leaves nothing behind. If writing fails
    part way, the materialized config and any directories created here are
    removed before the error propagates.
    """

    def __init__(
        self,
        materializer: IMaterializer,
        encoder: Optional[OptionEncoder] = None,
        clock: Callable[[], int] = unix_millis
    ):
        """
        Initialize planner.

        Args:
            materializer: Resolves and writes the config template
            encoder: Option encoder for the flag list
            clock: Returns the batch timestamp in unix milliseconds
        """
        self._materializer = materializer
        self._encoder = encoder or OptionEncoder()
        self._clock = clock
        self._logger = get_logger(__name__)

    def plan(self, request: AnalysisRequest) -> Plan:
        """
        Plan a request.

        Args:
            request: The submitted analysis request

        Returns:
            Plan with jobs numbered from 0

        Raises:
            EmptyBatchError: If the request has no input files
            PlanningError: Template, serialization or storage failures
        """
        if not request.input_files:
            raise EmptyBatchError(f"Batch '{request.label}' has no input files")

        batch_timestamp = self._clock()
        flags = tuple(self._encoder.encode(request.options))
        batch_dir = batch_directory(request.output_root, request.label, batch_timestamp)
        output_dirs = [job_output_directory(batch_dir, f) for f in request.input_files]
        self._warn_on_shared_outputs(request.input_files, output_dirs)

        self._logger.info(
            f"Planning '{request.label}': {len(request.input_files)} file(s), "
            f"template={request.config_template_id}, timestamp={batch_timestamp}"
        )

        config_path = self._materializer.materialize_template(
            request.config_template_id,
            request.config_overrides,
            batch_timestamp
        )

        created: List[Path] = []
        try:
            for output_dir in output_dirs:
                self._make_directory(output_dir, created)
        except OSError as e:
            self._rollback(config_path, created)
            raise StorageWriteError(
                f"Failed to create output directory under {batch_dir}: {e}",
                path=Path(e.filename) if e.filename else batch_dir
            ) from e

        jobs = tuple(
            Job(
                id=index,
                analysis_type=request.analysis_type,
                label=request.label,
                input_file=input_file,
                resolved_config_path=config_path,
                output_directory=output_dir,
                flags=flags,
            )
            for index, (input_file, output_dir) in enumerate(zip(request.input_files, output_dirs))
        )

        self._logger.info(f"Planned {len(jobs)} job(s) into {batch_dir}")
        return Plan(
            jobs=jobs,
            batch_timestamp=batch_timestamp,
            config_path=config_path,
            batch_directory=batch_dir
        )

    @staticmethod
    def _make_directory(path: Path, created: List[Path]) -> None:
        # Record only the directories this call brings into existence
        missing = [p for p in (path, *path.parents) if not p.exists()]
        path.mkdir(parents=True, exist_ok=True)
        created.extend(missing)

    def _rollback(self, config_path: Path, created: List[Path]) -> None:
        self._materializer.cleanup(config_path)
        for directory in sorted(set(created), key=lambda p: len(p.parts), reverse=True):
            try:
                directory.rmdir()
            except OSError as e:
                self._logger.warning(f"Could not remove {directory} during rollback: {e}")

    def _warn_on_shared_outputs(self, input_files, output_dirs) -> None:
        seen: Dict[Path, Path] = {}
        for input_file, output_dir in zip(input_files, output_dirs):
            if output_dir in seen:
                self._logger.warning(
                    f"{input_file} and {seen[output_dir]} share output directory {output_dir}"
                )
            else:
                seen[output_dir] = input_file
