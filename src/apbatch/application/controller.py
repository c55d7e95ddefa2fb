"""Batch run state machine."""

import threading
from typing import List, Optional, Sequence

from apbatch.domain.events import (
    BatchCancelled,
    BatchCompleted,
    JobCompleted,
    JobFailed,
    JobStarted,
    ProgressEvent,
)
from apbatch.domain.exceptions import BatchStateError, ExecutionFailure, LaunchError
from apbatch.domain.models import BatchRun, BatchState, Job, JobResult
from apbatch.domain.protocols import IJobRunner, IMetricsCollector, OutputListener
from apbatch.application.stream import ProgressStream
from apbatch.shared.logging import get_logger
from apbatch.shared.metrics import MetricsCollector

logger = get_logger(__name__)


class BatchController:
    """
    Drives a JobRunner over planned jobs, one at a time.

    States::

        IDLE -> RUNNING <-> PAUSED
        RUNNING -> COMPLETED | FAILED | CANCELLED
        PAUSED -> CANCELLED

    Pause is honored only at job boundaries; the running job is never
    interrupted by it. Cancel is also honored at the boundary unless
    ``preemptive_cancel`` is set and the runner can kill its process, in
    which case the batch is cancelled at once.

    All state lives behind one condition variable. Events are published only
    from the worker thread, after the lock is released, so they reach
    subscribers in job order and a subscriber may call back into the
    controller.
    """

    def __init__(
        self,
        runner: IJobRunner,
        stream: Optional[ProgressStream] = None,
        metrics: Optional[IMetricsCollector] = None,
        preemptive_cancel: bool = True,
        output_listener: Optional[OutputListener] = None,
        name: str = "batch"
    ):
        self._runner = runner
        self._stream = stream or ProgressStream()
        self._metrics = metrics or MetricsCollector()
        self._preemptive_cancel = preemptive_cancel
        self._output_listener = output_listener
        self._name = name
        self._logger = get_logger(__name__)

        self._cond = threading.Condition()
        self._run = BatchRun(jobs=())
        self._pause_pending = False
        self._cancel_pending = False
        self._finished = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Inspection

    @property
    def stream(self) -> ProgressStream:
        return self._stream

    @property
    def metrics(self) -> IMetricsCollector:
        return self._metrics

    @property
    def state(self) -> BatchState:
        with self._cond:
            return self._run.state

    @property
    def completed_count(self) -> int:
        with self._cond:
            return self._run.completed_count

    @property
    def progress(self) -> float:
        with self._cond:
            return self._run.progress

    @property
    def active_job_id(self) -> Optional[int]:
        with self._cond:
            return self._run.active_job_id

    @property
    def error(self) -> Optional[Exception]:
        with self._cond:
            return self._run.error

    def result_for(self, job_id: int) -> Optional[JobResult]:
        with self._cond:
            return self._run.results.get(job_id)

    def is_paused(self) -> bool:
        """True once the batch has stopped at a job boundary."""
        with self._cond:
            return self._run.state is BatchState.PAUSED

    @property
    def pause_pending(self) -> bool:
        """True while a requested pause waits for the running job to finish."""
        with self._cond:
            return self._run.state is BatchState.RUNNING and self._pause_pending

    # ------------------------------------------------------------------
    # Control

    def start(self, jobs: Sequence[Job], background: bool = True) -> ProgressStream:
        """
        Start executing jobs.

        Args:
            jobs: Planned jobs in execution order
            background: Run on a worker thread; otherwise block until done

        Returns:
            The progress stream of this batch

        Raises:
            BatchStateError: If the controller was already started
        """
        with self._cond:
            if self._run.state is not BatchState.IDLE:
                raise BatchStateError(f"Batch already started (state={self._run.state.value})")
            if not jobs:
                raise BatchStateError("Nothing to run")
            self._run = BatchRun(jobs=tuple(jobs), state=BatchState.RUNNING)

        self._logger.info(f"Starting {self._name}: {len(jobs)} job(s)")
        if background:
            self._thread = threading.Thread(
                target=self._execute,
                name=f"apbatch-{self._name}",
                daemon=True
            )
            self._thread.start()
        else:
            self._execute()
        return self._stream

    def pause(self) -> None:
        """Request a pause at the next job boundary."""
        with self._cond:
            state = self._run.state
            if state is BatchState.PAUSED:
                return
            if state is not BatchState.RUNNING:
                raise BatchStateError(f"Cannot pause a batch in state {state.value}")
            if not self._cancel_pending:
                self._pause_pending = True
        self._logger.info("Pause requested, waiting for the current job to finish")

    def unpause(self) -> None:
        """Resume a paused batch, or withdraw a pause that has not taken effect."""
        with self._cond:
            state = self._run.state
            if state is BatchState.PAUSED:
                self._run.state = BatchState.RUNNING
                self._cond.notify_all()
            elif state is BatchState.RUNNING and self._pause_pending:
                self._pause_pending = False
            else:
                raise BatchStateError(f"Cannot unpause a batch in state {state.value}")
        self._logger.info("Resumed")

    def cancel(self) -> None:
        """
        Cancel the batch.

        Paused batches are cancelled immediately. Running batches are
        cancelled at the next boundary, or immediately if preemptive cancel
        is enabled and the runner can kill the in-flight process.
        """
        kill = False
        with self._cond:
            state = self._run.state
            if state is BatchState.CANCELLED:
                return
            if state is BatchState.PAUSED:
                self._run.state = BatchState.CANCELLED
                self._cond.notify_all()
            elif state is BatchState.RUNNING:
                can_kill = self._preemptive_cancel and getattr(self._runner, "supports_kill", False)
                if can_kill and self._run.active_job_id is not None:
                    self._run.state = BatchState.CANCELLED
                    kill = True
                else:
                    self._cancel_pending = True
                self._pause_pending = False
            else:
                raise BatchStateError(f"Cannot cancel a batch in state {state.value}")

        if kill:
            self._logger.warning("Cancelling: terminating the running job")
            self._runner.kill()
        else:
            self._logger.info("Cancel requested")

    def wait(self, timeout: Optional[float] = None) -> BatchState:
        """
        Block until the batch reaches a terminal state and its final event
        has been published.

        Returns:
            The current state (non-terminal if ``timeout`` expired)
        """
        self._finished.wait(timeout)
        return self.state

    # ------------------------------------------------------------------
    # Worker

    def _execute(self) -> None:
        total = self._run.total_jobs
        index = 0
        try:
            while True:
                with self._cond:
                    while self._run.state is BatchState.PAUSED:
                        self._cond.wait()
                    if self._run.state is BatchState.CANCELLED or self._cancel_pending:
                        self._run.state = BatchState.CANCELLED
                        terminal: ProgressEvent = BatchCancelled(self._run.completed_count)
                        break
                    job = self._run.jobs[index]
                    self._run.active_job_id = job.id

                self._publish(JobStarted(job_id=job.id, total_jobs=total))
                events, terminal = self._run_job(job, index, total)
                for event in events:
                    self._publish(event)
                if terminal is not None:
                    break
                self._enter_pause_if_requested(job)
                index += 1
        except Exception as e:
            self._logger.exception(f"{self._name} aborted: {e}")
            with self._cond:
                job_id = self._run.active_job_id if self._run.active_job_id is not None else index
                self._run.active_job_id = None
                self._run.state = BatchState.FAILED
                self._run.error = e
            terminal = JobFailed(job_id=job_id, error_detail=str(e), error=e)

        self._publish(terminal)
        self._log_summary()
        self._finished.set()

    def _run_job(self, job: Job, index: int, total: int):
        """Run one job and work out the boundary transition.

        Returns:
            (events to publish, terminal event or None)
        """
        result: Optional[JobResult] = None
        launch_error: Optional[LaunchError] = None

        self._metrics.start_timer("job")
        try:
            result = self._runner.run(job, on_output=self._output_listener)
        except LaunchError as e:
            launch_error = e
        finally:
            self._metrics.stop_timer("job")

        events: List[ProgressEvent] = []
        with self._cond:
            run = self._run
            run.active_job_id = None
            if result is not None:
                run.results[job.id] = result

            if launch_error is not None or not result.ok:
                if run.state is BatchState.CANCELLED:
                    # Killed by a preemptive cancel
                    self._logger.info(f"Job {job.id} stopped by cancel")
                    return events, BatchCancelled(run.completed_count)
                error = launch_error or ExecutionFailure(job.id, result.describe(), result.output_tail)
                run.state = BatchState.FAILED
                run.error = error
                self._metrics.increment_counter("jobs_failed")
                return events, JobFailed(job_id=job.id, error_detail=self._detail(error, result), error=error)

            run.completed_count += 1
            self._metrics.increment_counter("jobs_completed")
            events.append(JobCompleted(
                job_id=job.id,
                completed_count=run.completed_count,
                total_jobs=total,
                progress=run.progress
            ))

            terminal: Optional[ProgressEvent] = None
            if run.state is BatchState.CANCELLED:
                # Preemptive cancel arrived after the process had already exited
                terminal = BatchCancelled(run.completed_count)
            elif index == total - 1:
                run.state = BatchState.COMPLETED
                terminal = BatchCompleted(run.completed_count)
            elif self._cancel_pending:
                run.state = BatchState.CANCELLED
                terminal = BatchCancelled(run.completed_count)
            self._cond.notify_all()
        return events, terminal

    def _enter_pause_if_requested(self, job: Job) -> None:
        # After the boundary events are out, so PAUSED always follows JobCompleted
        with self._cond:
            if self._run.state is BatchState.RUNNING and self._pause_pending and not self._cancel_pending:
                self._pause_pending = False
                self._run.state = BatchState.PAUSED
                self._logger.info(f"Paused after job {job.id}")

    @staticmethod
    def _detail(error: Exception, result: Optional[JobResult], tail_lines: int = 20) -> str:
        detail = str(error)
        if result is not None and result.output_tail:
            detail += "\n" + "\n".join(result.output_tail[-tail_lines:])
        return detail

    def _publish(self, event: ProgressEvent) -> None:
        if isinstance(event, JobCompleted):
            self._logger.info(
                f"Job {event.job_id} done: {event.completed_count}/{event.total_jobs} ({event.percent}%)"
            )
        elif isinstance(event, JobFailed):
            self._logger.error(f"Job {event.job_id} failed: {event.error_detail}")
        else:
            self._logger.debug(f"Event: {event}")
        self._stream.publish(event)

    def _log_summary(self) -> None:
        with self._cond:
            state = self._run.state
        self._logger.info(f"{self._name} finished: {state.value}")
        for line in self._metrics.format_summary():
            self._logger.info(line)
