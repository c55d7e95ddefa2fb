"""Entry point used by front ends to run analyses."""

import threading
from typing import Callable, List, Optional

from apbatch.application.controller import BatchController
from apbatch.application.planner import BatchPlanner
from apbatch.application.stream import ProgressStream
from apbatch.domain.exceptions import BatchStateError, ConfigurationError
from apbatch.domain.models import AnalysisRequest, BatchState, Plan
from apbatch.domain.protocols import IJobRunner, ITemplateStore, OutputListener
from apbatch.infrastructure.process.environment import EnvironmentReport
from apbatch.shared.logging import get_logger
from apbatch.shared.metrics import MetricsCollector

logger = get_logger(__name__)


class AnalysisService:
    """
    Plans and runs one batch at a time.

    ``submit`` plans synchronously, so planning errors reach the caller
    before anything runs, then hands the jobs to a fresh BatchController.
    The control calls act on the most recently submitted batch.
    """

    def __init__(
        self,
        planner: BatchPlanner,
        runner_factory: Callable[[], IJobRunner],
        template_store: Optional[ITemplateStore] = None,
        environment_check: Optional[Callable[[], EnvironmentReport]] = None,
        preemptive_cancel: bool = True,
        output_listener: Optional[OutputListener] = None
    ):
        self._planner = planner
        self._runner_factory = runner_factory
        self._template_store = template_store
        self._environment_check = environment_check
        self._preemptive_cancel = preemptive_cancel
        self._output_listener = output_listener
        self._lock = threading.Lock()
        self._controller: Optional[BatchController] = None
        self._plan: Optional[Plan] = None
        self._logger = get_logger(__name__)

    @property
    def controller(self) -> Optional[BatchController]:
        return self._controller

    @property
    def plan(self) -> Optional[Plan]:
        return self._plan

    def submit(self, request: AnalysisRequest, background: bool = True) -> ProgressStream:
        """
        Plan and start a batch.

        Args:
            request: Analysis request
            background: Run jobs on a worker thread

        Returns:
            Progress stream for the batch

        Raises:
            PlanningError: If the request cannot be planned
            BatchStateError: If another batch is still running
        """
        with self._lock:
            if self._controller is not None and not self._controller.state.is_terminal:
                raise BatchStateError("Another batch is still running")

            plan = self._planner.plan(request)
            controller = BatchController(
                runner=self._runner_factory(),
                metrics=MetricsCollector(),
                preemptive_cancel=self._preemptive_cancel,
                output_listener=self._output_listener,
                name=request.label
            )
            self._controller = controller
            self._plan = plan

        return controller.start(plan.jobs, background=background)

    def pause(self) -> None:
        self._active().pause()

    def unpause(self) -> None:
        self._active().unpause()

    def cancel(self) -> None:
        self._active().cancel()

    def is_paused(self) -> bool:
        controller = self._controller
        return controller is not None and controller.is_paused()

    @property
    def pause_pending(self) -> bool:
        controller = self._controller
        return controller is not None and controller.pause_pending

    def wait(self, timeout: Optional[float] = None) -> BatchState:
        return self._active().wait(timeout)

    def list_templates(self) -> List[str]:
        """Template ids available for ``AnalysisRequest.config_template_id``."""
        if self._template_store is None:
            return []
        return self._template_store.list()

    def check_environment(self) -> EnvironmentReport:
        """Ask the analysis tool whether it can run on this machine."""
        if self._environment_check is None:
            raise ConfigurationError("No environment check configured")
        return self._environment_check()

    def _active(self) -> BatchController:
        controller = self._controller
        if controller is None:
            raise BatchStateError("No batch has been submitted")
        return controller
