"""Builds the service and its collaborators from settings."""

from functools import partial
from typing import Optional

from apbatch.application.planner import BatchPlanner
from apbatch.application.service import AnalysisService
from apbatch.domain.config_tree import ConfigMerger
from apbatch.domain.protocols import OutputListener
from apbatch.infrastructure.config.schema import AppSettings
from apbatch.infrastructure.process.environment import check_environment
from apbatch.infrastructure.process.launcher import LaunchPolicy
from apbatch.infrastructure.process.job_runner import SubprocessJobRunner
from apbatch.infrastructure.storage.materializer import TemplateMaterializer
from apbatch.infrastructure.storage.template_store import YamlTemplateStore
from apbatch.shared.logging import get_logger

logger = get_logger(__name__)


class ServiceFactory:
    """
    Wires components together from AppSettings.

    The launch policy is decided once here and shared by every runner the
    service creates.
    """

    def __init__(self, settings: AppSettings):
        self.settings = settings
        self._logger = get_logger(__name__)
        self._policy: Optional[LaunchPolicy] = None

    def create_store(self) -> YamlTemplateStore:
        return YamlTemplateStore(self.settings.config_directory)

    def create_materializer(self) -> TemplateMaterializer:
        return TemplateMaterializer(
            store=self.create_store(),
            temp_dir=self.settings.temp_directory,
            merger=ConfigMerger(strict=self.settings.strict_overrides)
        )

    def create_planner(self) -> BatchPlanner:
        return BatchPlanner(self.create_materializer())

    def launch_policy(self) -> LaunchPolicy:
        if self._policy is None:
            self._policy = LaunchPolicy.for_platform(
                self.settings.executable,
                launcher=self.settings.launcher,
                shim=self.settings.shim
            )
            self._logger.info(
                f"AP executable: {self._policy.executable} (launch mode: {self._policy.mode.value})"
            )
        return self._policy

    def create_runner(self) -> SubprocessJobRunner:
        return SubprocessJobRunner(
            self.launch_policy(),
            buffer_lines=self.settings.output_buffer_lines
        )

    def create_service(self, output_listener: Optional[OutputListener] = None) -> AnalysisService:
        return AnalysisService(
            planner=self.create_planner(),
            runner_factory=self.create_runner,
            template_store=self.create_store(),
            environment_check=partial(check_environment, self.launch_policy()),
            preemptive_cancel=self.settings.preemptive_cancel,
            output_listener=output_listener
        )
