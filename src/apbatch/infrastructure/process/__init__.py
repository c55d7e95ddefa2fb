"""Process execution: launch policy, job runner and environment check."""

from apbatch.infrastructure.process.launcher import LaunchMode, LaunchPolicy
from apbatch.infrastructure.process.job_runner import SubprocessJobRunner
from apbatch.infrastructure.process.environment import EnvironmentReport, check_environment

__all__ = [
    "LaunchMode",
    "LaunchPolicy",
    "SubprocessJobRunner",
    "EnvironmentReport",
    "check_environment",
]
