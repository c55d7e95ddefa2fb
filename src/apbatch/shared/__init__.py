"""Shared utilities package."""

from apbatch.shared.logging import setup_logger, get_logger
from apbatch.shared.metrics import MetricsCollector
from apbatch.shared.types import PathLike

__all__ = [
    "setup_logger",
    "get_logger",
    "MetricsCollector",
    "PathLike",
]
