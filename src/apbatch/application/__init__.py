"""Application layer: planning and running batches."""

from apbatch.application.planner import BatchPlanner
from apbatch.application.stream import ProgressStream, Subscription
from apbatch.application.controller import BatchController
from apbatch.application.service import AnalysisService
from apbatch.application.factories import ServiceFactory

__all__ = [
    "BatchPlanner",
    "ProgressStream",
    "Subscription",
    "BatchController",
    "AnalysisService",
    "ServiceFactory",
]
