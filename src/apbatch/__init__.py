"""Batch runner for AnalysisPrograms (AP) bioacoustic analyses."""

__version__ = "0.1.0"
