"""Configuration package."""

from apbatch.infrastructure.config.loader import ConfigLoader
from apbatch.infrastructure.config.schema import AppSettings

__all__ = ["ConfigLoader", "AppSettings"]
