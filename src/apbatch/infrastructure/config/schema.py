"""Application settings schema."""

import tempfile
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

LAUNCHERS = ("auto", "native", "shim")


class AppSettings(BaseModel):
    """Where AP lives, how to launch it and where scratch files go."""

    # AP install
    ap_directory: Path = Path("AP")
    executable: Optional[Path] = None
    config_directory: Optional[Path] = None

    # Launching
    launcher: str = "auto"  # 'auto', 'native', 'shim'
    shim: str = "mono"

    # Materialized configs
    temp_directory: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()) / "apbatch")
    default_template: str = "Towsey.Acoustic.yml"
    strict_overrides: bool = False

    # Execution
    preemptive_cancel: bool = True
    output_buffer_lines: int = 2000

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @field_validator("launcher")
    @classmethod
    def _check_launcher(cls, value: str) -> str:
        value = value.lower()
        if value not in LAUNCHERS:
            raise ValueError(f"launcher must be one of {', '.join(LAUNCHERS)}")
        return value

    @field_validator("output_buffer_lines")
    @classmethod
    def _check_buffer(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("output_buffer_lines must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"Invalid log_level: {value}")
        return value

    @model_validator(mode="after")
    def _derive_paths(self) -> "AppSettings":
        # Executable and ConfigFiles default to their places inside the AP install
        if self.executable is None:
            self.executable = self.ap_directory / "AnalysisPrograms.exe"
        if self.config_directory is None:
            self.config_directory = self.ap_directory / "ConfigFiles"
        return self
