"""How the AP executable is invoked on this platform."""

import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Sequence

from apbatch.shared.logging import get_logger

logger = get_logger(__name__)


class LaunchMode(Enum):
    NATIVE = "native"
    SHIM = "shim"


@dataclass(frozen=True)
class LaunchPolicy:
    """
    Builds command lines for the AP executable.

    AnalysisPrograms.exe runs natively on Windows; elsewhere it is started
    through a launcher such as ``mono``. The choice is made once, when the
    policy is built, and every spawn goes through ``command``.
    """

    executable: Path
    mode: LaunchMode = LaunchMode.NATIVE
    shim: str = "mono"

    def command(self, args: Sequence[str]) -> List[str]:
        """Full argv for running the executable with ``args``."""
        if self.mode is LaunchMode.SHIM:
            return [self.shim, str(self.executable), *args]
        return [str(self.executable), *args]

    @classmethod
    def for_platform(
        cls,
        executable: Path,
        launcher: str = "auto",
        shim: str = "mono",
        platform: str = sys.platform
    ) -> "LaunchPolicy":
        """
        Decide the launch mode.

        Args:
            executable: Path to AnalysisPrograms.exe
            launcher: 'native', 'shim' or 'auto' (native on Windows only)
            shim: Interpreter used in shim mode
            platform: Platform string, defaults to ``sys.platform``
        """
        if launcher == "auto":
            mode = LaunchMode.NATIVE if platform.startswith("win") else LaunchMode.SHIM
        else:
            mode = LaunchMode(launcher)
        policy = cls(executable=Path(executable), mode=mode, shim=shim)
        logger.debug(f"Launch policy: mode={mode.value} executable={executable} shim={shim}")
        return policy
