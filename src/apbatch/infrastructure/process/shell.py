"""Small helper for short-lived commands."""

import subprocess
from typing import List, Optional, Tuple


def run_cmd(cmd: List[str], timeout: Optional[float] = None) -> Tuple[int, str, str]:
    """Run a command to completion. Returns (returncode, stdout, stderr).

    A command that cannot be started returns 127 with the OS error in stderr;
    a timeout returns 124.
    """
    try:
        completed = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors='replace',
            timeout=timeout,
        )
        return completed.returncode, completed.stdout, completed.stderr
    except subprocess.TimeoutExpired as e:
        out = e.stdout if isinstance(e.stdout, str) else ''
        return 124, out, f"Timed out after {timeout}s"
    except OSError as e:
        return 127, '', f"{cmd[0]}: {e}"
