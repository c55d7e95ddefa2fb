"""Runs a single job as an AP subprocess."""

import os
import subprocess
import threading
import time
from collections import deque
from typing import Dict, Optional

from apbatch.domain.exceptions import LaunchError
from apbatch.domain.models import Job, JobResult
from apbatch.domain.protocols import OutputListener
from apbatch.infrastructure.process.launcher import LaunchPolicy
from apbatch.shared.logging import get_logger

logger = get_logger(__name__)


class SubprocessJobRunner:
    """
    Executes jobs through the launch policy and streams their output.

    stdout and stderr are merged and read line by line as the tool writes
    them. Each line goes to the DEBUG log and to the optional listener, and
    the last ``buffer_lines`` lines are kept for diagnostics.

    One runner executes one job at a time; ``kill`` may be called from
    another thread to terminate it.
    """

    supports_kill = True

    def __init__(
        self,
        policy: LaunchPolicy,
        buffer_lines: int = 2000,
        env: Optional[Dict[str, str]] = None,
        kill_grace_seconds: float = 5.0
    ):
        """
        Initialize runner.

        Args:
            policy: How to invoke the executable
            buffer_lines: Size of the rolling output buffer
            env: Extra environment variables for the child process
            kill_grace_seconds: Delay between terminate and a hard kill
        """
        self.policy = policy
        self.buffer_lines = buffer_lines
        self.kill_grace_seconds = kill_grace_seconds
        self._env = dict(env or {})
        self._lock = threading.Lock()
        self._proc: Optional[subprocess.Popen] = None
        self._kill_requested = False
        self._logger = get_logger(__name__)

    def run(self, job: Job, on_output: Optional[OutputListener] = None) -> JobResult:
        """
        Run a job to completion.

        Args:
            job: Job to execute
            on_output: Called with (job id, line) for every output line

        Returns:
            JobResult with the tail of the output

        Raises:
            LaunchError: If the process cannot be started
        """
        cmd = self.policy.command(job.arguments())
        env = os.environ.copy()
        env.update(self._env)

        self._logger.info(f"Job {job.id}: {job.analysis_type.value} on {job.input_file.name}")
        self._logger.debug(f"Command: {' '.join(cmd)}")

        start_ts = time.monotonic()
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors='replace',
                bufsize=1,
                env=env,
            )
        except OSError as e:
            with self._lock:
                self._kill_requested = False
            self._logger.error(f"Job {job.id}: failed to start {cmd[0]}: {e}")
            raise LaunchError(job.id, cmd, e) from e

        with self._lock:
            self._proc = proc
            kill_requested = self._kill_requested
        self._logger.debug(f"Job {job.id}: started pid={proc.pid}")
        if kill_requested:
            self._terminate(proc)

        # Keep a rolling buffer of output for diagnostics
        buf = deque(maxlen=self.buffer_lines)
        try:
            for line in proc.stdout:
                line = line.rstrip('\r\n')
                buf.append(line)
                self._logger.debug(f"[AP] {line}")
                if on_output is not None:
                    on_output(job.id, line)
            returncode = proc.wait()
        finally:
            with self._lock:
                self._proc = None
                self._kill_requested = False
            if proc.poll() is None:
                # Listener raised mid-stream; do not leave the tool running
                proc.kill()
                proc.wait()
            proc.stdout.close()

        duration = time.monotonic() - start_ts
        tail = tuple(buf)

        if returncode == 0:
            self._logger.info(f"Job {job.id}: completed in {duration:.1f}s")
            return JobResult.success(tail, duration)
        if returncode < 0:
            self._logger.warning(f"Job {job.id}: terminated by signal {-returncode}")
            return JobResult.signalled(-returncode, tail, duration)
        self._logger.warning(f"Job {job.id}: exited with code {returncode}")
        return JobResult.failure(returncode, tail, duration)

    def kill(self) -> bool:
        """
        Terminate the running process, escalating to a hard kill after the
        grace period.

        A kill that arrives before the process has started is applied as
        soon as it starts.

        Returns:
            True if a process was signalled
        """
        with self._lock:
            proc = self._proc
            if proc is None:
                self._kill_requested = True
                return False
        if proc.poll() is not None:
            return False
        self._terminate(proc)
        return True

    def _terminate(self, proc: subprocess.Popen) -> None:
        self._logger.warning(f"Terminating pid={proc.pid}")
        proc.terminate()
        timer = threading.Timer(self.kill_grace_seconds, self._force_kill, args=(proc,))
        timer.daemon = True
        timer.start()

    def _force_kill(self, proc: subprocess.Popen) -> None:
        if proc.poll() is None:
            self._logger.warning(f"pid={proc.pid} ignored terminate, killing")
            proc.kill()
