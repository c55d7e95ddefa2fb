"""Checks that the AP install can run analyses."""

from dataclasses import dataclass

from apbatch.domain.analysis import CHECK_ENVIRONMENT_VERB, VALID_ENVIRONMENT_MARKER
from apbatch.infrastructure.process.launcher import LaunchPolicy
from apbatch.infrastructure.process.shell import run_cmd
from apbatch.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EnvironmentReport:
    ok: bool
    returncode: int
    output: str


def check_environment(policy: LaunchPolicy, timeout: float = 120.0) -> EnvironmentReport:
    """Run AP's ``CheckEnvironment`` verb and look for its success marker."""
    cmd = policy.command([CHECK_ENVIRONMENT_VERB])
    logger.debug(f"Command: {' '.join(cmd)}")
    rc, out, err = run_cmd(cmd, timeout=timeout)
    output = out + (("\n" + err) if err else "")
    ok = rc == 0 and VALID_ENVIRONMENT_MARKER in out
    if ok:
        logger.info("AP environment is valid")
    else:
        logger.warning(f"AP environment check failed (rc={rc})")
    return EnvironmentReport(ok=ok, returncode=rc, output=output.strip())
