import sys

from apbatch.infrastructure.process.environment import check_environment
from apbatch.infrastructure.process.launcher import LaunchMode, LaunchPolicy
from apbatch.infrastructure.process.shell import run_cmd


def test_run_cmd_success():
    rc, out, err = run_cmd([sys.executable, "-c", "print('hello')"])
    assert rc == 0
    assert "hello" in out


def test_run_cmd_nonzero():
    rc, out, err = run_cmd([sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"])
    assert rc == 3
    assert "bad" in err


def test_run_cmd_missing_binary():
    rc, out, err = run_cmd(["/nonexistent/AnalysisPrograms.exe"])
    assert rc == 127
    assert "/nonexistent/AnalysisPrograms.exe" in err


def test_run_cmd_timeout():
    rc, out, err = run_cmd([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)
    assert rc == 124
    assert "Timed out" in err


def test_check_environment_valid(shim_policy):
    report = check_environment(shim_policy, timeout=30)
    assert report.ok
    assert report.returncode == 0
    assert "SUCCESS - Valid environment" in report.output


def test_check_environment_without_marker(tmp_path):
    script = tmp_path / "ap.py"
    script.write_text("print('Checking environment')\n", encoding="utf-8")
    policy = LaunchPolicy(executable=script, mode=LaunchMode.SHIM, shim=sys.executable)

    report = check_environment(policy, timeout=30)

    assert not report.ok
    assert report.returncode == 0


def test_check_environment_missing_executable(tmp_path):
    policy = LaunchPolicy(executable=tmp_path / "missing.exe", mode=LaunchMode.NATIVE)

    report = check_environment(policy, timeout=30)

    assert not report.ok
    assert report.returncode == 127
