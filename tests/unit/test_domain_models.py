"""Test domain models."""

from pathlib import Path

import pytest

from apbatch.domain.analysis import AnalysisType
from apbatch.domain.events import (
    BatchCancelled,
    BatchCompleted,
    JobCompleted,
    JobFailed,
    JobStarted,
)
from apbatch.domain.models import (
    AnalysisRequest,
    BatchRun,
    BatchState,
    Job,
    JobOutcome,
    JobResult,
)
from apbatch.domain.options import OptionValue


class TestAnalysisType:
    """Test analysis type lookup."""

    def test_parse_case_insensitive(self):
        """Test verbs and member names both resolve."""
        assert AnalysisType.parse("AUDIO2CSV") is AnalysisType.AUDIO2CSV
        assert AnalysisType.parse("audio2sonogram") is AnalysisType.AUDIO2SONOGRAM
        assert AnalysisType.parse("indicies_csv2image") is AnalysisType.INDICIES_CSV2IMAGE

    def test_parse_unknown(self):
        """Test unknown verbs are rejected."""
        with pytest.raises(ValueError, match="Unknown analysis type"):
            AnalysisType.parse("eventRecognizer")


class TestAnalysisRequest:
    """Test analysis request validation."""

    def test_normalizes_fields(self):
        """Test strings and lists are converted."""
        request = AnalysisRequest(
            analysis_type="audio2csv",
            label="site1",
            config_template_id="Towsey.Acoustic.yml",
            input_files=["a.wav", Path("b.wav")],
            output_root="/out",
            options={"--parallel": True, "--channels": "0"},
        )

        assert request.analysis_type is AnalysisType.AUDIO2CSV
        assert request.input_files == (Path("a.wav"), Path("b.wav"))
        assert request.output_root == Path("/out")
        assert request.options["--parallel"] == OptionValue.flag(True)
        assert request.options["--channels"] == OptionValue.text("0")

    def test_options_are_read_only(self):
        """Test options cannot be changed after construction."""
        request = AnalysisRequest(AnalysisType.AUDIO2CSV, "x", "t.yml", (), Path("/out"))
        with pytest.raises(TypeError):
            request.options["--parallel"] = OptionValue.flag()

    def test_config_overrides_are_copied_read_only(self):
        """Test later changes by the caller do not reach the request."""
        overrides = {"LdSpectrogramConfig": {"ColorMap1": "X"}, "Profiles": ["a"]}
        request = AnalysisRequest(AnalysisType.AUDIO2CSV, "x", "t.yml", (), Path("/out"),
                                  config_overrides=overrides)

        overrides["LdSpectrogramConfig"]["ColorMap1"] = "Y"
        overrides["Profiles"].append("b")

        assert request.config_overrides["LdSpectrogramConfig"]["ColorMap1"] == "X"
        assert request.config_overrides["Profiles"] == ("a",)
        with pytest.raises(TypeError):
            request.config_overrides["LdSpectrogramConfig"]["ColorMap1"] = "Z"

    def test_config_overrides_default_none(self):
        request = AnalysisRequest(AnalysisType.AUDIO2CSV, "x", "t.yml", (), Path("/out"))
        assert request.config_overrides is None

    def test_empty_label_rejected(self):
        """Test label is required."""
        with pytest.raises(ValueError, match="Label"):
            AnalysisRequest(AnalysisType.AUDIO2CSV, "  ", "t.yml", (), Path("/out"))

    def test_empty_template_rejected(self):
        """Test template id is required."""
        with pytest.raises(ValueError, match="template"):
            AnalysisRequest(AnalysisType.AUDIO2CSV, "x", "", (), Path("/out"))


class TestJob:
    """Test job arguments."""

    def test_arguments_order(self):
        """Test verb, input, config, output, then flags."""
        job = Job(
            id=0,
            analysis_type=AnalysisType.AUDIO2CSV,
            label="x",
            input_file=Path("/audio/a.wav"),
            resolved_config_path=Path("/tmp/Towsey.Acoustic.temp_1.yml"),
            output_directory=Path("/out/x(1)/a"),
            flags=("--parallel", "--log-level=3"),
        )
        assert job.arguments() == [
            "audio2csv",
            str(Path("/audio/a.wav")),
            str(Path("/tmp/Towsey.Acoustic.temp_1.yml")),
            str(Path("/out/x(1)/a")),
            "--parallel",
            "--log-level=3",
        ]


class TestJobResult:
    """Test job results."""

    def test_success(self):
        result = JobResult.success(["done"], 1.5)
        assert result.ok
        assert result.exit_code == 0
        assert result.output_tail == ("done",)

    def test_failure(self):
        result = JobResult.failure(3)
        assert not result.ok
        assert result.outcome is JobOutcome.FAILURE
        assert result.describe() == "exited with code 3"

    def test_signalled(self):
        result = JobResult.signalled(15)
        assert not result.ok
        assert result.describe() == "terminated by signal 15"


class TestBatchRun:
    """Test batch run state."""

    def test_terminal_states(self):
        assert BatchState.COMPLETED.is_terminal
        assert BatchState.FAILED.is_terminal
        assert BatchState.CANCELLED.is_terminal
        assert not BatchState.PAUSED.is_terminal
        assert not BatchState.RUNNING.is_terminal
        assert not BatchState.IDLE.is_terminal

    def test_progress(self):
        """Test progress is a full-precision percentage."""
        run = BatchRun(jobs=tuple(object() for _ in range(3)))
        assert run.progress == 0.0
        run.completed_count = 2
        assert run.progress == pytest.approx(66.6667, rel=1e-4)

    def test_progress_without_jobs(self):
        assert BatchRun(jobs=()).progress == 0.0


class TestEvents:
    """Test progress events."""

    def test_terminal_flags(self):
        assert not JobStarted(0, 3).is_terminal
        assert not JobCompleted(0, 1, 3, 100 / 3).is_terminal
        assert JobFailed(0, "boom").is_terminal
        assert BatchCompleted(3).is_terminal
        assert BatchCancelled(1).is_terminal

    def test_percent_floors(self):
        """Test display percentage floors the progress."""
        assert JobCompleted(1, 2, 3, 200 / 3).percent == 66
        assert JobCompleted(2, 3, 3, 100.0).percent == 100
        assert round(JobCompleted(1, 2, 3, 200 / 3).progress) == 67
