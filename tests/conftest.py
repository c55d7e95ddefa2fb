import logging
import sys
import os
import textwrap

import pytest

# Ensure src/ is on sys.path so 'apbatch' is importable without installing
SRC = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src'))
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from apbatch.domain.analysis import AnalysisType
from apbatch.domain.models import Job
from apbatch.infrastructure.process.launcher import LaunchMode, LaunchPolicy


TOWSEY_TEMPLATE = textwrap.dedent("""\
    AnalysisName: Towsey.Acoustic
    SegmentDuration: 60
    SegmentOverlap: 0
    ResampleRate: 22050
    IndexCalculationDuration: 60.0
    BgNoiseNeighbourhood: 5
    FrameLength: 512
    LowFreqBound: 1000
    MidFreqBound: 8000
    SaveIntermediateWavFiles: Never
    SaveSonogramImages: Never
    LdSpectrogramConfig:
      ColorMap1: ACI-ENT-EVN
      ColorMap2: BGN-PMN-R3D
      FreqScale: Linear
    IndexPropertiesConfig: ./IndexPropertiesConfig.yml
    EventThreshold: 0.2
    """)

FAKE_AP = textwrap.dedent("""\
    import os
    import sys
    import time

    args = sys.argv[1:]
    if args and args[0] == "CheckEnvironment":
        print("Checking environment")
        print("SUCCESS - Valid environment")
        sys.exit(0)

    verb, audio, config, output = args[:4]
    print("verb=" + verb)
    print("audio=" + audio)
    print("flags=" + "|".join(args[4:]))
    sys.stdout.flush()
    name = os.path.basename(audio)
    if "fail" in name:
        print("ERROR: could not decode " + name, file=sys.stderr)
        sys.exit(3)
    if "slow" in name:
        time.sleep(30)
    with open(os.path.join(output, "done.txt"), "w") as f:
        f.write(name)
    """)


@pytest.fixture
def template_dir(tmp_path):
    """AP ConfigFiles directory with a couple of templates."""
    config_dir = tmp_path / "ConfigFiles"
    config_dir.mkdir()
    (config_dir / "Towsey.Acoustic.yml").write_text(TOWSEY_TEMPLATE, encoding="utf-8")
    (config_dir / "Towsey.Sonogram.yml").write_text("AnalysisName: Towsey.Sonogram\nFrameLength: 512\n",
                                                  encoding="utf-8")
    (config_dir / "README.txt").write_text("not a template", encoding="utf-8")
    return config_dir


@pytest.fixture
def fake_ap(tmp_path):
    """A Python stand-in for AnalysisPrograms.exe."""
    script = tmp_path / "AnalysisPrograms.py"
    script.write_text(FAKE_AP, encoding="utf-8")
    return script


@pytest.fixture
def shim_policy(fake_ap):
    """Launch the fake AP through the Python interpreter, like mono would."""
    return LaunchPolicy(executable=fake_ap, mode=LaunchMode.SHIM, shim=sys.executable)


@pytest.fixture
def make_job(tmp_path):
    """Factory for jobs with real output directories."""
    def _make(job_id=0, name="site1.wav", flags=()):
        audio = tmp_path / "audio" / name
        audio.parent.mkdir(exist_ok=True)
        audio.write_bytes(b"RIFF")
        output = tmp_path / "out" / audio.stem
        output.mkdir(parents=True, exist_ok=True)
        config = tmp_path / "Towsey.Acoustic.temp_1.yml"
        config.write_text("AnalysisName: Towsey.Acoustic\n", encoding="utf-8")
        return Job(
            id=job_id,
            analysis_type=AnalysisType.AUDIO2CSV,
            label="test",
            input_file=audio,
            resolved_config_path=config,
            output_directory=output,
            flags=tuple(flags),
        )
    return _make


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logger so caplog keeps seeing package records."""
    yield
    package_logger = logging.getLogger("apbatch")
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
