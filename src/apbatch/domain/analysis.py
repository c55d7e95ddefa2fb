"""AnalysisPrograms vocabulary: analysis types and command line options."""

from enum import Enum


class AnalysisType(str, Enum):
    """AP analysis verbs."""

    AUDIO2CSV = "audio2csv"
    AUDIO2SONOGRAM = "Audio2Sonogram"
    INDICIES_CSV2IMAGE = "IndiciesCsv2Image"

    @classmethod
    def parse(cls, value: str) -> "AnalysisType":
        """Look up a type by verb, case-insensitively."""
        for member in cls:
            if member.value.lower() == value.lower() or member.name.lower() == value.lower():
                return member
        raise ValueError(f"Unknown analysis type: {value}")


class AnalysisOption(str, Enum):
    """Flag names understood by AP analysis verbs."""

    TEMPORARY_DIRECTORY = "--temp-dir"
    AUDIO_OFFSET = "--offset"
    ALIGN_TO_MINUTE = "--align-to-minute"
    CHANNELS = "--channels"
    MIX_DOWN_TO_MONO = "--mix-down-to-mono"
    PARALLEL = "--parallel"
    COPY_LOG = "--when-exit-copy-log"
    COPY_CONFIG = "--when-exit-copy-config"
    LOG_LEVEL = "--log-level"


class AlignToMinute(str, Enum):
    NO_ALIGNMENT = "No Alignment"
    TRIM_BOTH = "TrimBoth"
    TRIM_NEITHER = "TrimNeither"
    TRIM_START = "TrimStart"
    TRIM_END = "TrimEnd"


class MixDownToMono(str, Enum):
    FALSE = "false"
    TRUE = "true"


class LogLevel(str, Enum):
    NONE = "0"
    ERROR = "1"
    WARN = "2"
    INFO = "3"
    DEBUG = "4"
    TRACE = "5"
    VERBOSE = "6"
    ALL = "7"


# Verb used to validate the AP install and the marker it prints on success
CHECK_ENVIRONMENT_VERB = "CheckEnvironment"
VALID_ENVIRONMENT_MARKER = "SUCCESS - Valid environment"
