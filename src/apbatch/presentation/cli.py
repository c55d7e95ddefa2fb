"""CLI interface for running AP analyses in batches."""
import sys
import signal
import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from apbatch import __version__
from apbatch.application.factories import ServiceFactory
from apbatch.domain.analysis import (
    AlignToMinute,
    AnalysisOption,
    AnalysisType,
    LogLevel,
    MixDownToMono,
)
from apbatch.domain.events import (
    BatchCancelled,
    BatchCompleted,
    JobCompleted,
    JobFailed,
    JobStarted,
    ProgressEvent,
)
from apbatch.domain.exceptions import BatchStateError, DomainException
from apbatch.domain.models import AnalysisRequest, BatchState
from apbatch.domain.options import OptionValue
from apbatch.infrastructure.config import ConfigLoader
from apbatch.shared.logging import get_logger, setup_logger

SUPPORTED_AUDIO_FORMATS = (".wav",)

logger = get_logger(__name__)


def parse_override(text: str) -> Dict[str, Any]:
    """Turn ``a.b.c=value`` into ``{"a": {"b": {"c": value}}}``.

    The value is parsed as YAML so numbers and booleans keep their type.
    """
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"Override must look like key.path=value: {text}")
    key_path, raw = text.split("=", 1)
    keys = [k for k in key_path.strip().split(".") if k]
    if not keys:
        raise argparse.ArgumentTypeError(f"Override has an empty key: {text}")
    try:
        value = yaml.safe_load(raw) if raw.strip() else ""
    except yaml.YAMLError as e:
        raise argparse.ArgumentTypeError(f"Cannot parse override value {raw!r}: {e}")

    tree: Dict[str, Any] = {keys[-1]: value}
    for key in reversed(keys[:-1]):
        tree = {key: tree}
    return tree


def combine_overrides(overrides: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Fold parsed overrides into one sparse tree, later ones winning."""
    combined: Dict[str, Any] = {}
    for override in overrides:
        _fold(combined, override)
    return combined or None


def _fold(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _fold(target[key], value)
        else:
            target[key] = value


def expand_inputs(paths: List[Path]) -> List[Path]:
    """Expand directories to the audio files they contain, keeping order."""
    files: List[Path] = []
    for path in paths:
        if path.is_dir():
            found = sorted(p for p in path.iterdir()
                           if p.is_file() and p.suffix.lower() in SUPPORTED_AUDIO_FORMATS)
            if not found:
                logger.warning(f"No audio files found in {path}")
            files.extend(found)
        else:
            files.append(path)
    return files


def build_options(args: argparse.Namespace) -> Dict[str, OptionValue]:
    """Collect AP options from parsed arguments, in AP's documented order."""
    options: Dict[str, OptionValue] = {}
    if args.temp_dir:
        options[AnalysisOption.TEMPORARY_DIRECTORY.value] = OptionValue.text(str(args.temp_dir))
    if args.offset:
        options[AnalysisOption.AUDIO_OFFSET.value] = OptionValue.text(args.offset)
    if args.align_to_minute:
        options[AnalysisOption.ALIGN_TO_MINUTE.value] = OptionValue.text(args.align_to_minute)
    if args.channels:
        options[AnalysisOption.CHANNELS.value] = OptionValue.text(args.channels)
    if args.mix_down_to_mono:
        options[AnalysisOption.MIX_DOWN_TO_MONO.value] = OptionValue.text(args.mix_down_to_mono)
    options[AnalysisOption.PARALLEL.value] = OptionValue.flag(args.parallel)
    options[AnalysisOption.COPY_LOG.value] = OptionValue.flag(args.copy_log)
    options[AnalysisOption.COPY_CONFIG.value] = OptionValue.flag(args.copy_config)
    if args.ap_log_level:
        options[AnalysisOption.LOG_LEVEL.value] = OptionValue.text(args.ap_log_level)
    for raw in args.ap_option or ():
        name, sep, value = raw.partition("=")
        options[name] = OptionValue.text(value) if sep else OptionValue.flag(True)
    return options


def render_event(event: ProgressEvent) -> None:
    if isinstance(event, JobStarted):
        logger.info(f"▶️  Job {event.job_id + 1}/{event.total_jobs} started")
    elif isinstance(event, JobCompleted):
        logger.info(f"✅ {event.completed_count}/{event.total_jobs} files complete ({event.percent}%)")
    elif isinstance(event, JobFailed):
        logger.error(f"❌ Job {event.job_id + 1} failed")
    elif isinstance(event, BatchCompleted):
        logger.info(f"Batch complete: {event.completed_count} file(s) analysed")
    elif isinstance(event, BatchCancelled):
        logger.warning(f"Batch cancelled after {event.completed_count} file(s)")


def cmd_run(args: argparse.Namespace, factory: ServiceFactory) -> int:
    settings = factory.settings
    inputs = expand_inputs(args.files)
    analysis_type = AnalysisType.parse(args.type)

    request = AnalysisRequest(
        analysis_type=analysis_type,
        label=args.label or analysis_type.value,
        config_template_id=args.template or settings.default_template,
        input_files=tuple(inputs),
        output_root=args.output,
        options=build_options(args),
        config_overrides=combine_overrides(args.override or []),
    )

    service = factory.create_service()
    stream = service.submit(request)
    stream.subscribe(render_event)
    logger.info(f"Config: {service.plan.config_path}")
    logger.info(f"Output: {service.plan.batch_directory}")

    def toggle_pause(signum, frame):
        try:
            if service.is_paused() or service.pause_pending:
                service.unpause()
            else:
                service.pause()
        except BatchStateError as e:
            logger.warning(str(e))

    if hasattr(signal, "SIGUSR1"):
        signal.signal(signal.SIGUSR1, toggle_pause)

    state = BatchState.RUNNING
    while not state.is_terminal:
        try:
            state = service.wait(timeout=0.5)
        except KeyboardInterrupt:
            logger.warning("Interrupted, cancelling batch")
            try:
                service.cancel()
            except BatchStateError as e:
                logger.warning(str(e))

    # wait() may return as soon as the state is terminal; make sure the last event is out
    service.wait()
    if state is BatchState.COMPLETED:
        return 0
    if state is BatchState.CANCELLED:
        return 130
    return 1


def cmd_templates(args: argparse.Namespace, factory: ServiceFactory) -> int:
    templates = factory.create_service().list_templates()
    if not templates:
        logger.warning(f"No templates in {factory.settings.config_directory}")
        return 1
    for template_id in templates:
        marker = "*" if template_id == factory.settings.default_template else " "
        print(f"{marker} {template_id}")
    return 0


def cmd_check_env(args: argparse.Namespace, factory: ServiceFactory) -> int:
    report = factory.create_service().check_environment()
    if report.output:
        print(report.output)
    return 0 if report.ok else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="apbatch", description="Run AnalysisPrograms over batches of audio files")
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('--config', type=Path, help='Settings YAML file (default: ./apbatch.yaml)')
    parser.add_argument('--ap-dir', type=Path, help='AP install directory')
    parser.add_argument('--launcher', choices=['auto', 'native', 'shim'], help='How to start AnalysisPrograms.exe')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose (shows AP output)')

    sub = parser.add_subparsers(dest='command', required=True)

    run = sub.add_parser('run', help='Analyse audio files')
    run.add_argument('files', nargs='+', type=Path, help='Audio files or directories of .wav files')
    run.add_argument('--type', '-t', default=AnalysisType.AUDIO2CSV.value,
                     choices=[t.value for t in AnalysisType], help='Analysis type')
    run.add_argument('--template', help='Config template id (default from settings)')
    run.add_argument('--output', '-o', type=Path, required=True, help='Output root directory')
    run.add_argument('--label', '-l', help='Batch label used in the output folder name')
    run.add_argument('--override', action='append', type=parse_override, metavar='KEY.PATH=VALUE',
                     help='Override a config template value (repeatable)')
    run.add_argument('--temp-dir', type=Path, help='AP temporary directory')
    run.add_argument('--offset', help='Audio offset')
    run.add_argument('--align-to-minute', choices=[a.value for a in AlignToMinute])
    run.add_argument('--channels', help='Channels to analyse')
    run.add_argument('--mix-down-to-mono', choices=[m.value for m in MixDownToMono])
    run.add_argument('--parallel', '-p', action='store_true', help='Let AP analyse segments in parallel')
    run.add_argument('--copy-log', action='store_true', help='Copy the AP log to the output folder')
    run.add_argument('--copy-config', action='store_true', help='Copy the config to the output folder')
    run.add_argument('--ap-log-level', choices=[level.value for level in LogLevel], help='AP log level')
    run.add_argument('--ap-option', action='append', metavar='NAME[=VALUE]',
                     help='Extra AP option passed through as-is (repeatable)')
    run.set_defaults(handler=cmd_run)

    templates = sub.add_parser('templates', help='List config templates')
    templates.set_defaults(handler=cmd_templates)

    check = sub.add_parser('check-env', help='Run AP CheckEnvironment')
    check.set_defaults(handler=cmd_check_env)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        overrides = {'ap_directory': args.ap_dir, 'launcher': args.launcher}
        if args.verbose:
            overrides['log_level'] = 'DEBUG'
        settings = ConfigLoader(config_path=args.config).load(overrides=overrides)
    except DomainException as e:
        setup_logger(level='INFO')
        logger.error(f"Settings error: {e}")
        return 1

    setup_logger(level=settings.log_level, log_file=settings.log_file)
    factory = ServiceFactory(settings)

    try:
        return args.handler(args, factory)
    except DomainException as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid request: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
