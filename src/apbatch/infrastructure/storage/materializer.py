"""Writes resolved configs to the temporary-file area."""

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from apbatch.domain.config_tree import ConfigMerger, to_plain
from apbatch.domain.exceptions import SerializationError, StorageWriteError
from apbatch.domain.protocols import ITemplateStore
from apbatch.shared.logging import get_logger
from apbatch.shared.types import PathLike

logger = get_logger(__name__)

DEFAULT_FILE_MODE = 0o600


def split_template_name(template_id: str):
    """Split ``dir/Towsey.Acoustic.yml`` into (``Towsey.Acoustic``, ``yml``)."""
    name = Path(template_id).name
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return name, "yml"
    return stem, ext


class TemplateMaterializer:
    """
    Resolves config templates and writes them once per batch.

    Files are named ``{base_name}.temp_{batch_timestamp}.{ext}`` so that
    batches started at different instants never collide.
    """

    def __init__(
        self,
        store: ITemplateStore,
        temp_dir: PathLike,
        merger: Optional[ConfigMerger] = None,
        file_mode: int = DEFAULT_FILE_MODE
    ):
        """
        Initialize materializer.

        Args:
            store: Template store to load templates from
            temp_dir: Directory resolved configs are written to
            merger: Merger applied to overrides (permissive by default)
            file_mode: Permission bits for written files
        """
        self.store = store
        self.temp_dir = Path(temp_dir)
        self.merger = merger or ConfigMerger()
        self.file_mode = file_mode
        self._logger = get_logger(__name__)

    def materialize_template(
        self,
        template_id: str,
        overrides: Optional[Mapping[str, Any]],
        batch_timestamp: int
    ) -> Path:
        """
        Load a template, apply overrides and write the result.

        Raises:
            TemplateNotFoundError: Unknown template id
            ConfigKeyMismatchError: Strict merger and unknown override key
            SerializationError: Resolved tree is not representable as YAML
            StorageWriteError: Temp area cannot be written
        """
        config = self.store.get(template_id)
        if overrides:
            config = self.merger.merge(config, overrides)
        base_name, ext = split_template_name(template_id)
        return self.materialize(config, base_name, batch_timestamp, ext=ext)

    def materialize(
        self,
        config: Mapping[str, Any],
        base_name: str,
        batch_timestamp: int,
        ext: str = "yml"
    ) -> Path:
        """
        Serialize a resolved config to the temp area.

        The file is fully written and closed before this returns.

        Args:
            config: Resolved config tree
            base_name: Template name without extension
            batch_timestamp: Batch start time in unix milliseconds
            ext: File extension without the dot

        Returns:
            Path of the written file
        """
        text = self._serialize(config, base_name)
        self._ensure_temp_dir()

        path = self.temp_dir / f"{base_name}.temp_{batch_timestamp}.{ext}"
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, self.file_mode)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(text)
            # umask may have cleared bits from the requested mode
            os.chmod(path, self.file_mode)
        except OSError as e:
            raise StorageWriteError(f"Failed to write config {path}: {e}", path=path) from e

        self._logger.info(f"Materialized config: {path}")
        return path

    def cleanup(self, path: PathLike) -> None:
        """Remove a materialized config file if it exists."""
        try:
            Path(path).unlink()
            self._logger.debug(f"Removed config {path}")
        except FileNotFoundError:
            pass

    def _serialize(self, config: Mapping[str, Any], base_name: str) -> str:
        try:
            return yaml.safe_dump(
                to_plain(config),
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True
            )
        except yaml.YAMLError as e:
            raise SerializationError(f"Config for {base_name} cannot be serialized: {e}") from e

    def _ensure_temp_dir(self) -> None:
        try:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageWriteError(f"Cannot create temp directory {self.temp_dir}: {e}",
                                    path=self.temp_dir) from e
