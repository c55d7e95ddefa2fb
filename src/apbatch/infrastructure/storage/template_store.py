"""Directory-backed store of AP config templates."""

from pathlib import Path
from typing import Any, Dict, List

import yaml

from apbatch.domain.exceptions import SerializationError, TemplateNotFoundError
from apbatch.shared.logging import get_logger
from apbatch.shared.types import PathLike

logger = get_logger(__name__)

TEMPLATE_SUFFIXES = (".yml", ".yaml")


class YamlTemplateStore:
    """
    Read-only view over AP's ``ConfigFiles`` directory.

    Template ids are paths relative to the directory, for example
    ``Towsey.Acoustic.yml``.
    """

    def __init__(self, directory: PathLike):
        self.directory = Path(directory)
        self._logger = get_logger(__name__)

    def path_for(self, template_id: str) -> Path:
        """Resolve a template id to a file path inside the store.

        Raises:
            TemplateNotFoundError: If the id is unknown or escapes the store
        """
        root = self.directory.resolve()
        candidate = (root / template_id).resolve()
        if root != candidate and root not in candidate.parents:
            raise TemplateNotFoundError(template_id, self.directory)
        if not candidate.is_file():
            raise TemplateNotFoundError(template_id, self.directory)
        return candidate

    def exists(self, template_id: str) -> bool:
        try:
            self.path_for(template_id)
        except TemplateNotFoundError:
            return False
        return True

    def get(self, template_id: str) -> Dict[str, Any]:
        """
        Load a template as a config tree.

        Args:
            template_id: Template path relative to the store

        Returns:
            Parsed template (a fresh object on every call)

        Raises:
            TemplateNotFoundError: If the template does not exist
            SerializationError: If the template is not a YAML mapping
        """
        path = self.path_for(template_id)
        self._logger.debug(f"Loading template {template_id} from {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                tree = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SerializationError(f"Cannot parse template {template_id}: {e}") from e
        except OSError as e:
            raise TemplateNotFoundError(template_id, self.directory) from e

        if tree is None:
            return {}
        if not isinstance(tree, dict):
            raise SerializationError(f"Template {template_id} must contain a mapping at top level")
        return tree

    def list(self) -> List[str]:
        """List template ids, sorted."""
        if not self.directory.is_dir():
            self._logger.warning(f"Template directory not found: {self.directory}")
            return []
        ids = [
            p.relative_to(self.directory).as_posix()
            for p in self.directory.rglob("*")
            if p.is_file() and p.suffix.lower() in TEMPLATE_SUFFIXES
        ]
        return sorted(ids)
