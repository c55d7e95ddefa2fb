"""Deep merge of configuration trees."""

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Sequence, Tuple

from apbatch.domain.exceptions import ConfigKeyMismatchError


class NodeKind(Enum):
    """The closed set of node shapes a config tree is built from."""

    SCALAR = "scalar"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def node_kind(value: Any) -> NodeKind:
    if isinstance(value, Mapping):
        return NodeKind.MAPPING
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return NodeKind.SEQUENCE
    return NodeKind.SCALAR


def to_plain(value: Any) -> Any:
    """
    Rebuild a tree from fresh ``dict`` and ``list`` nodes.

    Any Mapping becomes a dict and any non-string Sequence becomes a list,
    so the result can be mutated and dumped without touching the source.
    Scalars are shared.
    """
    kind = node_kind(value)
    if kind is NodeKind.MAPPING:
        return {key: to_plain(item) for key, item in value.items()}
    if kind is NodeKind.SEQUENCE:
        return [to_plain(item) for item in value]
    return value


def freeze(value: Any) -> Any:
    """Read-only copy of a tree: mappings become proxies, sequences tuples."""
    kind = node_kind(value)
    if kind is NodeKind.MAPPING:
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if kind is NodeKind.SEQUENCE:
        return tuple(freeze(item) for item in value)
    return value


class ConfigMerger:
    """
    Overlays a sparse override tree onto a base configuration tree.

    A mapping in the overrides is merged key by key into a mapping at the
    same position in the base. Every other override value (scalars,
    sequences, or a mapping replacing a non-mapping) replaces the base value
    outright. Neither argument is mutated.

    The result is always built from plain dicts and lists, whatever Mapping
    and Sequence types the inputs use.

    With ``strict=True`` an override key that does not exist in the base
    raises ConfigKeyMismatchError instead of being added.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def merge(self, base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict:
        """
        Merge ``overrides`` into a copy of ``base``.

        Args:
            base: Fully populated template tree
            overrides: Sparse tree of replacement values

        Returns:
            New resolved tree

        Raises:
            ConfigKeyMismatchError: In strict mode, for unknown override keys
        """
        result = to_plain(base)
        if overrides:
            self._overlay(result, overrides, ())
        return result

    def _overlay(self, target: dict, overrides: Mapping[str, Any], path: Tuple[str, ...]) -> None:
        for key, value in overrides.items():
            key_path = path + (str(key),)
            if key not in target:
                if self.strict:
                    raise ConfigKeyMismatchError(key_path)
                target[key] = to_plain(value)
                continue

            current = target[key]
            if node_kind(value) is NodeKind.MAPPING and node_kind(current) is NodeKind.MAPPING:
                self._overlay(current, value, key_path)
            else:
                target[key] = to_plain(value)


def merge(base: Mapping[str, Any], overrides: Mapping[str, Any], strict: bool = False) -> dict:
    """Merge two config trees. See ConfigMerger."""
    return ConfigMerger(strict=strict).merge(base, overrides)
