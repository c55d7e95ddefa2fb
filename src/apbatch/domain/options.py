"""Typed analysis options and their command line encoding."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Union


class OptionKind(Enum):
    BOOLEAN = "boolean"
    STRING = "string"


@dataclass(frozen=True)
class OptionValue:
    """A single option value tagged with its kind.

    Use the ``flag`` and ``text`` constructors rather than building
    instances directly so the tag always matches the payload.
    """

    kind: OptionKind
    value: Union[bool, str]

    @classmethod
    def flag(cls, enabled: bool = True) -> "OptionValue":
        return cls(OptionKind.BOOLEAN, bool(enabled))

    @classmethod
    def text(cls, value: str) -> "OptionValue":
        return cls(OptionKind.STRING, str(value))

    @classmethod
    def of(cls, value: Union[bool, str, "OptionValue"]) -> "OptionValue":
        """Wrap a raw value read from a config file or the command line."""
        if isinstance(value, OptionValue):
            return value
        if isinstance(value, bool):
            return cls.flag(value)
        if isinstance(value, Enum):
            return cls.text(value.value)
        return cls.text(value)


class OptionEncoder:
    """Converts an option mapping into AP flag tokens.

    Rules:
        - boolean true  -> ``name``
        - boolean false -> omitted
        - string containing whitespace -> ``name="value"``
        - any other string -> ``name=value``

    Embedded quote characters are passed through unescaped.
    """

    def encode(self, options: Mapping[str, OptionValue]) -> List[str]:
        """
        Encode options in their insertion order.

        Args:
            options: Mapping of flag name to tagged value

        Returns:
            Flag tokens for the command line
        """
        tokens: List[str] = []
        for name, option in options.items():
            if option.kind is OptionKind.BOOLEAN:
                if option.value:
                    tokens.append(name)
            elif option.kind is OptionKind.STRING:
                tokens.append(self._encode_string(name, option.value))
        return tokens

    @staticmethod
    def _encode_string(name: str, value: str) -> str:
        if any(ch.isspace() for ch in value):
            return f'{name}="{value}"'
        return f"{name}={value}"


def encode_options(options: Mapping[str, OptionValue]) -> List[str]:
    """Module-level shortcut for ``OptionEncoder().encode``."""
    return OptionEncoder().encode(options)
