"""Parsing of kernel configuration (.config) files."""

from __future__ import annotations

import gzip
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union

from .errors import KError

__all__ = [
    "ValueType",
    "Tristate",
    "KconfigValue",
    "parse_kconfig_line",
    "Kconfig",
]

log = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"-?\d+")
_GZIP_MAGIC = b"\x1f\x8b"


class ValueType(Enum):
    """Type of a configuration option."""

    INVALID = "invalid"
    STRING = "string"
    INTEGER = "int"
    TRISTATE = "tristate"


class Tristate(Enum):
    """Value of a tristate option."""

    ON = "y"
    OFF = "n"
    MODULE = "m"


@dataclass(frozen=True)
class KconfigValue:
    """A single configuration value; INVALID for comments and blank lines."""

    type: ValueType = ValueType.INVALID
    string: str = ""
    integer: int = 0
    tristate: Tristate | None = None

    @property
    def is_valid(self) -> bool:
        return self.type is not ValueType.INVALID

    def __str__(self) -> str:
        if self.type is ValueType.INTEGER:
            return f"[int] {self.integer}"
        if self.type is ValueType.STRING:
            return f"[string] {self.string}"
        if self.type is ValueType.TRISTATE:
            if self.tristate is None:
                return "[tristate] invalid value"
            return f"[tristate] {self.tristate.value}"
        return "[invalid]"


def _invalid_line(text: str) -> KError:
    return KError(f"Invalid line: '{text}'.")


def parse_kconfig_line(line: str) -> tuple[str | None, KconfigValue]:
    """Parse one .config line into ``(name, value)``.

    Blank lines and ordinary comments give ``(None, KconfigValue())``.
    Raises KError if the line cannot come from a .config file.
    """
    text = line.strip("\n")
    if not text:
        return None, KconfigValue()

    if text[0] == "#":
        if "is not set" not in text:
            return None, KconfigValue()
        if not (text[1] == " " and text[2].isalpha()):
            raise _invalid_line(text)
        end = text.find(" ", 2)
        if 0 <= end <= 2:
            raise _invalid_line(text)
        name = text[2:end] if end >= 0 else text[2:]
        return name, KconfigValue(ValueType.TRISTATE, tristate=Tristate.OFF)

    equal = text.find("=")
    if equal < 0:
        raise _invalid_line(text)
    name = text[:equal]
    value = text[equal + 1:]
    if not value:
        raise KError(f"There must be at least one character after =: '{text}'.")

    if value == "y":
        return name, KconfigValue(ValueType.TRISTATE, tristate=Tristate.ON)
    if value == "m":
        return name, KconfigValue(ValueType.TRISTATE, tristate=Tristate.MODULE)
    if _NUMBER_RE.fullmatch(value):
        return name, KconfigValue(ValueType.INTEGER, integer=int(value))

    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return name, KconfigValue(ValueType.STRING, string=value)


class _ConfigSource(Protocol):
    def extract_kernel_config(self) -> str: ...


class Kconfig:
    """The set of options of a kernel configuration."""

    def __init__(self) -> None:
        self._configs: dict[str, KconfigValue] = {}

    def __len__(self) -> int:
        return len(self._configs)

    def __contains__(self, option: object) -> bool:
        return option in self._configs

    def _add_lines(self, lines) -> None:
        for line in lines:
            name, value = parse_kconfig_line(line)
            if value.is_valid and name is not None:
                self._configs[name] = value

    def read_from_config(self, config_file: str) -> None:
        """Read a plain or gzip-compressed configuration file."""
        log.debug("Kconfig.read_from_config(%s)", config_file)
        try:
            with open(config_file, "rb") as raw:
                compressed = raw.read(2) == _GZIP_MAGIC
        except OSError as exc:
            raise KError(f"Opening '{config_file}' failed.") from exc

        opener = gzip.open if compressed else open
        try:
            with opener(config_file, "rt", encoding="utf-8", errors="replace") as fp:
                self._add_lines(fp)
        except (OSError, EOFError) as exc:
            raise KError(f"Reading '{config_file}' failed.") from exc

    def read_from_string(self, text: str) -> None:
        """Read configuration lines from a string."""
        self._add_lines(text.splitlines())

    def read_from_kernel(self, kernel: Union[str, _ConfigSource]) -> None:
        """Read the configuration embedded in a kernel image.

        ``kernel`` is either a path to the image or an object providing
        ``extract_kernel_config()``.
        """
        if isinstance(kernel, str):
            from .kerneltool import KernelTool

            tool = KernelTool(kernel)
            try:
                text = tool.extract_kernel_config()
            finally:
                tool.close()
        else:
            text = kernel.extract_kernel_config()
        self.read_from_string(text)

    def get(self, option: str) -> KconfigValue:
        """Return the value of ``option`` (with CONFIG_ prefix), or INVALID."""
        return self._configs.get(option, KconfigValue())