"""Command line options and the subcommand base class."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

__all__ = [
    "Option",
    "FlagOption",
    "StringOption",
    "IntOption",
    "Subcommand",
    "atoi",
]

_ATOI_RE = re.compile(r"\s*([+-]?\d+)")


def atoi(text: str) -> int:
    """Parse a leading integer like C ``atoi``: junk yields 0."""
    match = _ATOI_RE.match(text)
    return int(match.group(1)) if match else 0


class Option(ABC):
    """A command line option with a long name and a one-letter short name."""

    placeholder: str | None = None
    takes_argument = False

    def __init__(self, long_name: str, letter: str, description: str = "") -> None:
        if len(letter) != 1:
            raise ValueError(f"option letter must be one character: {letter!r}")
        self.long_name = long_name
        self.letter = letter
        self.description = description
        self.is_set = False

    def short_spec(self) -> str:
        """Return this option's part of a getopt short option string."""
        return self.letter + (":" if self.takes_argument else "")

    def long_spec(self) -> str:
        """Return this option's entry for a getopt long option list."""
        return self.long_name + ("=" if self.takes_argument else "")

    @abstractmethod
    def set_value(self, arg: str | None) -> None:
        """Record the value given on the command line."""


class FlagOption(Option):
    """Option that toggles a flag on."""

    def __init__(self, long_name: str, letter: str, description: str = "") -> None:
        super().__init__(long_name, letter, description)
        self.value = False

    def set_value(self, arg: str | None) -> None:
        self.is_set = True
        self.value = True


class StringOption(Option):
    """Option taking a string argument."""

    placeholder = "<STRING>"
    takes_argument = True

    def __init__(
        self, long_name: str, letter: str, description: str = "", default: str = ""
    ) -> None:
        super().__init__(long_name, letter, description)
        self.value = default

    def set_value(self, arg: str | None) -> None:
        self.is_set = True
        self.value = arg if arg is not None else ""


class IntOption(Option):
    """Option taking an integer argument."""

    placeholder = "<NUMBER>"
    takes_argument = True

    def __init__(
        self, long_name: str, letter: str, description: str = "", default: int = 0
    ) -> None:
        super().__init__(long_name, letter, description)
        self.value = default

    def set_value(self, arg: str | None) -> None:
        self.is_set = True
        self.value = atoi(arg or "")


class Subcommand(ABC):
    """Base class of a command that the tool can run."""

    name = ""
    needs_config_file = True

    def __init__(self) -> None:
        self.options: list[Option] = []
        self.error_code = 0
        self.args: list[str] = []

    def parse_args(self, args: list[str]) -> None:
        """Take the non-option arguments from the command line."""
        self.args = list(args)

    @abstractmethod
    def execute(self) -> None:
        """Run the subcommand; raise KError on failure."""