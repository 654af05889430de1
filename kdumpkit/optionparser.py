"""Parser for global options, a subcommand and its own options."""

from __future__ import annotations

import getopt
from collections.abc import Iterable
from typing import TextIO

from .errors import KError
from .options import Option, Subcommand

__all__ = ["OptionParser"]


def _getopt(argv: list[str], options: list[Option], rearrange: bool):
    short = "".join(opt.short_spec() for opt in options)
    longs = [opt.long_spec() for opt in options]
    parse = getopt.gnu_getopt if rearrange else getopt.getopt
    try:
        found, rest = parse(argv, short, longs)
    except getopt.GetoptError as exc:
        raise KError("Invalid command line option") from exc

    for name, arg in found:
        if name.startswith("--"):
            long_name = name[2:]
            letter = next(
                (o.letter for o in options if o.long_name == long_name), None
            )
        else:
            letter = name[1:]
        target = next((o for o in options if o.letter == letter), None)
        if target is None:
            raise KError("Invalid command line option")
        target.set_value(arg)
    return rest


def _write_option_list(stream: TextIO, options: Iterable[Option], indent: str) -> None:
    for opt in options:
        line = f"{indent}--{opt.long_name}"
        if opt.placeholder:
            line += f"={opt.placeholder}"
        line += f" | -{opt.letter}"
        if opt.placeholder:
            line += f" {opt.placeholder}"
        stream.write(line + "\n")
        stream.write(f"{indent}     {opt.description}\n")


class OptionParser:
    """Parses ``[global options] [subcommand [options] [args]]``."""

    def __init__(self) -> None:
        self.global_options: list[Option] = []
        self.subcommands: dict[str, Subcommand] = {}
        self.subcommand: Subcommand | None = None
        self.args: list[str] = []

    def add_global_option(self, option: Option) -> None:
        """Add an option accepted before the subcommand."""
        self.global_options.append(option)

    def add_subcommands(self, subcommands: Iterable[Subcommand]) -> None:
        """Register subcommands by their names."""
        for sub in subcommands:
            self.subcommands[sub.name] = sub

    def parse(self, argv: list[str]) -> None:
        """Parse the arguments (without the program name)."""
        rest = _getopt(list(argv), self.global_options, rearrange=False)

        self.subcommand = None
        self.args = []
        if not rest:
            return

        name, *tail = rest
        sub = self.subcommands.get(name)
        if sub is None:
            raise KError(f"Subcommand {name} does not exist.")
        self.subcommand = sub
        self.args = _getopt(tail, sub.options, rearrange=True)
        sub.parse_args(self.args)

    def print_help(self, stream: TextIO, name: str) -> None:
        """Write the help text for all options and subcommands."""
        stream.write(f"{name}\n\n")
        names = sorted(self.subcommands)

        if names:
            stream.write("Subcommands\n")
            for sub_name in names:
                stream.write(f"\n   * {sub_name}\n")
            stream.write("\n\n")
            stream.write("Global options\n\n")
        _write_option_list(stream, self.global_options, "   ")
        if names:
            stream.write("\n")

        for sub_name in names:
            stream.write(f"Options for {sub_name}:\n\n")
            _write_option_list(stream, self.subcommands[sub_name].options, "   ")
            stream.write("\n")