"""Editing of multipath.conf: adding blacklist and blacklist exception sections."""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Iterable, Iterator
from typing import Protocol, TextIO

from .options import Subcommand

__all__ = [
    "LineHandler",
    "tokenize",
    "MultipathConf",
    "AddBlacklistHandler",
    "Multipath",
]

log = logging.getLogger(__name__)

_C_SPACE = frozenset(" \t\n\v\f\r")
_LINE_RE = re.compile(r"[^\r\n]*[\r\n]")
_BLACKLIST_ALL = '\twwid ".*"\n'


def _is_blank(char: str) -> bool:
    """White space or a non-ASCII character, both of which separate tokens."""
    return char in _C_SPACE or ord(char) > 127


def tokenize(line: str, stringmode: bool = False) -> list[str]:
    """Split one multipath.conf line into tokens.

    The rules follow the multipath-tools 0.4.9 parser, quirks included:
    white space at the start of a quoted string is swallowed, a quoted
    string starting with '#' or '!' is a comment, and a NUL character
    ends the line.
    """
    tokens: list[str] = []
    pos = 0
    end = len(line)
    while True:
        while pos < end and line[pos] != "\0" and _is_blank(line[pos]):
            pos += 1

        if pos >= end or line[pos] in "\0#!":
            break

        char = line[pos]
        if char == '"':
            stringmode = not stringmode
            tokens.append(char)
            pos += 1
        elif not stringmode and char in "{}":
            tokens.append(char)
            pos += 1
        else:
            stop = pos
            while (
                stop < end
                and line[stop] not in '\0"'
                and (
                    stringmode
                    or not (_is_blank(line[stop]) or line[stop] in "#!{}")
                )
            ):
                stop += 1
            tokens.append(line[pos:stop])
            pos = stop
    return tokens


class LineHandler(Protocol):
    """Receiver of the lines parsed by MultipathConf."""

    def process(self, raw: str, tokens: list[str]) -> None:
        """Handle a raw line (with its CR or LF) and its tokens."""


def _split_lines(text: str) -> Iterator[tuple[str, bool]]:
    """Yield ``(line, complete)``; the last item holds any unterminated rest."""
    pos = 0
    for match in _LINE_RE.finditer(text):
        yield match.group(0), True
        pos = match.end()
    yield text[pos:], False


class MultipathConf:
    """Parser of multipath.conf, compatible with multipath-tools 0.4.9.

    A line is terminated by a single CR or LF. A final line without a
    terminator is not parsed; it is passed to the handler raw, with no
    tokens, together with the end-of-input notification.
    """

    def __init__(self, input: TextIO) -> None:
        self._input = input

    def process(self, handler: LineHandler) -> None:
        """Feed every line of the input to ``handler``."""
        text = self._input.read()
        for line, complete in _split_lines(text):
            if complete:
                handler.process(line, tokenize(line))
            else:
                handler.process(line, [])


class AddBlacklistHandler:
    """Copies a multipath.conf, blacklisting everything except given entries.

    Existing ``blacklist`` and ``blacklist_exceptions`` sections get the new
    entries added at their start, because multipath accepts each root
    section only once. Missing sections are put at the beginning of the
    file, where the parser state is known. Call :meth:`finish` (or use the
    handler as a context manager) to write the result.
    """

    def __init__(self, output: TextIO, exceptions: Iterable[str]) -> None:
        self._output = output
        self._exceptions = list(exceptions)
        self._lines: list[str] = []
        self._blacklist_done = False
        self._exceptions_done = False

    def __enter__(self) -> AddBlacklistHandler:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.finish()

    def _blacklist_lines(self) -> list[str]:
        self._blacklist_done = True
        return [_BLACKLIST_ALL]

    def _exception_lines(self) -> list[str]:
        self._exceptions_done = True
        return [f"\t{entry}\n" for entry in self._exceptions]

    def process(self, raw: str, tokens: list[str]) -> None:
        """Store the raw line, adding entries after a section opener."""
        self._lines.append(raw)
        if not tokens:
            return
        if tokens[0] == "blacklist":
            self._lines.extend(self._blacklist_lines())
        elif tokens[0] == "blacklist_exceptions":
            self._lines.extend(self._exception_lines())

    def finish(self) -> None:
        """Write the missing sections and then all collected lines."""
        out = self._output
        if not self._blacklist_done:
            out.write("blacklist {\n")
            out.writelines(self._blacklist_lines())
            out.write("}\n")
        if not self._exceptions_done:
            out.write("blacklist_exceptions {\n")
            out.writelines(self._exception_lines())
            out.write("}\n")
        out.writelines(self._lines)


class Multipath(Subcommand):
    """Subcommand that rewrites multipath.conf from input to output."""

    name = "multipath"
    needs_config_file = False

    def __init__(
        self, input: TextIO | None = None, output: TextIO | None = None
    ) -> None:
        super().__init__()
        self._input = input
        self._output = output
        self.exceptions: list[str] = []

    def parse_args(self, args: list[str]) -> None:
        """Every argument is a line for blacklist_exceptions."""
        super().parse_args(args)
        self.exceptions = list(args)

    def execute(self) -> None:
        log.debug("Multipath.execute()")
        source = self._input if self._input is not None else sys.stdin
        target = self._output if self._output is not None else sys.stdout
        with AddBlacklistHandler(target, self.exceptions) as handler:
            MultipathConf(source).process(handler)