"""The kdumptool command: global options, subcommand dispatch and exit code."""

from __future__ import annotations

import logging
import os
import signal
import sys

from .errors import KError
from .findkernel import FindKernel
from .identifykernel import IdentifyKernel
from .multipath import Multipath
from .optionparser import OptionParser
from .options import FlagOption, StringOption, Subcommand

__all__ = [
    "PROGRAM_NAME",
    "PROGRAM_VERSION",
    "PROGRAM_VERSION_STRING",
    "DEFAULT_CONFIG",
    "KdumpTool",
    "main",
]

log = logging.getLogger(__name__)

PROGRAM_NAME = "kdumptool"
PROGRAM_VERSION = "0.1.0"
PROGRAM_VERSION_STRING = f"{PROGRAM_NAME} {PROGRAM_VERSION}"
DEFAULT_CONFIG = "/etc/sysconfig/kdump"

_PACKAGE_LOGGER = "kdumpkit"


def _daemonize() -> None:
    """Detach from the controlling terminal within the current process.

    Starts a new session where possible, ignores SIGHUP, changes to the
    root directory and points the standard streams at the null device.
    """
    try:
        os.setsid()
    except OSError:
        pass
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, signal.SIG_IGN)
    os.chdir("/")
    sys.stdout.flush()
    sys.stderr.flush()
    devnull = os.open(os.devnull, os.O_RDWR)
    for fd in (0, 1, 2):
        os.dup2(devnull, fd)
    if devnull > 2:
        os.close(devnull)


class KdumpTool:
    """Main program object: holds subcommands and global settings."""

    def __init__(self) -> None:
        self.subcommands: list[Subcommand] = []
        self.subcommand: Subcommand | None = None
        self.background = False
        self.config_file = DEFAULT_CONFIG
        self.kernel_cmdline = ""
        self._log_handlers: list[logging.Handler] = []

    def __enter__(self) -> KdumpTool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._close_logging()

    def add_subcommand(self, subcommand: Subcommand) -> None:
        """Register a subcommand."""
        self.subcommands.append(subcommand)

    def _attach_log_handler(self, handler: logging.Handler) -> None:
        logger = logging.getLogger(_PACKAGE_LOGGER)
        handler.setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
        logger.addHandler(handler)
        self._log_handlers.append(handler)

    def _close_logging(self) -> None:
        logger = logging.getLogger(_PACKAGE_LOGGER)
        for handler in self._log_handlers:
            logger.removeHandler(handler)
            handler.close()
        self._log_handlers.clear()

    def parse_command_line(self, argv: list[str]) -> None:
        """Parse the arguments (without the program name).

        ``--help`` and ``--version`` print to stderr and raise SystemExit(0).
        Raises KError on invalid input or if no subcommand is given.
        """
        help_opt = FlagOption("help", "h", "Print help output")
        version_opt = FlagOption("version", "v", "Print version information and exit")
        background_opt = FlagOption(
            "background", "b", "Run in the background (daemon mode)"
        )
        debug_opt = FlagOption("debug", "D", "Print debugging output")
        logfile_opt = StringOption(
            "logfile", "L", "Use the specified logfile for debugging output"
        )
        configfile_opt = StringOption(
            "configfile",
            "F",
            f"Use the specified configuration file instead of {DEFAULT_CONFIG}",
            default=self.config_file,
        )
        cmdline_opt = StringOption(
            "cmdline",
            "C",
            "Also parse kernel parameters from a given file (e.g. /proc/cmdline)",
            default=self.kernel_cmdline,
        )

        parser = OptionParser()
        for opt in (help_opt, version_opt, background_opt, debug_opt,
                    logfile_opt, configfile_opt, cmdline_opt):
            parser.add_global_option(opt)
        parser.add_subcommands(self.subcommands)
        parser.parse(argv)

        if help_opt.value:
            parser.print_help(sys.stderr, PROGRAM_VERSION_STRING)
            raise SystemExit(0)
        if version_opt.value:
            sys.stderr.write(self.version_text())
            raise SystemExit(0)

        self.background = background_opt.value
        self.config_file = configfile_opt.value
        self.kernel_cmdline = cmdline_opt.value

        if logfile_opt.is_set and debug_opt.value:
            try:
                handler = logging.FileHandler(logfile_opt.value, mode="a")
            except OSError:
                handler = None
            if handler is not None:
                handler.setFormatter(logging.Formatter("%(message)s"))
                self._attach_log_handler(handler)
            log.debug("STARTUP ----------------------------------")
        elif debug_opt.value:
            self._attach_log_handler(logging.StreamHandler(sys.stderr))

        self.subcommand = parser.subcommand
        if self.subcommand is None:
            raise KError("You must provide a subcommand.")

    def execute(self) -> None:
        """Run the selected subcommand, in the background if requested."""
        if self.subcommand is None:
            raise KError("You must provide a subcommand.")
        if self.background:
            log.debug("Daemonize")
            _daemonize()
        self.subcommand.execute()

    def version_text(self) -> str:
        """Return the version and feature lines printed by ``--version``."""
        return f"{PROGRAM_VERSION_STRING}\nFeatures: SFTP: enabled - SMTP: disabled\n"

    @property
    def error_code(self) -> int:
        """Exit code set by the subcommand; 0 when none was selected."""
        if self.subcommand is None:
            return 0
        return int(self.subcommand.error_code)


def main(argv: list[str] | None = None) -> int:
    """Run the tool and return the process exit code."""
    if argv is None:
        argv = sys.argv[1:]

    failed = False
    with KdumpTool() as tool:
        try:
            tool.add_subcommand(FindKernel())
            tool.add_subcommand(IdentifyKernel())
            tool.add_subcommand(Multipath())
            tool.parse_command_line(argv)
            tool.execute()
        except KError as exc:
            print(exc, file=sys.stderr)
            failed = True
        except Exception as exc:
            print(f"Fatal exception: {exc}", file=sys.stderr)
            failed = True
        code = tool.error_code

    if failed and code == 0:
        return -1
    return code