"""Subcommand that reports the type and relocatability of a kernel image."""

from __future__ import annotations

import logging
from enum import IntEnum

from .errors import KError
from .kerneltool import KernelTool, KernelType
from .options import FlagOption, Subcommand

__all__ = ["IdentifyErrorCode", "IdentifyKernel"]

log = logging.getLogger(__name__)


class IdentifyErrorCode(IntEnum):
    """Exit codes of the subcommand; the values are kept for compatibility."""

    SUCCESS = 0
    NOT_RELOCATABLE = 2
    NOT_A_KERNEL = 3


class IdentifyKernel(Subcommand):
    """Identify a kernel binary."""

    name = "identify_kernel"

    def __init__(self, arch: str | None = None) -> None:
        super().__init__()
        self.arch = arch
        self.relocatable_option = FlagOption(
            "relocatable", "r", "Check if the kernel is relocatable"
        )
        self.type_option = FlagOption("type", "t", "Print the type of the kernel")
        self.options.extend([self.relocatable_option, self.type_option])
        self.kernel_image = ""

    def parse_args(self, args: list[str]) -> None:
        if not self.type_option.value and not self.relocatable_option.value:
            raise KError("You have to specify either the -r or the -t flag.")
        if len(args) != 1:
            raise KError(
                "You have to specify the kernel image for the "
                "identify_kernel subcommand."
            )
        super().parse_args(args)
        self.kernel_image = args[0]
        log.debug("kernelimage = %s", self.kernel_image)

    def execute(self) -> None:
        with KernelTool(self.kernel_image, self.arch) as tool:
            if self.type_option.value:
                kind = tool.kernel_type()
                if kind is KernelType.NONE:
                    raise KError("The specified file is not a kernel image.")
                print(kind.value)

            if self.relocatable_option.value:
                if tool.is_relocatable():
                    print("Relocatable")
                else:
                    print("Not relocatable")
                    self.error_code = IdentifyErrorCode.NOT_RELOCATABLE