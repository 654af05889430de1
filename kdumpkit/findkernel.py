"""Locating a kernel image suitable for capturing crash dumps."""

from __future__ import annotations

import logging
import os
import platform
import sys

from .errors import KError
from .kconfig import Kconfig, Tristate, ValueType
from .kernelpath import KernelPath, image_names
from .kerneltool import KernelTool, machine_arch
from .options import Subcommand

__all__ = ["BOOT_DIR", "MAXCPUS_KDUMP", "is_kdump_kernel", "FindKernel"]

log = logging.getLogger(__name__)

BOOT_DIR = "/boot"

# Kernels built for more CPUs than this are avoided by auto-detection.
MAXCPUS_KDUMP = 1024


def is_kdump_kernel(path: str) -> bool:
    """Tell whether the image is a kdump kernel (judged by its name only)."""
    result = path.endswith("kdump")
    log.debug("is_kdump_kernel(%s)=%s", path, result)
    return result


def _is_on(kconfig: Kconfig, option: str) -> bool:
    value = kconfig.get(option)
    return value.type is ValueType.TRISTATE and value.tristate is Tristate.ON


def _replace_flavour(release: str, flavour: str) -> str:
    elements = release.split("-")
    elements[-1] = flavour
    return "-".join(elements)


class FindKernel(Subcommand):
    """Subcommand that finds a suitable kdump kernel and its initrd."""

    name = "find_kernel"

    def __init__(
        self,
        kernelver: str = "",
        fadump: bool = False,
        boot_dir: str = BOOT_DIR,
        arch: str | None = None,
        kernel_release: str | None = None,
    ) -> None:
        super().__init__()
        self.kernelver = kernelver
        self.fadump = fadump
        self.boot_dir = boot_dir
        self.arch = arch if arch is not None else machine_arch()
        self.kernel_release = (
            kernel_release if kernel_release is not None else platform.release()
        )

    def get_paths(self) -> tuple[str, str] | None:
        """Return ``(kernel, initrd)`` or None if no suitable kernel exists."""
        if self.kernelver:
            kernel = self.find_for_version(self.kernelver)
            if kernel is None:
                log.info(
                    "KDUMP_KERNELVER is set to '%s', but no such kernel exists.",
                    self.kernelver,
                )
                return None
            if not self.suitable_for_kdump(kernel, False):
                log.info("Kernel '%s' is not suitable for kdump.", kernel)
                log.info("Please change KDUMP_KERNELVER.")
                return None
        else:
            kernel = self.find_kernel_auto()
            if kernel is None:
                return None

        initrd = KernelPath(kernel, self.arch).initrd_path(self.fadump)
        log.debug("get_paths(): kernel=%s, initrd=%s", kernel, initrd)
        return kernel, initrd

    def execute(self) -> None:
        paths = self.get_paths()
        if paths is None:
            print("No suitable kdump kernel found.", file=sys.stderr)
            self.error_code = -1
            return
        kernel, initrd = paths
        print(f"Kernel:\t{kernel}")
        print(f"Initrd:\t{initrd}")

    def suitable_for_kdump(self, kernel_image: str, strict: bool) -> bool:
        """Check whether ``kernel_image`` can serve as a capture kernel.

        With ``strict`` set, kernels that waste memory (realtime kernels,
        huge CPU counts on x86) are rejected too. Raises KError if the
        image or its configuration cannot be read.
        """
        with KernelTool(kernel_image, self.arch) as tool:
            if is_kdump_kernel(kernel_image):
                log.debug(
                    "%s is kdump kernel, no need for relocatable check", kernel_image
                )
            else:
                relocatable = tool.is_relocatable()
                log.debug(
                    "%s is %s", kernel_image,
                    "relocatable" if relocatable else "not relocatable",
                )
                if not relocatable:
                    return False

            kconfig = tool.retrieve_kernel_config()

        # Xenlinux kernels do not run on bare metal
        if _is_on(kconfig, "CONFIG_X86_64_XEN") or _is_on(kconfig, "CONFIG_X86_XEN"):
            log.debug("%s is a Xen kernel. Avoid.", kernel_image)
            return False

        if strict:
            if self.arch in ("i386", "x86_64"):
                cpus = kconfig.get("CONFIG_NR_CPUS")
                if cpus.type is ValueType.INTEGER and cpus.integer > MAXCPUS_KDUMP:
                    log.debug(
                        "NR_CPUS of %s is %d >= %d. Avoid.",
                        kernel_image, cpus.integer, MAXCPUS_KDUMP,
                    )
                    return False

            if kconfig.get("CONFIG_PREEMPT_RT").is_valid:
                log.debug("%s is realtime kernel. Avoid.", kernel_image)
                return False

        return True

    def find_for_version(self, kernelver: str) -> str | None:
        """Return the first existing image in the boot directory for a version."""
        for image in image_names(self.arch):
            filename = f"{image}-{kernelver}" if kernelver else image
            candidate = os.path.join(self.boot_dir, filename)
            log.debug("find_for_version: Trying %s", candidate)
            if os.path.exists(candidate):
                log.debug("%s exists", candidate)
                return candidate
        return None

    def find_kernel_auto(self) -> str | None:
        """Pick a capture kernel automatically, trying the candidates in order."""
        release = self.kernel_release
        log.debug("Running kernel: %s", release)
        default = _replace_flavour(release, "default")
        candidates = [
            (_replace_flavour(release, "kdump"), True),
            ("kdump", True),
            (release, True),
            (default, True),
            ("", True),
            (release, False),
            (default, False),
            ("", False),
        ]
        for version, strict in candidates:
            log.debug("find_kernel_auto: Trying %s", version)
            image = self.find_for_version(version)
            if image and self.suitable_for_kdump(image, strict):
                return image
        return None


def _raise_unused() -> None:  # pragma: no cover
    raise KError("unreachable")