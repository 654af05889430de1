"""Kernel image paths and the files that belong to them."""

from __future__ import annotations

import logging
import os
import platform

__all__ = ["image_names", "KernelPath"]

log = logging.getLogger(__name__)


def image_names(arch: str) -> list[str]:
    """Return the kernel image names for ``arch`` in the order to try them."""
    if arch in ("i386", "x86_64"):
        return ["vmlinuz", "vmlinux"]
    if arch == "ia64":
        return ["vmlinuz"]
    if arch == "s390x":
        return ["image"]
    if arch == "aarch64":
        return ["Image"]
    return ["vmlinux"]


class KernelPath:
    """A kernel image path split into directory, image name and version.

    For "/boot/vmlinuz-5.3.18-lp152.60-default" the version is
    "5.3.18-lp152.60-default"; for a plain "vmlinuz" it is empty.
    """

    def __init__(self, path: str, arch: str | None = None) -> None:
        self.directory = os.path.dirname(path)
        self.name = os.path.basename(path)
        self.version = ""

        for prefix in image_names(arch if arch is not None else platform.machine()):
            if not self.name.startswith(prefix):
                continue
            rest = self.name[len(prefix):]
            if not rest:
                self.name = prefix
                break
            if rest[0] == "-":
                self.version = rest[1:]
                self.name = prefix
                break

        log.debug(
            "directory=%s, name=%s, version=%s",
            self.directory, self.name, self.version,
        )

    def _with_version(self, base: str) -> str:
        path = os.path.join(self.directory, base)
        if self.version:
            path += "-" + self.version
        return path

    def is_kdump(self) -> bool:
        """Tell whether the path refers to a kdump kernel flavour."""
        return self.version.endswith("kdump")

    def config_path(self) -> str:
        """Return the path of the matching config file (may not exist)."""
        return self._with_version("config")

    def initrd_path(self, fadump: bool) -> str:
        """Return the path of the matching kdump initrd (may not exist)."""
        path = self._with_version("initrd")
        if not fadump and not self.is_kdump():
            path += "-kdump"
        return path