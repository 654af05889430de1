"""Inspection of kernel image files: type, relocatability and configuration."""

from __future__ import annotations

import logging
import os
import platform
import struct
import zlib
from enum import Enum

from .errors import KError, KSystemError
from .ikconfig import extract_from_bzimage, extract_ikconfig
from .kconfig import Kconfig, Tristate, ValueType
from .kernelpath import KernelPath

__all__ = [
    "KernelType",
    "KernelTool",
    "machine_arch",
    "is_x86",
    "arch_from_elf_machine",
    "S390_HEADER",
    "X86_HEADER_MAGIC",
    "AARCH64_MAGIC",
    "EM_386",
    "EM_PPC",
    "EM_PPC64",
    "EM_S390",
    "EM_IA_64",
    "EM_X86_64",
    "EM_AARCH64",
]

log = logging.getLogger(__name__)

# x86 boot header of a bzImage
X86_HEADER_OFF_START = 0x202
X86_HEADER_OFF_VERSION = 0x206
X86_HEADER_OFF_RELOCATABLE = 0x234
X86_HEADER_MAGIC = b"HdrS"
X86_HEADER_RELOCATABLE_VER = 0x0205

# S/390 VM boot image; bytes 4..7 hold the varying iplstart address
S390_HEADER_OFF_IPLSTART = 4
S390_HEADER_SIZE_IPLSTART = 4
S390_HEADER = bytes(
    [0x00, 0x08, 0x00, 0x00, 0x80, 0x00, 0x00, 0x00,
     0x02, 0x00, 0x00, 0x18, 0x60, 0x00, 0x00, 0x50,
     0x02, 0x00, 0x00, 0x68, 0x60, 0x00, 0x00, 0x50]
    + [0x40] * 56
    + [0x02, 0x00, 0x00, 0xF0, 0x60, 0x00, 0x00, 0x50]
    + [b for second in range(0x140, 0x6E0, 0x50)
       for b in (0x02, 0x00, second >> 8, second & 0xFF, 0x60, 0x00, 0x00, 0x50)]
    + [0x02, 0x00, 0x06, 0xE0, 0x20, 0x00, 0x00, 0x50]
)

# arm64 Image header: 64 bytes, magic "ARM\x64" at offset 56
AARCH64_HEADER_SIZE = 64
AARCH64_MAGIC_OFFSET = 56
AARCH64_MAGIC = b"ARM\x64"

_ELF_MAGIC = b"\x7fELF"
_GZIP_MAGIC = b"\x1f\x8b"
EI_NIDENT = 16
EI_CLASS = 4
EI_DATA = 5
ELFCLASS32 = 1
ELFCLASS64 = 2
ELFDATA2LSB = 1
ELFDATA2MSB = 2
_E_MACHINE_OFFSET = 18
_EHDR_SIZE = {ELFCLASS32: 52, ELFCLASS64: 64}

EM_386 = 3
EM_PPC = 20
EM_PPC64 = 21
EM_S390 = 22
EM_IA_64 = 50
EM_X86_64 = 62
EM_AARCH64 = 183

_ELF_ARCH = {
    EM_386: "i386",
    EM_PPC: "ppc",
    EM_PPC64: "ppc64",
    EM_S390: "s390",
    EM_IA_64: "ia64",
    EM_X86_64: "x86_64",
    EM_AARCH64: "aarch64",
}

_X86_ARCHES = frozenset({"i386", "i486", "i586", "i686", "x86_64"})


class KernelType(Enum):
    """Kind of kernel image file."""

    ELF = "ELF"
    ELF_GZ = "ELF gzip"
    X86 = "x86"
    S390 = "S390"
    AARCH64 = "Aarch64"
    NONE = "none"


def machine_arch() -> str:
    """Return the machine architecture of the running system."""
    return platform.machine()


def is_x86(arch: str) -> bool:
    """Tell whether ``arch`` names a 32 or 64 bit x86 architecture."""
    return arch in _X86_ARCHES


def arch_from_elf_machine(machine: int) -> str:
    """Map an ELF ``e_machine`` value to an architecture name."""
    return _ELF_ARCH.get(machine, "unknown")


def _is_arch_always_relocatable(arch: str) -> bool:
    return arch in ("ia64", "aarch64")


def _has_config_relocatable(arch: str) -> bool:
    return is_x86(arch) or arch in ("ppc64", "ppc")


class KernelTool:
    """An open kernel image file with queries about its contents."""

    def __init__(self, image: str, arch: str | None = None) -> None:
        log.debug("KernelTool(%s)", image)
        self.path = image
        self.arch = arch if arch is not None else machine_arch()
        try:
            self._file = open(image, "rb")
        except OSError as exc:
            raise KSystemError(f"Opening of {image} failed.", exc.errno or 0) from exc

    def __enter__(self) -> KernelTool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __str__(self) -> str:
        return f"[KernelTool] {self.path}"

    def close(self) -> None:
        """Close the underlying file."""
        self._file.close()

    # -- raw access -------------------------------------------------------

    def _read_at(self, offset: int, size: int) -> bytes:
        try:
            self._file.seek(offset)
            return self._file.read(size)
        except OSError as exc:
            raise KSystemError(f"Reading {self.path} failed", exc.errno or 0) from exc

    def _read_all(self) -> bytes:
        return self._read_at(0, -1)

    def _is_gzip(self) -> bool:
        return self._read_at(0, 2) == _GZIP_MAGIC

    def _head(self, size: int) -> bytes:
        """Return the first ``size`` bytes, decompressing a gzip file."""
        if not self._is_gzip():
            return self._read_at(0, size)
        inflater = zlib.decompressobj(16 + zlib.MAX_WBITS)
        out = b""
        self._file.seek(0)
        while len(out) < size and not inflater.eof:
            chunk = self._file.read(8192)
            if not chunk:
                break
            try:
                out += inflater.decompress(chunk, size - len(out))
                while inflater.unconsumed_tail and len(out) < size:
                    out += inflater.decompress(inflater.unconsumed_tail, size - len(out))
            except zlib.error:
                break
        return out[:size]

    # -- type detection ---------------------------------------------------

    def _is_elf(self) -> bool:
        return self._head(len(_ELF_MAGIC)) == _ELF_MAGIC

    def _is_x86_kernel(self) -> bool:
        magic = self._read_at(X86_HEADER_OFF_START, 4)
        if len(magic) != 4:
            raise KError("KernelTool: read of magic start failed")
        return magic == X86_HEADER_MAGIC

    def _is_s390_kernel(self) -> bool:
        head = self._read_at(0, len(S390_HEADER))
        if len(head) < len(S390_HEADER):
            return False
        start = S390_HEADER_OFF_IPLSTART
        stop = start + S390_HEADER_SIZE_IPLSTART
        head = head[:start] + S390_HEADER[start:stop] + head[stop:]
        return head == S390_HEADER

    def _is_aarch64_kernel(self) -> bool:
        head = self._read_at(0, AARCH64_HEADER_SIZE)
        if len(head) < AARCH64_HEADER_SIZE:
            return False
        magic = head[AARCH64_MAGIC_OFFSET:AARCH64_MAGIC_OFFSET + 4]
        return magic == AARCH64_MAGIC

    def kernel_type(self) -> KernelType:
        """Return the kind of the kernel image."""
        if self._is_elf():
            return KernelType.ELF_GZ if self._is_gzip() else KernelType.ELF
        if is_x86(self.arch):
            return KernelType.X86 if self._is_x86_kernel() else KernelType.NONE
        if self.arch == "s390x":
            return KernelType.S390 if self._is_s390_kernel() else KernelType.NONE
        if self.arch == "aarch64":
            return KernelType.AARCH64 if self._is_aarch64_kernel() else KernelType.NONE
        return KernelType.NONE

    # -- relocatability ---------------------------------------------------

    def is_relocatable(self) -> bool:
        """Tell whether the kernel can be loaded at any address."""
        kind = self.kernel_type()
        if kind in (KernelType.ELF, KernelType.ELF_GZ):
            return self._elf_is_relocatable()
        if kind is KernelType.X86:
            return self._x86_is_relocatable()
        if kind in (KernelType.S390, KernelType.AARCH64):
            return True
        raise KError("Invalid kernel type.")

    def _x86_is_relocatable(self) -> bool:
        if not self._is_x86_kernel():
            raise KError("This is not a kernel image")

        version = self._read_at(X86_HEADER_OFF_VERSION, 2)
        if len(version) != 2:
            raise KError("KernelTool: read of version failed")
        if struct.unpack("<H", version)[0] < X86_HEADER_RELOCATABLE_VER:
            return False

        flag = self._read_at(X86_HEADER_OFF_RELOCATABLE, 1)
        if len(flag) != 1:
            raise KError("KernelTool: read of relocatable bit failed")
        return flag[0] != 0

    def _elf_machine(self) -> int:
        ident = self._head(EI_NIDENT)
        if len(ident) != EI_NIDENT:
            raise KError("check_elf_file: Failed to read")

        header_size = _EHDR_SIZE.get(ident[EI_CLASS])
        if header_size is None:
            raise KError("elfIsRelocatable(): Invalid ELF class")
        header = self._head(header_size)
        if len(header) != header_size:
            raise KError("Couldn't read ELF header")

        encoding = ident[EI_DATA]
        if encoding == ELFDATA2LSB:
            fmt = "<H"
        elif encoding == ELFDATA2MSB:
            fmt = ">H"
        else:
            raise KError("elfIsRelocatable(): Invalid ELF data encoding")
        return struct.unpack_from(fmt, header, _E_MACHINE_OFFSET)[0]

    def _elf_is_relocatable(self) -> bool:
        arch = arch_from_elf_machine(self._elf_machine())
        log.debug("Detected arch %s", arch)
        return _is_arch_always_relocatable(arch) or (
            _has_config_relocatable(arch) and self._is_config_relocatable()
        )

    def _is_config_relocatable(self) -> bool:
        try:
            value = self.retrieve_kernel_config().get("CONFIG_RELOCATABLE")
        except KError as exc:
            log.debug("%s (assume non-relocatable)", exc)
            return False
        return value.type is ValueType.TRISTATE and value.tristate is Tristate.ON

    # -- configuration ----------------------------------------------------

    def extract_kernel_config(self) -> str:
        """Return the configuration embedded in the image (CONFIG_IKCONFIG)."""
        kind = self.kernel_type()
        if kind in (KernelType.ELF, KernelType.ELF_GZ,
                    KernelType.S390, KernelType.AARCH64):
            try:
                return extract_ikconfig(self._read_all())
            except KError as exc:
                raise KError(f"Cannot read configuration from {self.path}.") from exc
        if kind is KernelType.X86:
            return extract_from_bzimage(self._read_all())
        raise KError(f"Invalid kernel image: {self.path}")

    def retrieve_kernel_config(self) -> Kconfig:
        """Return the parsed configuration, preferring a config file on disk."""
        kconfig = Kconfig()
        kpath = KernelPath(self.path, self.arch)
        if kpath.version:
            config = kpath.config_path()
            log.debug("Trying %s for config", config)
            if os.path.exists(config):
                kconfig.read_from_config(config)
                return kconfig
        kconfig.read_from_kernel(self)
        return kconfig