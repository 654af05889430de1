"""Extraction of the configuration embedded in a kernel image (IKCONFIG)."""

from __future__ import annotations

import logging
import zlib

from .errors import KError

__all__ = [
    "MAGIC_START",
    "MAGIC_END",
    "GZIP_HEADER_LEN",
    "inflate_ikconfig",
    "extract_ikconfig",
    "extract_from_bzimage",
]

log = logging.getLogger(__name__)

MAGIC_START = b"IKCFG_ST"
MAGIC_END = b"IKCFG_ED"
GZIP_HEADER_LEN = 10

_GZIP_MAGIC = b"\x1f\x8b"
_BZIMAGE_GZIP_MAGIC = b"\x1f\x8b\x08\x00"


def inflate_ikconfig(data: bytes) -> str:
    """Inflate a raw deflate stream holding the kernel configuration.

    The text ends at the first NUL byte, if there is one.
    """
    inflater = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        raw = inflater.decompress(bytes(data))
        raw += inflater.flush()
    except zlib.error as exc:
        raise KError("inflate() failed") from exc
    if not inflater.eof:
        raise KError("inflate() failed")
    raw = raw.split(b"\0", 1)[0]
    return raw.decode("utf-8", errors="replace")


def _gunzip_stream(data: bytes) -> bytes:
    """Decompress one gzip member, ignoring anything that follows it."""
    inflater = zlib.decompressobj(16 + zlib.MAX_WBITS)
    try:
        out = inflater.decompress(data)
        out += inflater.flush()
    except zlib.error as exc:
        raise KError("Decompressing the kernel image failed.") from exc
    return out


def _config_between_markers(payload: bytes) -> str:
    begin = payload.find(MAGIC_START)
    end = payload.find(MAGIC_END, begin + len(MAGIC_START)) if begin >= 0 else -1
    if begin < 0 or end < 0:
        raise KError("Cannot read configuration from kernel image.")

    # skip the start marker and the gzip header of the embedded blob
    begin += len(MAGIC_START) + GZIP_HEADER_LEN
    if end < begin:
        raise KError("Cannot read IKCONFIG.")
    log.debug("IKCONFIG found at %d..%d", begin, end)
    return inflate_ikconfig(payload[begin:end])


def extract_ikconfig(data: bytes) -> str:
    """Return the configuration embedded in an ELF (optionally gzipped) image."""
    data = bytes(data)
    payload = _gunzip_stream(data) if data.startswith(_GZIP_MAGIC) else data
    return _config_between_markers(payload)


def extract_from_bzimage(data: bytes) -> str:
    """Return the configuration embedded in an x86 bzImage."""
    data = bytes(data)
    start = data.find(_BZIMAGE_GZIP_MAGIC)
    if start <= 0:
        raise KError("Magic 0x1f 0x8b 0x08 0x0 not found.")
    return _config_between_markers(_gunzip_stream(data[start:]))