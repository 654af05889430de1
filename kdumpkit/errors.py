"""Exception types used throughout the package."""

from __future__ import annotations

import os
import socket

__all__ = ["KError", "KSystemError", "KGaiError", "gai_message"]


class KError(RuntimeError):
    """Standard error carrying a human readable message."""


class KSystemError(KError):
    """Error caused by a failing system call, described by an errno value."""

    def __init__(self, message: str, errno: int) -> None:
        self.code = errno
        self.base_message = message
        super().__init__(f"{message} ({os.strerror(errno)})")


_GAI_MESSAGES = {
    "EAI_ADDRFAMILY": "Address family for hostname not supported",
    "EAI_AGAIN": "Temporary failure in name resolution",
    "EAI_BADFLAGS": "Bad value for ai_flags",
    "EAI_FAIL": "Non-recoverable failure in name resolution",
    "EAI_FAMILY": "ai_family not supported",
    "EAI_MEMORY": "Memory allocation failure",
    "EAI_NODATA": "No address associated with hostname",
    "EAI_NONAME": "Name or service not known",
    "EAI_SERVICE": "Servname not supported for ai_socktype",
    "EAI_SOCKTYPE": "ai_socktype not supported",
    "EAI_SYSTEM": "System error",
    "EAI_OVERFLOW": "Argument buffer overflow",
}


def _gai_table() -> dict[int, str]:
    table: dict[int, str] = {}
    for name, text in _GAI_MESSAGES.items():
        code = getattr(socket, name, None)
        if code is not None and code not in table:
            table[code] = text
    return table


_GAI_TABLE = _gai_table()


def gai_message(code: int) -> str:
    """Return the description of an address-resolution error code."""
    return _GAI_TABLE.get(code, "Unknown error")


class KGaiError(KError):
    """Error reported by address resolution (getaddrinfo)."""

    def __init__(self, message: str, code: int) -> None:
        self.code = code
        self.base_message = message
        super().__init__(f"{message} ({gai_message(code)})")