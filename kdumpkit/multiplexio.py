"""Waiting for events on several file descriptors at once."""

from __future__ import annotations

import select
from dataclasses import dataclass

from .errors import KSystemError

__all__ = ["PollFd", "MultiplexIO"]


@dataclass
class PollFd:
    """A monitored file descriptor; a negative fd is ignored."""

    fd: int
    events: int
    revents: int = 0


class MultiplexIO:
    """A set of file descriptors watched with poll(2)."""

    def __init__(self) -> None:
        self._fds: list[PollFd] = []
        self._active = 0

    def _check(self, idx: int) -> PollFd:
        if not 0 <= idx < len(self._fds):
            raise IndexError(f"poll index out of range: {idx}")
        return self._fds[idx]

    def add(self, fd: int, events: int) -> int:
        """Add a file descriptor to monitor; return its index."""
        if fd >= 0:
            self._active += 1
        self._fds.append(PollFd(fd, events))
        return len(self._fds) - 1

    def at(self, idx: int) -> PollFd:
        """Return the entry at ``idx``."""
        return self._check(idx)

    def deactivate(self, idx: int) -> None:
        """Stop monitoring the entry at ``idx``."""
        entry = self._check(idx)
        if entry.fd >= 0:
            self._active -= 1
        entry.fd = -1

    @property
    def active(self) -> int:
        """Number of file descriptors still monitored."""
        return self._active

    def monitor(self, timeout: int = -1) -> int:
        """Wait up to ``timeout`` ms (forever if negative); return the event count."""
        poller = select.poll()
        for entry in self._fds:
            entry.revents = 0
            if entry.fd >= 0:
                poller.register(entry.fd, entry.events)
        try:
            ready = poller.poll(None if timeout < 0 else timeout)
        except OSError as exc:
            raise KSystemError("poll() failed", exc.errno or 0) from exc

        by_fd = {}
        for fd, revents in ready:
            by_fd[fd] = by_fd.get(fd, 0) | revents
        count = 0
        for entry in self._fds:
            if entry.fd >= 0 and by_fd.get(entry.fd):
                entry.revents = by_fd[entry.fd]
                count += 1
        return count