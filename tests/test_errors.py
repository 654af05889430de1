import errno
import os
import socket

from kdumpkit.errors import KError, KGaiError, KSystemError, gai_message


def test_kerror_is_runtime_error_with_message():
    err = KError("something broke")
    assert isinstance(err, RuntimeError)
    assert str(err) == "something broke"


def test_system_error_appends_strerror():
    err = KSystemError("Opening of /boot/x failed.", errno.ENOENT)
    assert str(err) == f"Opening of /boot/x failed. ({os.strerror(errno.ENOENT)})"
    assert err.code == errno.ENOENT
    assert err.base_message == "Opening of /boot/x failed."


def test_system_error_is_kerror():
    err = KSystemError("poll() failed", errno.EBADF)
    assert isinstance(err, KError)
    assert str(err) == f"poll() failed ({os.strerror(errno.EBADF)})"


def test_gai_error_known_code():
    err = KGaiError("lookup failed", socket.EAI_NONAME)
    assert str(err) == "lookup failed (Name or service not known)"
    assert err.code == socket.EAI_NONAME


def test_gai_unknown_code():
    assert gai_message(123456) == "Unknown error"
    assert str(KGaiError("x", 123456)) == "x (Unknown error)"


def test_gai_error_is_kerror():
    err = KGaiError("resolve", socket.EAI_AGAIN)
    assert isinstance(err, KError)
    assert err.code == socket.EAI_AGAIN
    assert str(err).startswith("resolve (")