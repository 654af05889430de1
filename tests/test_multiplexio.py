import os
import select

import pytest

from kdumpkit.multiplexio import MultiplexIO


@pytest.fixture
def pipe():
    r, w = os.pipe()
    yield r, w
    os.close(r)
    os.close(w)


def test_add_returns_sequential_indices(pipe):
    r, w = pipe
    mux = MultiplexIO()
    assert mux.add(r, select.POLLIN) == 0
    assert mux.add(w, select.POLLOUT) == 1
    assert mux.active == 2


def test_negative_fd_is_not_active():
    mux = MultiplexIO()
    assert mux.add(-1, select.POLLIN) == 0
    assert mux.active == 0


def test_at_returns_entry(pipe):
    r, _ = pipe
    mux = MultiplexIO()
    idx = mux.add(r, select.POLLIN)
    entry = mux.at(idx)
    assert (entry.fd, entry.events) == (r, select.POLLIN)


def test_at_out_of_range():
    mux = MultiplexIO()
    with pytest.raises(IndexError):
        mux.at(0)


def test_monitor_no_data(pipe):
    r, _ = pipe
    mux = MultiplexIO()
    idx = mux.add(r, select.POLLIN)
    assert mux.monitor(0) == 0
    assert mux.at(idx).revents == 0


def test_monitor_reports_readable(pipe):
    r, w = pipe
    mux = MultiplexIO()
    idx = mux.add(r, select.POLLIN)
    os.write(w, b"x")
    assert mux.monitor(1000) == 1
    assert mux.at(idx).revents & select.POLLIN


def test_deactivate_ignores_fd(pipe):
    r, w = pipe
    mux = MultiplexIO()
    idx = mux.add(r, select.POLLIN)
    os.write(w, b"x")
    mux.deactivate(idx)
    assert mux.active == 0
    assert mux.at(idx).fd == -1
    assert mux.monitor(0) == 0


def test_deactivate_twice_keeps_count(pipe):
    r, w = pipe
    mux = MultiplexIO()
    mux.add(r, select.POLLIN)
    mux.add(w, select.POLLOUT)
    mux.deactivate(0)
    mux.deactivate(0)
    assert mux.active == 1


def test_monitor_counts_several(pipe):
    r, w = pipe
    mux = MultiplexIO()
    mux.add(r, select.POLLIN)
    mux.add(w, select.POLLOUT)
    os.write(w, b"data")
    assert mux.monitor(1000) == 2