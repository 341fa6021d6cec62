import threading
import time

import pytest

import rpcsim
import rpcsim.daemon

from rpcsim.transport import Channel, ConnectivityState

from conftest import free_port


class FakeChannel:
    """ Reports a scripted sequence of states, and records how long each
        observation window was allowed to last.
    """

    target = 'fake:0'

    def __init__(self, states, wake_early=False):
        self.states = list(states)
        self.windows = list()
        self.wake_early = wake_early

    def state(self, try_to_connect=False):
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]

    def wait_for_state_change(self, last, timeout):
        self.windows.append(timeout)
        if self.wake_early:
            return True
        time.sleep(timeout)
        return False


def test_never_ready_slices():

    channel = FakeChannel([ConnectivityState.CONNECTING, ConnectivityState.TRANSIENT_FAILURE])

    begin = time.monotonic()
    ready = rpcsim.wait_until_ready('fake:0', 1000, channel=channel, slice_ms=300)
    elapsed = time.monotonic() - begin

    assert ready == False
    assert elapsed >= 1.0
    assert elapsed <= 1.3

    # Each observation window is capped by the slice, and the last one by the
    # time remaining to the deadline.

    assert len(channel.windows) >= 4
    for window in channel.windows:
        assert window <= 0.3
    assert channel.windows[-1] < 0.3


def test_ready_immediately():

    channel = FakeChannel([ConnectivityState.READY])
    assert rpcsim.wait_until_ready('fake:0', 1000, channel=channel) == True
    assert channel.windows == []


def test_ready_after_notification():

    states = [ConnectivityState.IDLE, ConnectivityState.CONNECTING, ConnectivityState.READY]
    channel = FakeChannel(states, wake_early=True)

    assert rpcsim.wait_until_ready('fake:0', 1000, channel=channel) == True
    assert len(channel.windows) == 2


def test_shutdown_is_not_ready():

    channel = FakeChannel([ConnectivityState.SHUTDOWN])

    begin = time.monotonic()
    assert rpcsim.wait_until_ready('fake:0', 5000, channel=channel) == False
    assert time.monotonic() - begin < 1


def test_cancel():

    cancel = threading.Event()
    channel = FakeChannel([ConnectivityState.CONNECTING])

    timer = threading.Timer(0.2, cancel.set)
    timer.start()

    begin = time.monotonic()
    ready = rpcsim.wait_until_ready('fake:0', 10000, channel=channel, slice_ms=100, cancel=cancel)
    elapsed = time.monotonic() - begin

    assert ready == False
    assert elapsed < 1


@pytest.mark.parametrize('slice_ms', [0, -300])
def test_slice_must_be_positive(slice_ms):

    channel = FakeChannel([ConnectivityState.CONNECTING])

    with pytest.raises(ValueError):
        rpcsim.wait_until_ready('fake:0', 300, channel=channel, slice_ms=slice_ms)

    assert channel.windows == []


def test_unreachable(unused_target):

    begin = time.monotonic()
    ready = rpcsim.wait_until_ready(unused_target, 500, slice_ms=300)
    elapsed = time.monotonic() - begin

    assert ready == False
    assert elapsed >= 0.5
    assert elapsed <= 0.8


def test_unused_low_port():

    begin = time.monotonic()
    ready = rpcsim.wait_until_ready('localhost:1', 2000)
    elapsed = time.monotonic() - begin

    assert ready == False
    assert elapsed >= 2.0
    assert elapsed <= 2.3


def test_ready(daemon):

    begin = time.monotonic()
    assert rpcsim.wait_until_ready(daemon.target, 5000) == True
    assert time.monotonic() - begin < 5


def test_supplied_channel_left_open(daemon):

    with Channel(daemon.target) as channel:
        assert rpcsim.wait_until_ready(daemon.target, 5000, channel=channel) == True
        assert channel.closed == False
        assert channel.state() is ConnectivityState.READY

    assert channel.closed == True
    assert channel.state() is ConnectivityState.SHUTDOWN


def test_ready_mid_wait(catalog):
    """ The target starts listening after the probe has begun; the probe
        notices on a later re-check.
    """

    port = free_port()
    stub = rpcsim.daemon.dnd5e(catalog, 'localhost:%d' % (port))

    timer = threading.Timer(0.5, stub.start)
    timer.start()

    try:
        ready = rpcsim.wait_until_ready('localhost:%d' % (port), 15000)
    finally:
        timer.join()
        stub.stop()

    assert ready == True


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
