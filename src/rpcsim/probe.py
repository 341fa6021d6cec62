""" Deadline-bounded connectivity probing. :func:`wait_until_ready` answers
    one question: does a channel to the target reach the READY state before
    the deadline? A target that is not ready is an expected condition, and
    is reported as False rather than raised.
"""

import time

from . import config
from .log import get_logger
from .transport import Channel, ConnectivityState, Credentials

logger = get_logger(__name__)


def wait_until_ready(target, timeout_ms, channel=None, slice_ms=None, cancel=None,
                     credentials=Credentials.INSECURE):
    """ Return True if a channel to *target* reaches READY within *timeout_ms*
        milliseconds, False otherwise.

        If a *channel* is supplied it is used as-is and left open for the
        caller; otherwise a new channel is opened and closed again before
        returning, regardless of outcome.

        The wait proceeds in observation slices of at most *slice_ms*
        milliseconds (the ``RPCSIM_SLICE_MS`` default applies if None; any
        other value must be positive), never extending past the deadline. Each slice ends early on a state change
        notification; either way the state is read again and the loop repeats.
        *cancel* may be a :class:`threading.Event`; once set, the wait is
        abandoned at the next iteration and False is returned.
    """

    if slice_ms is None:
        slice_ms = config.slice_ms()
    elif slice_ms <= 0:
        raise ValueError('slice_ms must be positive, not %r' % (slice_ms))

    if channel is None:
        with Channel(target, credentials) as owned:
            return _wait(owned, timeout_ms, slice_ms, cancel)

    return _wait(channel, timeout_ms, slice_ms, cancel)


def _wait(channel, timeout_ms, slice_ms, cancel):

    begin = time.monotonic()
    deadline = begin + max(0, timeout_ms) / 1000.0
    interval = slice_ms / 1000.0

    while True:
        state = channel.state(try_to_connect=True)

        if state is ConnectivityState.READY:
            logger.debug('%s ready after %.3f sec', channel.target, time.monotonic() - begin)
            return True

        if state is ConnectivityState.SHUTDOWN:
            return False

        if cancel is not None and cancel.is_set():
            logger.debug('%s: probe cancelled', channel.target)
            return False

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break

        channel.wait_for_state_change(state, min(interval, remaining))

    logger.info('%s not ready within %d ms (last state %s)', channel.target, timeout_ms, state.name)
    return False


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
