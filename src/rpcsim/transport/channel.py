"""Owned gRPC channel with an observable connectivity state.

A :class:`Channel` is bound to one target and belongs to the single probe or
invocation that opened it. It is a context manager; leaving the ``with``
block closes it on every exit path. Channels still open at interpreter exit
are closed by an ``atexit`` hook.
"""

from __future__ import annotations

import atexit
import enum
import threading
import weakref
from typing import Optional, Sequence, Tuple

import grpc

from ..errors import TransportError
from ..log import get_logger

logger = get_logger(__name__)

_open_channels: "weakref.WeakSet[Channel]" = weakref.WeakSet()


class ConnectivityState(enum.Enum):
    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    READY = "READY"
    TRANSIENT_FAILURE = "TRANSIENT_FAILURE"
    SHUTDOWN = "SHUTDOWN"

    @classmethod
    def from_grpc(cls, connectivity: grpc.ChannelConnectivity) -> "ConnectivityState":
        return cls[connectivity.name]


class Credentials(enum.Enum):
    """Channel credential mode. INSECURE is plaintext; SECURE is TLS with system roots."""

    INSECURE = "insecure"
    SECURE = "secure"


class Channel:
    """A logical connection handle to one ``host:port`` target."""

    def __init__(
        self,
        target: str,
        credentials: Credentials = Credentials.INSECURE,
        options: Optional[Sequence[Tuple[str, object]]] = None,
    ):
        self.target = target
        self.credentials = Credentials(credentials)

        if self.credentials is Credentials.SECURE:
            self._channel = grpc.secure_channel(target, grpc.ssl_channel_credentials(), options=options)
        else:
            self._channel = grpc.insecure_channel(target, options=options)

        self._state: Optional[ConnectivityState] = None
        self._condition = threading.Condition()
        self._subscribed = False
        self.closed = False

        _open_channels.add(self)
        logger.debug("opened %s channel to %s", self.credentials.value, target)

    def __enter__(self) -> "Channel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Channel({self.target!r}, state={self._state})"

    # --- connectivity ---
    def _on_change(self, connectivity: grpc.ChannelConnectivity) -> None:
        # Invoked from the gRPC polling thread.
        state = ConnectivityState.from_grpc(connectivity)
        with self._condition:
            if self._state is not state:
                logger.debug("%s: %s -> %s", self.target, self._state, state)
            self._state = state
            self._condition.notify_all()

    def _subscribe(self, try_to_connect: bool) -> None:
        if self._subscribed:
            self._channel.unsubscribe(self._on_change)
        self._channel.subscribe(self._on_change, try_to_connect=try_to_connect)
        self._subscribed = True

    def state(self, try_to_connect: bool = False) -> ConnectivityState:
        """ Return the most recently observed connectivity state. With
            *try_to_connect*, an idle channel is asked to start connecting.
        """

        if self.closed:
            return ConnectivityState.SHUTDOWN

        with self._condition:
            current = self._state

        if not self._subscribed or (try_to_connect and current in (None, ConnectivityState.IDLE)):
            self._subscribe(try_to_connect)

        with self._condition:
            if self._state is None:
                return ConnectivityState.IDLE
            return self._state

    def wait_for_state_change(self, last: ConnectivityState, timeout: float) -> bool:
        """ Block for at most *timeout* seconds until the observed state
            differs from *last*. Returns True if a change was observed.
        """

        if not self._subscribed:
            self._subscribe(False)

        def changed():
            return self.closed or (self._state is not None and self._state is not last)

        with self._condition:
            return self._condition.wait_for(changed, timeout=max(0.0, timeout))

    # --- exchange ---
    def call(self, path: str, request: bytes, timeout: Optional[float] = None) -> bytes:
        """ Perform one unary exchange of already-serialized bytes. Raises
            :class:`TransportError` carrying the gRPC status name on failure.
        """

        if self.closed:
            raise TransportError(f"channel to {self.target} is closed", code="CANCELLED")

        multicallable = self._channel.unary_unary(path)

        try:
            return multicallable(request, timeout=timeout)
        except grpc.RpcError as e:
            code = e.code() if hasattr(e, "code") else None
            details = e.details() if hasattr(e, "details") else None
            name = code.name if code is not None else "UNKNOWN"
            raise TransportError(details or str(e), code=name) from e

    # --- lifetime ---
    def close(self) -> None:
        if self.closed:
            return

        with self._condition:
            self.closed = True
            self._state = ConnectivityState.SHUTDOWN
            self._condition.notify_all()

        if self._subscribed:
            self._channel.unsubscribe(self._on_change)
            self._subscribed = False

        self._channel.close()
        _open_channels.discard(self)
        logger.debug("closed channel to %s", self.target)


def _cleanup() -> None:
    for channel in list(_open_channels):
        channel.close()


atexit.register(_cleanup)
