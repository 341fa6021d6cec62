"""Exception taxonomy shared by the schema, transport and invocation layers.

Resolution errors are raised before any network activity. A probe that does
not observe READY is not an error; :func:`rpcsim.probe.wait_until_ready`
returns False instead.
"""

from __future__ import annotations

from typing import Optional, Sequence


class RpcsimError(Exception):
    """Base class for all rpcsim errors."""


class SchemaLoadError(RpcsimError):
    """The schema source is missing, unreadable, or not a valid schema."""


class ResolutionError(RpcsimError):
    """A fully-qualified method name could not be resolved in the catalog."""


class MalformedMethodName(ResolutionError):
    """Fewer than three dot-separated segments."""


class ServiceNotFound(ResolutionError):
    """No service matches the requested package and service name."""


class MethodNotFound(ResolutionError):
    """The service exists but does not declare the requested method."""

    def __init__(self, message: str, available: Sequence[str] = ()):
        super().__init__(message)
        self.available = tuple(available)


class MalformedPayload(RpcsimError):
    """The JSON payload does not fit the request shape of the method."""


class TransportError(RpcsimError):
    """Network, connection, or remote-reported failure during an exchange.

    *code* is the transport status name, for example ``UNAVAILABLE``.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code
