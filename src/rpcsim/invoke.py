"""Dynamic invocation of a unary method named by a fully-qualified string.

:func:`invoke` never raises for expected failures. Every outcome is an
:class:`InvocationResult`: either :class:`Success` carrying the decoded
response, or :class:`Failure` whose ``kind`` names the error class. Name
resolution and payload encoding happen before a channel is opened, so those
failures involve no network activity. No retries are attempted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from . import config
from .errors import MalformedPayload, ResolutionError, RpcsimError, TransportError
from .log import get_logger
from .schema import Catalog, load
from .transport import Channel, Credentials

logger = get_logger(__name__)

MALFORMED_METHOD_NAME = "MalformedMethodName"
SERVICE_NOT_FOUND = "ServiceNotFound"
METHOD_NOT_FOUND = "MethodNotFound"
MALFORMED_PAYLOAD = "MalformedPayload"
TRANSPORT_ERROR = "TransportError"


@dataclass(frozen=True)
class Success:
    payload: Dict[str, Any]

    ok = True


@dataclass(frozen=True)
class Failure:
    kind: str
    message: str
    transport_code: Optional[str] = None
    available: Tuple[str, ...] = field(default=())

    ok = False

    @classmethod
    def from_error(cls, error: RpcsimError) -> "Failure":
        return cls(
            kind=type(error).__name__,
            message=str(error),
            transport_code=getattr(error, "code", None),
            available=tuple(getattr(error, "available", ())),
        )


InvocationResult = Union[Success, Failure]

_catalog: Optional[Catalog] = None


def default_catalog() -> Catalog:
    """The process-wide catalog, loaded from the configured schema on first use."""

    global _catalog
    if _catalog is None:
        _catalog = load(config.schema_path())
    return _catalog


def invoke(
    target: str,
    fully_qualified_method: str,
    payload: Any = None,
    credentials: Credentials = Credentials.INSECURE,
    catalog: Optional[Catalog] = None,
    timeout: Optional[float] = None,
) -> InvocationResult:
    """ Call *fully_qualified_method* on *target* with the JSON-like *payload*.

        *timeout* bounds the single exchange, in seconds; the ``RPCSIM_TIMEOUT``
        default applies if None. *catalog* defaults to :func:`default_catalog`.
    """

    if catalog is None:
        catalog = default_catalog()
    if timeout is None:
        timeout = config.timeout()

    try:
        method = catalog.lookup(fully_qualified_method)
        if not method.unary:
            raise MalformedPayload(f"{method.path} is a streaming method; only unary calls are supported")
        request = method.encode(payload)
    except (ResolutionError, MalformedPayload) as e:
        logger.debug("rejected %r before dispatch: %s", fully_qualified_method, e)
        return Failure.from_error(e)

    try:
        with Channel(target, credentials) as channel:
            logger.debug("calling %s on %s", method.path, target)
            response = channel.call(method.path, request, timeout=timeout)
            return Success(method.decode(response))
    except TransportError as e:
        logger.debug("%s on %s failed: %s %s", method.path, target, e.code, e)
        return Failure.from_error(e)
