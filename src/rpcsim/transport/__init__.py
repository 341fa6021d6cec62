"""Transport layer: owned channels and their connectivity states."""

from ..errors import TransportError

from .channel import (
    Channel,
    ConnectivityState,
    Credentials,
)
