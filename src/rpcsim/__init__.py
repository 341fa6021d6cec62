""" Python implementation of rpcsim, a dynamic gRPC client. A protocol schema
    is loaded at runtime into a read-only catalog; methods are then resolved
    by their fully-qualified name and invoked with JSON-like payloads, with
    an optional deadline-bounded readiness probe beforehand.
"""

# Utility components.

from . import json
from . import config
from . import errors

# Submodules used by multiple other components.

from . import schema
from . import transport

# Primary public-facing interfaces.

from .schema import Catalog, load
from .probe import wait_until_ready
from . import invoke
from .invoke import Failure, Success
from .transport import Channel, ConnectivityState, Credentials

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
