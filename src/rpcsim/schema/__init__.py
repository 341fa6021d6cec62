""" Runtime schema handling: loading a protocol description, the read-only
    service catalog built from it, and the value codec shared by everything
    that crosses the wire.
"""

from . import codec
from . import catalog
from . import loader

from .catalog import Catalog, MethodDescriptor, ServiceDescriptor, split
from .loader import load

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
