""" Runtime configuration for rpcsim. Everything here is driven by environment
    variables, with defaults suitable for running the simulator against a
    backend on the local host:

    ``RPCSIM_SCHEMA``
        Path to the protocol description file. Defaults to the
        ``proto/dnd5e.proto`` file shipped inside this package.

    ``RPCSIM_TARGET``
        The ``host:port`` of the endpoint. Defaults to ``localhost:50051``.

    ``RPCSIM_SLICE_MS``
        Upper bound, in milliseconds, on a single observation window of the
        connectivity probe. Defaults to 300.

    ``RPCSIM_TIMEOUT``
        Deadline, in seconds, for a single invocation. Defaults to 10.
"""

import os

default_target = 'localhost:50051'
default_slice_ms = 300
default_timeout = 10.0

package_directory = os.path.dirname(os.path.abspath(__file__))
bundled_schema = os.path.join(package_directory, 'proto', 'dnd5e.proto')


def schema_path(default=None):
    """ Return the location of the schema file that should be loaded. The
        location is determined once per process, from the ``RPCSIM_SCHEMA``
        environment variable if it is set, otherwise the bundled schema.
        Changes to the environment variable are ignored after the first call,
        unless a new *default* is pinned by passing it here.
    """

    if default is not None:
        if os.path.isabs(default) == False:
            raise ValueError('the default schema must be an absolute path')

        os.environ['RPCSIM_SCHEMA'] = default
        schema_path.found = default

    found = schema_path.found

    if found is not None:
        return found

    try:
        found = os.environ['RPCSIM_SCHEMA']
    except KeyError:
        found = bundled_schema
    else:
        found = os.path.abspath(found)

    schema_path.found = found
    return found

schema_path.found = None


def target():
    """ Return the default ``host:port`` target.
    """

    return os.environ.get('RPCSIM_TARGET', default_target)


def slice_ms():
    """ Return the upper bound on one probe observation window, in milliseconds.
        Values that cannot be parsed, or are not positive, fall back to the
        default.
    """

    return _positive('RPCSIM_SLICE_MS', default_slice_ms, int)


def timeout():
    """ Return the per-invocation deadline in seconds.
    """

    return _positive('RPCSIM_TIMEOUT', default_timeout, float)


def _positive(name, default, cast):

    try:
        value = cast(os.environ[name])
    except (KeyError, ValueError):
        return default

    if value <= 0:
        return default

    return value


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
