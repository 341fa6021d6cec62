""" A stub gRPC server driven by a :class:`rpcsim.schema.Catalog`. Every unary
    method declared in the catalog is served; methods with a registered
    Python handler return whatever that handler returns, the rest answer
    UNIMPLEMENTED. Handlers receive and return JSON-like values under the
    same normalization rules the invoker applies, so no compiled bindings
    are involved on either side.

    This is the endpoint the test harness runs in-process, and what the
    ``rpcsim-stub`` command serves for local experimentation with the
    simulator.
"""

import argparse
import concurrent.futures
import signal
import sys
import threading
import time

import grpc

from . import config
from .errors import MalformedPayload
from .log import configure, get_logger
from .schema import codec, load

logger = get_logger(__name__)


class HandlerError(Exception):
    """ Raised by a handler to answer with a specific gRPC status *code*
        (a :class:`grpc.StatusCode` member or its name) and message.
    """

    def __init__(self, code, message):
        if isinstance(code, str):
            code = grpc.StatusCode[code]
        Exception.__init__(self, message)
        self.code = code



class Daemon:
    """ Serve the methods of *catalog* on *address*. A port of 0 requests an
        ephemeral port; the bound port is available as :attr:`port` once
        :func:`start` returns.

        :ivar handlers: Registered handler callables, keyed by the
            fully-qualified method name.
    """

    worker_count = 8

    def __init__(self, catalog, address='localhost:0'):

        self.catalog = catalog
        self.address = address
        self.handlers = dict()
        self.port = None
        self.server = None


    def __enter__(self):
        self.start()
        return self


    def __exit__(self, *exc):
        self.stop()


    @property
    def target(self):
        """ The ``host:port`` a client should connect to.
        """

        host = self.address.rsplit(':', 1)[0]
        if host in ('', '0.0.0.0', '[::]'):
            host = 'localhost'
        return '%s:%d' % (host, self.port)


    def handler(self, method, function=None):
        """ Register *function* as the handler for the fully-qualified
            *method*. May also be used as a decorator. The method must exist
            in the catalog; a :class:`rpcsim.errors.ResolutionError` is raised
            otherwise.
        """

        self.catalog.lookup(method)

        def register(function):
            self.handlers[method] = function
            return function

        if function is None:
            return register

        return register(function)


    def start(self):

        workers = concurrent.futures.ThreadPoolExecutor(max_workers=self.worker_count)
        self.server = grpc.server(workers)

        generic = list()

        for service in self.catalog.enumerate():
            behaviors = dict()
            for method in service.methods.values():
                if method.unary == False:
                    continue
                behaviors[method.name] = self._rpc_handler(method)

            if behaviors:
                name = service.package + '.' + service.service if service.package else service.service
                generic.append(grpc.method_handlers_generic_handler(name, behaviors))

        self.server.add_generic_rpc_handlers(tuple(generic))
        self.port = self.server.add_insecure_port(self.address)

        if self.port == 0:
            raise RuntimeError('unable to bind ' + self.address)

        self.server.start()
        logger.info('serving %d service(s) on %s', len(generic), self.target)


    def stop(self, grace=None):

        if self.server is None:
            return

        self.server.stop(grace).wait()
        self.server = None
        logger.info('stopped serving on port %s', self.port)


    def wait(self, timeout=None):
        if self.server is not None:
            return self.server.wait_for_termination(timeout)


    def _rpc_handler(self, method):

        fully_qualified = '%s.%s.%s' % (method.package, method.service, method.name)
        response_class = method.response_class

        def behavior(request, context):
            function = self.handlers.get(fully_qualified)

            if function is None:
                context.abort(grpc.StatusCode.UNIMPLEMENTED, 'method not implemented: ' + fully_qualified)

            try:
                result = function(codec.to_value(request))
                return codec.from_value(result, response_class)
            except HandlerError as e:
                context.abort(e.code, str(e))
            except (ValueError, MalformedPayload) as e:
                context.abort(grpc.StatusCode.INVALID_ARGUMENT, str(e))
            except Exception as e:
                logger.exception('handler for %s failed', fully_qualified)
                context.abort(grpc.StatusCode.INTERNAL, '%s failed: %s' % (method.name, e))

        return grpc.unary_unary_rpc_method_handler(
            behavior,
            request_deserializer=method.request_class.FromString,
            response_serializer=response_class.SerializeToString,
        )


# end of class Daemon



endpoints = (
    'ability-scores', 'alignments', 'backgrounds', 'classes', 'conditions',
    'damage-types', 'equipment', 'equipment-categories', 'feats', 'features',
    'languages', 'magic-items', 'magic-schools', 'monsters', 'proficiencies',
    'races', 'rule-sections', 'rules', 'skills', 'spells', 'subclasses',
    'subraces', 'traits', 'weapon-properties',
)


def health_check(request):
    return {
        'status': 'SERVING',
        'message': 'Server is healthy',
        'timestamp': str(int(time.time() * 1000)),
    }


def get_endpoints(request):
    return {'endpoints': list(endpoints), 'totalCount': len(endpoints)}


def dnd5e(catalog, address='localhost:0'):
    """ Return a :class:`Daemon` for the bundled ``dnd5e`` schema, with canned
        HealthCheck and GetEndpoints handlers.
    """

    daemon = Daemon(catalog, address)
    daemon.handler('dnd5e.Dnd5eService.HealthCheck', health_check)
    daemon.handler('dnd5e.Dnd5eService.GetEndpoints', get_endpoints)
    return daemon


def main(argv=None):
    """ Entry point for the ``rpcsim-stub`` command.
    """

    parser = argparse.ArgumentParser(prog='rpcsim-stub', description='Stub gRPC server for the rpcsim simulator.')
    parser.add_argument('--address', default='0.0.0.0:50051', help='listen address (default: %(default)s)')
    parser.add_argument('--schema', '-s', default=None, help='schema file (default: $RPCSIM_SCHEMA or the bundled schema)')
    parser.add_argument('--verbose', '-v', action='store_true', help='debug logging')
    arguments = parser.parse_args(argv)

    configure('DEBUG' if arguments.verbose else 'INFO')

    catalog = load(arguments.schema or config.schema_path())
    daemon = dnd5e(catalog, arguments.address)

    stopped = threading.Event()

    def shutdown(signum, frame):
        stopped.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    with daemon:
        print('Serving %s on %s' % (catalog.source, daemon.target), file=sys.stderr)
        while stopped.is_set() == False:
            stopped.wait(1)

    return 0


if __name__ == '__main__':
    sys.exit(main())


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
