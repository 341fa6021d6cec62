""" Build a :class:`rpcsim.schema.catalog.Catalog` from a protocol description
    at runtime, without compiled bindings. Two source formats are accepted:

    * a ``.proto`` source file, compiled in-process by the ``protoc`` bundled
      with :mod:`grpc_tools` into a descriptor set (imports included, with the
      protobuf well-known types on the include path);
    * a pre-compiled ``FileDescriptorSet`` (``.pb``, ``.protoset``, ``.desc``).

    Each call to :func:`load` uses its own descriptor pool, so loading the
    same file repeatedly is safe and produces identical catalogs.
"""

import importlib.resources
import os
import tempfile

from google.protobuf import descriptor_pb2
from google.protobuf import descriptor_pool
from google.protobuf import message_factory
from google.protobuf.message import DecodeError
from grpc_tools import protoc

from ..errors import SchemaLoadError
from ..log import get_logger
from . import codec
from .catalog import Catalog, MethodDescriptor, ServiceDescriptor

logger = get_logger(__name__)

descriptor_set_suffixes = ('.pb', '.protoset', '.desc', '.bin')


def load(schema_path, include=()):
    """ Read and parse the schema at *schema_path*, returning a new
        :class:`Catalog`. Additional import directories for ``.proto`` sources
        may be supplied via *include*. Raises :class:`SchemaLoadError` if the
        file is missing, unreadable, or not a valid schema.
    """

    schema_path = os.path.abspath(schema_path)

    if os.path.isfile(schema_path) == False:
        raise SchemaLoadError('schema not found: ' + schema_path)

    if schema_path.endswith(descriptor_set_suffixes):
        try:
            with open(schema_path, 'rb') as handle:
                raw = handle.read()
        except OSError as e:
            raise SchemaLoadError('cannot read schema %s: %s' % (schema_path, e)) from e
    else:
        raw = compile_proto(schema_path, include)

    descriptor_set = descriptor_pb2.FileDescriptorSet()

    try:
        descriptor_set.ParseFromString(raw)
    except DecodeError as e:
        raise SchemaLoadError('invalid descriptor set %s: %s' % (schema_path, e)) from e

    if len(descriptor_set.file) == 0:
        raise SchemaLoadError('no protocol definitions in ' + schema_path)

    catalog = build(descriptor_set, source=schema_path)
    logger.debug('loaded %d service(s) from %s', len(catalog), schema_path)
    return catalog


def compile_proto(proto_path, include=()):
    """ Run the bundled ``protoc`` over *proto_path* and return the serialized
        ``FileDescriptorSet``, dependencies first.
    """

    well_known = str(importlib.resources.files('grpc_tools') / '_proto')
    directory, filename = os.path.split(proto_path)

    with tempfile.TemporaryDirectory(prefix='rpcsim-') as scratch:
        output = os.path.join(scratch, 'schema.protoset')

        arguments = ['grpc_tools.protoc']
        arguments.append('--proto_path=' + directory)
        for extra in include:
            arguments.append('--proto_path=' + os.path.abspath(extra))
        arguments.append('--proto_path=' + well_known)
        arguments.append('--include_imports')
        arguments.append('--descriptor_set_out=' + output)
        arguments.append(filename)

        status = protoc.main(arguments)

        if status != 0 or os.path.isfile(output) == False:
            raise SchemaLoadError('failed to parse schema %s (protoc exit status %d)' % (proto_path, status))

        with open(output, 'rb') as handle:
            return handle.read()


def build(descriptor_set, source=None):
    """ Populate a private descriptor pool from *descriptor_set* and convert
        every declared service into catalog entries, in declaration order.
    """

    pool = descriptor_pool.DescriptorPool()

    for file_proto in descriptor_set.file:
        try:
            pool.AddSerializedFile(file_proto.SerializeToString())
        except (TypeError, KeyError, ValueError) as e:
            raise SchemaLoadError('cannot register %s: %s' % (file_proto.name, e)) from e

    services = list()

    for file_proto in descriptor_set.file:
        package = file_proto.package

        for service_proto in file_proto.service:
            if package:
                full_name = package + '.' + service_proto.name
            else:
                full_name = service_proto.name

            service = pool.FindServiceByName(full_name)
            methods = dict()

            for method in service.methods:
                methods[method.name] = _method(package, service.name, method)

            services.append(ServiceDescriptor(package, service.name, methods))

    return Catalog(services, source=source)


def _method(package, service, method):

    request_class = message_factory.GetMessageClass(method.input_type)
    response_class = message_factory.GetMessageClass(method.output_type)

    return MethodDescriptor(
        package=package,
        service=service,
        name=method.name,
        request_shape=method.input_type,
        response_shape=method.output_type,
        request_class=request_class,
        response_class=response_class,
        encode=codec.encoder(request_class),
        decode=codec.decoder(response_class),
        client_streaming=getattr(method, 'client_streaming', False),
        server_streaming=getattr(method, 'server_streaming', False),
    )


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
