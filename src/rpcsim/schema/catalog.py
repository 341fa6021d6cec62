""" The :class:`Catalog` is the read-only registry of packages, services and
    methods built by :func:`rpcsim.schema.loader.load`. Every method is keyed
    by its ``(package, service, method)`` tuple; resolution is a direct lookup,
    and absence of a key is the only failure path.

    Fully-qualified method names use a fixed arity convention: the last
    segment is the method, the one before it is the service, and everything
    preceding those two is the package. ``a.b.Service.Method`` therefore
    resolves to package ``a.b``.
"""

from __future__ import annotations

import types
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Type

from google.protobuf.descriptor import Descriptor
from google.protobuf.message import Message

from ..errors import MalformedMethodName, MethodNotFound, ServiceNotFound


@dataclass(frozen=True)
class MethodDescriptor:
    """ One unary method. The shapes are protobuf message descriptors; the
        *encode* and *decode* functions apply the shared normalization rules,
        see :mod:`rpcsim.schema.codec`.
    """

    package: str
    service: str
    name: str
    request_shape: Descriptor = field(repr=False)
    response_shape: Descriptor = field(repr=False)
    request_class: Type[Message] = field(repr=False)
    response_class: Type[Message] = field(repr=False)
    encode: Callable[[Any], bytes] = field(repr=False)
    decode: Callable[[bytes], Dict[str, Any]] = field(repr=False)
    client_streaming: bool = False
    server_streaming: bool = False

    @property
    def service_name(self) -> str:
        if self.package:
            return f"{self.package}.{self.service}"
        return self.service

    @property
    def path(self) -> str:
        """The HTTP/2 request path, ``/package.Service/Method``."""
        return f"/{self.service_name}/{self.name}"

    @property
    def unary(self) -> bool:
        return not (self.client_streaming or self.server_streaming)


@dataclass(frozen=True)
class ServiceDescriptor:
    package: str
    service: str
    methods: Mapping[str, MethodDescriptor]

    def __post_init__(self):
        # Freeze the mapping; declaration order is preserved.
        object.__setattr__(self, "methods", types.MappingProxyType(dict(self.methods)))

    @property
    def method_names(self) -> Tuple[str, ...]:
        return tuple(self.methods)


def split(fully_qualified: str) -> Tuple[str, str, str]:
    """ Split a fully-qualified method name into (package, service, method).
        Raises :class:`MalformedMethodName` for fewer than three segments,
        or if any segment is empty.
    """

    parts = (fully_qualified or "").split(".")
    if len(parts) < 3:
        raise MalformedMethodName(
            f"method must be in the form package.Service.Method: {fully_qualified!r}"
        )
    if "" in parts:
        raise MalformedMethodName(f"empty segment in method name: {fully_qualified!r}")

    return ".".join(parts[:-2]), parts[-2], parts[-1]


class Catalog:
    """ Immutable lookup structure over a loaded schema. Safe to share across
        threads without synchronization; nothing mutates it after
        construction.
    """

    def __init__(self, services: Iterable[ServiceDescriptor], source: Optional[str] = None):

        self.source = source
        ordered: List[ServiceDescriptor] = []
        packages: Dict[str, Dict[str, ServiceDescriptor]] = {}
        registry: Dict[Tuple[str, str, str], MethodDescriptor] = {}

        for service in services:
            by_service = packages.setdefault(service.package, {})
            if service.service in by_service:
                raise ValueError(f"duplicate service: {service.package}.{service.service}")
            by_service[service.service] = service
            ordered.append(service)
            for name, method in service.methods.items():
                registry[(service.package, service.service, name)] = method

        self._services = tuple(ordered)
        self._packages = types.MappingProxyType(
            {name: types.MappingProxyType(svcs) for name, svcs in packages.items()}
        )
        self._registry = types.MappingProxyType(registry)

    def __len__(self) -> int:
        return len(self._services)

    def __iter__(self):
        return iter(self._services)

    def __contains__(self, key) -> bool:
        return key in self._registry

    @property
    def packages(self) -> Mapping[str, Mapping[str, ServiceDescriptor]]:
        return self._packages

    def enumerate(self) -> Tuple[ServiceDescriptor, ...]:
        """All services in declaration order."""
        return self._services

    def resolve(self, package: str, service: str) -> ServiceDescriptor:
        try:
            return self._packages[package][service]
        except KeyError:
            raise ServiceNotFound(f"Service not found: {package}.{service}") from None

    @staticmethod
    def method_exists(descriptor: ServiceDescriptor, method: str) -> bool:
        return method in descriptor.methods

    def lookup(self, fully_qualified: str) -> MethodDescriptor:
        """Resolve ``package.Service.Method`` to its :class:`MethodDescriptor`."""

        package, service, method = split(fully_qualified)
        key = (package, service, method)
        found = self._registry.get(key)
        if found is not None:
            return found

        descriptor = self.resolve(package, service)
        raise MethodNotFound(
            f"Method not found on service {package}.{service}: {method}",
            available=descriptor.method_names,
        )

    def listing(self) -> List[Dict[str, Any]]:
        """ A JSON-ready summary: one ``{package, service, methods}`` object
            per service, in declaration order.
        """

        out = []
        for service in self._services:
            out.append({
                "package": service.package,
                "service": service.service,
                "methods": list(service.method_names),
            })
        return out


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
