"""Conversion between protobuf messages and JSON-like values.

The same normalization applies in both directions, for every value that
crosses the boundary:

- field names are lowerCamelCase (snake_case is also accepted on input)
- 64-bit integers are decimal strings
- enum values are their symbolic names
- fields absent from the wire are populated with their declared defaults
- members of a oneof are flattened into the parent; an additional key named
  after the oneof holds the name of the populated member
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Type

from google.protobuf import json_format
from google.protobuf.descriptor import Descriptor, FieldDescriptor
from google.protobuf.message import DecodeError, Message

from ..errors import MalformedPayload, TransportError


_WELL_KNOWN_PREFIX = "google/protobuf/"


def camel(name: str) -> str:
    """Return the lowerCamelCase JSON name for a snake_case identifier."""

    out = []
    upper = False
    for char in name:
        if char == "_":
            upper = True
        elif upper:
            out.append(char.upper())
            upper = False
        else:
            out.append(char)
    return "".join(out)


def _real_oneofs(descriptor: Descriptor):
    # proto3 'optional' fields are wrapped in a synthetic oneof named after
    # the field with a leading underscore; those are not user-visible.
    for oneof in descriptor.oneofs:
        fields = oneof.fields
        if len(fields) == 1 and oneof.name == "_" + fields[0].name:
            continue
        yield oneof


def _nested(field: FieldDescriptor) -> bool:
    if field.type != FieldDescriptor.TYPE_MESSAGE:
        return False
    message_type = field.message_type
    if message_type.GetOptions().map_entry:
        return False
    return not message_type.file.name.startswith(_WELL_KNOWN_PREFIX)


def _is_repeated(field: FieldDescriptor) -> bool:
    # FieldDescriptor.label is deprecated in newer protobuf releases.
    is_repeated = getattr(field, "is_repeated", None)
    if is_repeated is not None:
        return bool(is_repeated)
    return field.label == FieldDescriptor.LABEL_REPEATED


def _annotate(message: Message, value: Dict[str, Any]) -> None:
    descriptor = message.DESCRIPTOR

    for oneof in _real_oneofs(descriptor):
        which = message.WhichOneof(oneof.name)
        if which is not None:
            value[camel(oneof.name)] = camel(which)

    for field in descriptor.fields:
        if not _nested(field):
            continue
        key = field.json_name
        if key not in value:
            continue
        if _is_repeated(field):
            for child, child_value in zip(getattr(message, field.name), value[key]):
                _annotate(child, child_value)
        elif message.HasField(field.name):
            _annotate(getattr(message, field.name), value[key])


def _strip(descriptor: Descriptor, value: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of *value* without the virtual oneof keys."""

    value = dict(value)
    by_name = {}
    for field in descriptor.fields:
        by_name[field.name] = field
        by_name[field.json_name] = field

    for oneof in _real_oneofs(descriptor):
        members = dict()
        for field in oneof.fields:
            members[field.name] = field
            members[field.json_name] = field
        present = set(members[key] for key in value if key in members)

        for key in (oneof.name, camel(oneof.name)):
            if key in by_name:
                continue
            named = value.get(key)
            if not isinstance(named, str) or named not in members:
                # Left in place; ParseDict rejects it as an unknown field.
                continue
            if present and present != {members[named]}:
                raise MalformedPayload(
                    f"{descriptor.full_name}: {key!r} names {named!r}, "
                    f"but the populated member is not {named!r}"
                )
            del value[key]

    for key, child in list(value.items()):
        field = by_name.get(key)
        if field is None or not _nested(field):
            continue
        if isinstance(child, dict):
            value[key] = _strip(field.message_type, child)
        elif isinstance(child, list):
            value[key] = [
                _strip(field.message_type, c) if isinstance(c, dict) else c
                for c in child
            ]

    return value


def to_value(message: Message) -> Dict[str, Any]:
    """Convert a decoded *message* into a normalized JSON-like dict."""

    value = json_format.MessageToDict(
        message,
        always_print_fields_with_no_presence=True,
        preserving_proto_field_name=False,
        use_integers_for_enums=False,
    )
    _annotate(message, value)
    return value


def from_value(value: Optional[Any], message_class: Type[Message]) -> Message:
    """Build a *message_class* instance from a JSON-like *value*.

    Raises :class:`MalformedPayload` when the value does not fit the shape.
    """

    if value is None:
        value = {}
    if not isinstance(value, dict):
        raise MalformedPayload(
            f"payload for {message_class.DESCRIPTOR.full_name} must be a JSON object, "
            f"not {type(value).__name__}"
        )

    message = message_class()
    try:
        json_format.ParseDict(_strip(message_class.DESCRIPTOR, value), message)
    except json_format.ParseError as e:
        raise MalformedPayload(f"{message_class.DESCRIPTOR.full_name}: {e}") from e
    return message


def encoder(message_class: Type[Message]):
    """Return a function mapping a JSON-like value to request bytes."""

    def encode(value: Optional[Any]) -> bytes:
        return from_value(value, message_class).SerializeToString()

    return encode


def decoder(message_class: Type[Message]):
    """Return a function mapping response bytes to a JSON-like value."""

    def decode(data: bytes) -> Dict[str, Any]:
        try:
            message = message_class.FromString(data)
        except DecodeError as e:
            raise TransportError(
                f"undecodable {message_class.DESCRIPTOR.full_name}: {e}", code="DATA_LOSS"
            ) from e
        return to_value(message)

    return decode
