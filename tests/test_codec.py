import pytest

from rpcsim.errors import MalformedPayload, TransportError
from rpcsim.schema import codec


def draw(shapes_catalog):
    return shapes_catalog.lookup('acme.shapes.v1.Canvas.Draw')


def test_camel():

    assert codec.camel('page_size') == 'pageSize'
    assert codec.camel('has_more') == 'hasMore'
    assert codec.camel('status') == 'status'
    assert codec.camel('a_b_c') == 'aBC'


def test_defaults_populated(shapes_catalog):

    method = draw(shapes_catalog)
    value = codec.to_value(method.response_class())

    assert value == {
        'shapeKind': '',
        'serialNumber': '0',
        'color': 'COLOR_UNSPECIFIED',
        'areaMilli': '0',
    }


def test_long_and_enum_as_string(shapes_catalog):

    method = draw(shapes_catalog)
    response = method.response_class(serial_number=2**53 + 1, color=2, area_milli=2**64 - 1)
    value = codec.to_value(response)

    assert value['serialNumber'] == '9007199254740993'
    assert value['areaMilli'] == '18446744073709551615'
    assert value['color'] == 'GREEN'


def test_oneof_flattened(shapes_catalog):

    method = draw(shapes_catalog)
    request = method.request_class()
    request.circle.radius = 2.5
    value = codec.to_value(request)

    assert value['circle'] == {'radius': 2.5}
    assert value['shape'] == 'circle'
    assert 'square' not in value

    empty = codec.to_value(method.request_class())
    assert 'shape' not in empty


def test_nested_oneof(shapes_catalog):

    method = draw(shapes_catalog)
    response = method.response_class(shape_kind='square')
    response.echo.square.side = 3.0
    value = codec.to_value(response)

    assert value['echo']['shape'] == 'square'
    assert value['echo']['square'] == {'side': 3.0}
    assert value['echo']['color'] == 'COLOR_UNSPECIFIED'


def test_from_value(shapes_catalog):

    method = draw(shapes_catalog)

    value = {
        'shape': 'square',
        'square': {'side': 4},
        'serialNumber': '9007199254740993',
        'color': 'RED',
        'tags': ['a', 'b'],
        'when': '1970-01-01T00:00:10Z',
    }
    message = codec.from_value(value, method.request_class)

    assert message.WhichOneof('shape') == 'square'
    assert message.square.side == 4
    assert message.serial_number == 2**53 + 1
    assert message.color == 1
    assert list(message.tags) == ['a', 'b']
    assert message.when.seconds == 10

    # Declared snake_case field names are accepted as well.

    message = codec.from_value({'serial_number': 7}, method.request_class)
    assert message.serial_number == 7


def test_from_value_reverses_to_value(shapes_catalog):

    method = draw(shapes_catalog)
    response = method.response_class(shape_kind='circle', serial_number=12, color=1)
    response.echo.circle.radius = 1.5

    rebuilt = codec.from_value(codec.to_value(response), method.response_class)
    assert rebuilt == response


def test_from_value_empty(shapes_catalog):

    method = draw(shapes_catalog)

    assert codec.from_value(None, method.request_class) == method.request_class()
    assert codec.from_value({}, method.request_class) == method.request_class()


@pytest.mark.parametrize('value', [
    {'nope': 1},
    {'color': 'PURPLE'},
    {'serialNumber': 'twelve'},
    {'shape': 'triangle'},
    {'shape': {'x': 1}},
    {'shape': ['circle']},
    {'shape': 'circle', 'square': {'side': 1}},
    {'shape': 'square', 'circle': {'radius': 1}, 'square': {'side': 1}},
    [1, 2, 3],
    'string',
])
def test_malformed(shapes_catalog, value):

    method = draw(shapes_catalog)

    with pytest.raises(MalformedPayload):
        codec.from_value(value, method.request_class)

    with pytest.raises(MalformedPayload):
        method.encode(value)


def test_decode_garbage(shapes_catalog):

    method = draw(shapes_catalog)

    with pytest.raises(TransportError) as caught:
        method.decode(b'\xff\xff\xff')

    assert caught.value.code == 'DATA_LOSS'


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
