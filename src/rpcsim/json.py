''' Wrapper module around :mod:`orjson`, providing the equivalent of
    :func:`json.loads` and :func:`json.dumps`. Both operate on bytes.
'''

import orjson


def dumps(value, indent=False):
    """ Serialize *value* to JSON bytes. If *indent* is True the output is
        pretty-printed with two-space indentation, suitable for a terminal.
    """

    if indent:
        return orjson.dumps(value, option=orjson.OPT_INDENT_2)

    return orjson.dumps(value)


loads = orjson.loads
JSONDecodeError = orjson.JSONDecodeError

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
