import os
import pytest
import socket

import rpcsim
import rpcsim.daemon


here = os.path.dirname(os.path.abspath(__file__))
shapes_proto = os.path.join(here, 'protos', 'shapes.proto')


@pytest.fixture(scope="session")
def catalog():
    return rpcsim.load(rpcsim.config.bundled_schema)


@pytest.fixture(scope="session")
def shapes_catalog():
    return rpcsim.load(shapes_proto)


def get_list(request):
    """ Paginate over a handful of canned items, the way the backend
        paginates results from its data source.
    """

    endpoint = request['endpoint']

    if endpoint not in rpcsim.daemon.endpoints:
        raise ValueError('Invalid endpoint: ' + endpoint)

    items = list()
    for number in range(5):
        index = '%s-%d' % (endpoint, number)
        items.append({
            'index': index,
            'name': index.title(),
            'url': '/api/%s/%s' % (endpoint, index),
            'endpoint': endpoint,
        })

    page = request['page']
    page_size = request['pageSize'] or len(items)
    start = page * page_size
    end = min(start + page_size, len(items))

    response = dict()
    response['endpoint'] = endpoint
    response['items'] = items[start:end]
    response['totalCount'] = len(items)
    response['page'] = page
    response['pageSize'] = page_size
    response['hasMore'] = end < len(items)
    return response


def get_item(request):
    raise rpcsim.daemon.HandlerError('NOT_FOUND', 'no such item: ' + request['index'])


@pytest.fixture(scope="session")
def daemon(catalog):

    stub = rpcsim.daemon.dnd5e(catalog)
    stub.handler('dnd5e.Dnd5eService.GetList', get_list)
    stub.handler('dnd5e.Dnd5eService.GetItem', get_item)

    stub.start()
    yield stub
    stub.stop()


def free_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('localhost', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def unused_target():
    """ A ``host:port`` with nothing listening on it.
    """

    return 'localhost:%d' % (free_port())


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
