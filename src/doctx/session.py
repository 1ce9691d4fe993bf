""" Implementation of the top-level :func:`connect` method. This is intended
    to be the principal entry point for applications talking to a database.
"""

import atexit
import threading

from . import config
from . import transport
from .client import Client


_cache = dict()
_cache_lock = threading.Lock()


def _clear(database=None):
    """ Clear cached :class:`Client` instances, either all of them or just
        those for the specified *database*. The cleared instances are
        returned, largely to allow for inspection; they are not closed.
    """

    cleared = list()

    with _cache_lock:
        for key in list(_cache.keys()):
            if database is None or key[0] == database:
                cleared.append(_cache.pop(key))

    return cleared



def connect(database, address=None, port=None):
    """ Return a :class:`Client` for *database*. The server *address* and
        *port* default to the values in the database's configuration.

        If the caller always uses :func:`connect` they will always receive
        the same :class:`Client` instance for the same arguments, and with
        it the same underlying connection.
    """

    key = (database, address, port)

    try:
        return _cache[key]
    except KeyError:
        pass

    configuration = config.get(database)

    if address is None:
        address = configuration['address']

    if port is None:
        port = configuration['port']

    with _cache_lock:
        try:
            client = _cache[key]
        except KeyError:
            channel = transport.request.client(address, port, configuration['ack_timeout'])
            client = Client(database, channel, configuration)
            _cache[key] = client

    return client



def shutdown():
    for client in _clear():
        client.close()


atexit.register(shutdown)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
