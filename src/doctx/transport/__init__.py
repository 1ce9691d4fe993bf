""" Transport layer implementations. The backend is chosen once, at import
    time, from the DOCTX_TRANSPORT environment variable; ZeroMQ is the only
    backend implemented.
"""

import os

from .base import (
    PendingRequest,
    Transport,
    TransportError,
    TransportTimeout,
    TransportResponseTimeout,
    TransportPortError,
)

backend = os.environ.get('DOCTX_TRANSPORT', 'zmq')

if backend == 'zmq':
    from .zmq import request
else:
    raise ImportError('unknown DOCTX_TRANSPORT backend: ' + repr(backend))

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
