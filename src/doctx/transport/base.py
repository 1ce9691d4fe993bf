""" The contract every client-side transport follows, and the exceptions a
    transport raises. This lives outside :mod:`doctx.protocol` so that the
    protocol itself knows nothing about sockets.
"""

import abc
import threading

from ..errors import DocTxError


class TransportError(DocTxError):
    """Base class for all transport-layer errors."""


class TransportTimeout(TransportError):
    """A request did not receive a timely response."""


class TransportResponseTimeout(TransportTimeout):
    """ The server acknowledged a request, but its response did not arrive
        in time. The request may or may not have been applied.
    """


class TransportPortError(TransportError):
    """No suitable port could be bound or connected."""



class PendingRequest:
    """ Track a single outstanding :class:`doctx.protocol.message.Request`.
        The transport calls :func:`_complete_ack` when the server
        acknowledges the request, and :func:`_complete` when the response
        arrives; the caller blocks in :func:`wait_ack` and :func:`wait`.
    """

    def __init__(self, req):

        self.req = req
        self.response = None
        self.ack_event = threading.Event()
        self.rep_event = threading.Event()


    @property
    def id(self):
        return self.req.msg_id


    def wait_ack(self, timeout):
        return self.ack_event.wait(timeout)


    def wait(self, timeout=60):
        """ Block until the response arrives, or until *timeout* seconds
            have elapsed. Returns the response
            :class:`doctx.protocol.message.Message`, or None on timeout.
        """

        self.rep_event.wait(timeout)
        return self.response


    def _complete_ack(self):
        self.ack_event.set()


    def _complete(self, response):

        # A response implies an acknowledgement, even if the ACK itself
        # never arrived.

        self.response = response
        self.ack_event.set()
        self.rep_event.set()


# end of class PendingRequest



class Transport(abc.ABC):
    """ Minimal contract for a client-side request transport. A transport
        moves a :class:`doctx.protocol.message.Request` to the server and
        hands back a :class:`PendingRequest` for the response.
    """

    @abc.abstractmethod
    def send(self, request):
        """ Send the *request*, and block until the server acknowledges it.
            Raises :class:`TransportTimeout` if no acknowledgement arrives in
            time. The caller waits on the returned :class:`PendingRequest`
            for the response itself.
        """


    def cancel(self, pending):
        """ Stop tracking *pending*; the caller has given up waiting for its
            response. A response that arrives later is discarded.
        """


    @abc.abstractmethod
    def close(self):
        """ Tear down the underlying connection.
        """


    @property
    def is_open(self):
        return False


# end of class Transport


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
