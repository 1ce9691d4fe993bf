""" ZeroMQ implementation of the request/response channel. A client issues
    requests via a DEALER socket; a server answers them via a ROUTER socket.
    Every request is acknowledged immediately, which is how a client knows
    whether a server is online to respond at all, and is answered later
    with a single REP.
"""

import concurrent.futures
import logging
import queue
import socket
import sys
import threading
import traceback
import zmq

from ...errors import UNKNOWN
from ...protocol import fields
from ...protocol.message import Message, Payload, Request
from ..base import PendingRequest, Transport, TransportPortError, TransportTimeout
from .framing import from_request_frames, to_request_frames


logger = logging.getLogger(__name__)

minimum_port = 10079
maximum_port = 13679
zmq_context = zmq.Context.instance()


class Client(Transport):
    """ Issue requests via a ZeroMQ DEALER socket and receive responses.
        Maintains a persistent connection to a single server; the *address*
        and *port* number must be specified. The *timeout* is how long
        :func:`send` waits for the server to acknowledge a request.

        Only the background thread touches the DEALER socket. Callers queue
        outbound requests and wake the background thread with an inproc
        signal; the signal socket is shared, hence the lock around it.
    """

    timeout = 0.1

    def __init__(self, address, port, timeout=None):

        port = int(port)
        self.port = port
        self.address = address

        if timeout is not None:
            self.timeout = timeout

        server = 'tcp://%s:%d' % (address, port)
        identity = 'request.Client.%d' % (id(self))

        self.socket = zmq_context.socket(zmq.DEALER)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.identity = identity.encode()
        self.socket.connect(server)

        internal = 'inproc://request.Client.signal.%d' % (id(self))
        self.signal_rx = zmq_context.socket(zmq.PAIR)
        self.signal_rx.bind(internal)
        self.signal_tx = zmq_context.socket(zmq.PAIR)
        self.signal_tx.connect(internal)
        self.signal_lock = threading.Lock()

        self.outbox = queue.SimpleQueue()
        self.pending = dict()

        self.shutdown = False
        self.pending_thread = threading.Thread(target=self.run)
        self.pending_thread.daemon = True
        self.pending_thread.start()


    @property
    def is_open(self):
        return not self.shutdown


    def _signal(self):

        with self.signal_lock:
            self.signal_tx.send(b'')


    def _rep_incoming(self, parts):
        """ A client only receives two types of messages from the remote side:
            an ACK, or a REP. The response is handed back to the relevant
            :class:`PendingRequest` for any further handling by the original
            caller.
        """

        try:
            response = from_request_frames(parts)
        except ValueError:
            logger.warning("discarding malformed response from %s:%d", self.address, self.port)
            return

        try:
            pending = self.pending[response.msg_id]
        except KeyError:
            # The caller gave up on this request; no further processing.
            return

        if response.msg_type == fields.ACK:
            pending._complete_ack()
            return

        pending._complete(response)
        del self.pending[response.msg_id]


    def _req_outgoing(self):

        self.signal_rx.recv(flags=zmq.NOBLOCK)

        while True:
            try:
                pending = self.outbox.get(block=False)
            except queue.Empty:
                break

            self.pending[pending.id] = pending
            self.socket.send_multipart(to_request_frames(pending.req))


    def run(self):

        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self.signal_rx, zmq.POLLIN)

        while self.shutdown == False:
            sockets = poller.poll(10000)
            for active, flag in sockets:
                if self.signal_rx == active:
                    self._req_outgoing()
                elif self.socket == active:
                    parts = self.socket.recv_multipart()
                    self._rep_incoming(parts)

        self.socket.close()
        self.signal_rx.close()


    def send(self, request):
        """ Queue the *request* for transmission, and block until the server
            acknowledges it. Returns the :class:`PendingRequest` the caller
            can wait on for the full response.
        """

        if self.shutdown:
            raise TransportTimeout('client for %s:%d is closed' % (self.address, self.port))

        pending = PendingRequest(request)
        self.outbox.put(pending)
        self._signal()

        ack = pending.wait_ack(self.timeout)

        if ack == False:
            self.pending.pop(pending.id, None)
            error = '%s @ %s:%d: no ACK in %.2f sec'
            error = error % (request.msg_type, self.address, self.port, self.timeout)
            raise TransportTimeout(error)

        return pending


    def cancel(self, pending):
        self.pending.pop(pending.id, None)


    def close(self):

        if self.shutdown:
            return

        self.shutdown = True
        self._signal()
        self.pending_thread.join(timeout=1)

        with self.signal_lock:
            self.signal_tx.close()


# end of class Client



class Server:
    """ Receive requests via a ZeroMQ ROUTER socket, and respond to them. The
        default behavior is to listen for incoming requests on every
        interface, on the first available port in the default range. The
        *avoid* set enumerates port numbers that should not be automatically
        assigned; this is ignored if a fixed *port* is specified.

        Requests are handled by a pool of worker threads; responses are
        queued and sent by the background thread, which is the only thread
        that touches the ROUTER socket.

        :ivar hostname: The hostname on which this server can be contacted.
        :ivar port: The port on which this server is listening for connections.
    """

    worker_count = 8

    def __init__(self, hostname=None, port=None, avoid=None):

        # The hostname is set and stored, but not used, as we are going to
        # listen on every available interface.

        if hostname is None:
            hostname = socket.getfqdn()

        if avoid is None:
            avoid = set()

        self.hostname = hostname
        self.socket = zmq_context.socket(zmq.ROUTER)
        self.socket.setsockopt(zmq.LINGER, 0)

        if port is None:
            self.port = self._bind_any(avoid)
        else:
            self.port = int(port)
            try:
                self.socket.bind('tcp://*:%d' % (self.port))
            except zmq.error.ZMQError as e:
                self.socket.close()
                raise TransportPortError('port already in use: %d' % (self.port)) from e

        internal = 'inproc://request.Server.signal.%d' % (id(self))
        self.signal_rx = zmq_context.socket(zmq.PAIR)
        self.signal_rx.bind(internal)
        self.signal_tx = zmq_context.socket(zmq.PAIR)
        self.signal_tx.connect(internal)
        self.signal_lock = threading.Lock()

        self.responses = queue.SimpleQueue()

        self.shutdown = False
        self.workers = concurrent.futures.ThreadPoolExecutor(max_workers=self.worker_count)
        self.thread = threading.Thread(target=self.run)
        self.thread.daemon = True
        self.thread.start()


    def _bind_any(self, avoid):

        for trial in range(minimum_port, maximum_port + 1):
            if trial in avoid:
                continue

            try:
                self.socket.bind('tcp://*:%d' % (trial))
            except zmq.error.ZMQError:
                # Assume this port is in use.
                continue
            else:
                return trial

        self.socket.close()
        error = 'no ports available in range %d:%d' % (minimum_port, maximum_port)
        raise TransportPortError(error)


    def req_ack(self, request):
        """ Acknowledge the incoming request. The client is expecting an
            immediate ACK for all request types, including errors.
        """

        ack = Message(fields.ACK, request.target, msg_id=request.msg_id, tag=request.tag)
        ack.meta['zmq_prefix'] = request.meta.get('zmq_prefix', ())
        self.send(ack)


    def req_handler(self, request):
        """ The default request handler is for debug purposes only, and is
            effectively a no-op. A real server subclasses :class:`Server`
            and overrides this method; it is expected to call
            :func:`req_ack`, and to return a
            :class:`doctx.protocol.message.Payload` that will be packaged
            into a REP. No response is issued if it returns None.
        """

        self.req_ack(request)
        return Payload(None)


    def send(self, response):
        """ Queue the *response* for transmission by the background thread.
        """

        self.responses.put(response)

        with self.signal_lock:
            self.signal_tx.send(b'')


    def _rep_outgoing(self):

        self.signal_rx.recv(flags=zmq.NOBLOCK)

        while True:
            try:
                response = self.responses.get(block=False)
            except queue.Empty:
                break

            self.socket.send_multipart(to_request_frames(response, include_prefix=True))


    def _req_incoming(self, parts):
        """ All inbound requests are filtered through this method. Error
            handling is managed here; if :func:`req_handler` raises an
            exception it is packaged up and returned to the client as an
            error, using the exception's *code* attribute if it has one.
        """

        request = from_request_frames(parts)

        if not isinstance(request, Request):
            # Clients never send ACK or REP; nothing to answer.
            return

        payload = None
        error = None

        try:
            payload = self.req_handler(request)
        except Exception:
            e_class, e_instance, e_traceback = sys.exc_info()
            error = dict()
            error['type'] = e_class.__name__
            error['code'] = getattr(e_instance, 'code', UNKNOWN)
            error['text'] = str(e_instance)
            error['debug'] = traceback.format_exc()

            # The handler may have failed before acknowledging the request;
            # a second ACK is ignored by the client.

            self.req_ack(request)

        if payload is None and error is None:
            # The handler has arranged for a response of its own.
            return

        if payload is None:
            payload = Payload(None)

        if error is not None:
            payload.error = error

        response = Message(fields.REP, request.target, payload, request.msg_id, request.tag)
        response.meta['zmq_prefix'] = request.meta.get('zmq_prefix', ())
        self.send(response)


    def _worker_main(self, parts):

        try:
            self._req_incoming(parts)
        except Exception:
            logger.exception("unhandled error processing request")


    def run(self):

        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self.signal_rx, zmq.POLLIN)

        while self.shutdown == False:
            sockets = poller.poll(1000)
            for active, flag in sockets:
                if self.signal_rx == active:
                    self._rep_outgoing()
                elif self.socket == active:
                    parts = self.socket.recv_multipart()
                    self.workers.submit(self._worker_main, parts)

        self.socket.close()
        self.signal_rx.close()


    def close(self):

        if self.shutdown:
            return

        self.shutdown = True

        with self.signal_lock:
            self.signal_tx.send(b'')

        self.thread.join(timeout=2)
        self.workers.shutdown(wait=False)

        with self.signal_lock:
            self.signal_tx.close()


# end of class Server



client_cache = dict()
client_lock = threading.Lock()


def client(address, port, timeout=None):
    """ Factory function for a :class:`Client` instance. Established
        connections are re-used; a closed :class:`Client` is replaced. The
        acknowledgement *timeout* is part of what makes a connection
        distinct.
    """

    key = (address, int(port), timeout)

    with client_lock:
        try:
            instance = client_cache[key]
        except KeyError:
            instance = None

        if instance is None or not instance.is_open:
            instance = Client(address, port, timeout)
            client_cache[key] = instance

    return instance


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
