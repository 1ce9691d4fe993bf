""" The :class:`Client` is the database context shared by every reference,
    batch, and transaction: it knows the database's fully qualified name,
    holds the transport used to reach the server, and turns a method name
    plus a request dictionary into a round trip.
"""

import logging
import time

from . import config
from . import transport
from .document_group import DocumentGroup
from .errors import ArgumentError, RpcError, transient_codes
from .protocol.message import Payload, Request
from .reference import CollectionReference, DocumentReference
from .runner import run_transaction
from .transaction import Transaction
from .transport.base import TransportError, TransportResponseTimeout
from .write_batch import WriteBatch, _validate_reference


logger = logging.getLogger(__name__)


class Client:
    """ A client for the database named *database*. Requests go through
        *transport*, which defaults to a ZeroMQ connection to the address
        and port in the configuration. The *configuration* defaults to
        :func:`doctx.config.get` for the database name.
    """

    def __init__(self, database, transport=None, configuration=None):

        if not isinstance(database, str) or database == '' or '/' in database:
            raise ArgumentError('invalid database name: ' + repr(database))

        if configuration is None:
            configuration = config.get(database)

        self.database = database
        self.config = configuration
        self.formatted_name = 'projects/%s/databases/%s' % (configuration['project'], database)

        if transport is None:
            transport = _default_transport(configuration)

        self.transport = transport


    def __repr__(self):
        return 'Client(%r)' % (self.formatted_name,)


    def close(self):
        self.transport.close()


    # Factories.

    def batch(self):
        return WriteBatch(self)


    def collection(self, path):
        return CollectionReference(self, path)


    def doc(self, path):
        return DocumentReference(self, path)

    document = doc


    def document_from_name(self, name):
        """ Return a :class:`DocumentReference` for the fully qualified
            document *name* used on the wire.
        """

        prefix = self.formatted_name + '/documents/'

        if not name.startswith(prefix):
            raise RpcError('document %r is not in database %r' % (name, self.formatted_name))

        return DocumentReference(self, name[len(prefix):])


    def transaction(self, retry=None):
        return Transaction(self, retry)


    # Non-transactional reads, and the transaction entry point.

    def get_all(self, *documents):
        """ Read the referenced documents outside of any transaction;
            returns one :class:`DocumentSnapshot` per reference, in order.
        """

        for position,reference in enumerate(documents):
            _validate_reference(reference, position)

        return DocumentGroup(self, documents).get()


    def run_transaction(self, update_function, max_attempts=None):
        """ Run *update_function* in a transaction; see
            :func:`doctx.runner.run_transaction`.
        """

        return run_transaction(self, update_function, max_attempts)


    # Requests.

    def request(self, method, request, request_tag=None, allow_retries=False):
        """ Send the *request* dictionary as a *method* call, and return the
            value of the response. Errors reported by the server are raised
            as :class:`RpcError`; transport failures propagate as
            :class:`TransportError`. If *allow_retries* is True, transport
            failures and transient server errors are retried, up to the
            configured number of times.
        """

        if allow_retries:
            attempts = 1 + self.config['request_retries']
        else:
            attempts = 1

        attempt = 0

        while True:
            attempt += 1

            try:
                return self._request(method, request, request_tag)
            except TransportError as e:
                error = e
            except RpcError as e:
                if e.code not in transient_codes:
                    raise
                error = e

            if attempt >= attempts:
                raise error

            logger.warning("[%s] %s failed (attempt %d of %d), retrying: %s",
                           request_tag, method, attempt, attempts, error)
            time.sleep(self.config['retry_delay'])


    def _request(self, method, request, request_tag):

        message = Request(method, self.formatted_name, Payload(request), tag=request_tag)
        logger.debug("[%s] sending %s", request_tag, method)

        pending = self.transport.send(message)
        response = pending.wait(self.config['timeout'])

        if response is None:
            self.transport.cancel(pending)
            error = '%s: acknowledged, but no response in %.1f sec'
            raise TransportResponseTimeout(error % (method, self.config['timeout']))

        payload = response.payload

        if payload is None:
            return dict()

        error = payload.error
        if error is not None and error != '':
            raise RpcError(error.get('text', ''), error.get('code'))

        if payload.value is None:
            return dict()

        return payload.value


# end of class Client



def _default_transport(configuration):
    return transport.request.Client(configuration['address'],
                                    configuration['port'],
                                    configuration['ack_timeout'])


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
