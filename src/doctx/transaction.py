""" The :class:`Transaction` coordinates one attempt at running a set of
    reads and writes as a single atomic server-side transaction. Reads are
    sent immediately; writes are buffered and sent together at commit time.
    The server requires every read to happen before any write, which is
    enforced here.

    A failed attempt is never reused. If the orchestrator decides to try
    again it builds a new :class:`Transaction` from the failed attempt's
    :class:`RetryContext`, which carries the two things a retry needs: the
    request tag, and the id of the transaction being retried.
"""

import enum
import functools
import logging
from typing import NamedTuple, Optional

from . import tag
from .errors import ArgumentError, BeginError, RollbackError, RpcError, SequencingError, UNAVAILABLE
from .document_group import DocumentGroup
from .protocol import fields
from .reference import DocumentReference, Query
from .transport.base import TransportError
from .write_batch import _validate_reference


logger = logging.getLogger(__name__)

READ_AFTER_WRITE_ERROR = 'transactions require all reads to be executed before all writes'

_missing = object()


class Phase(enum.Enum):
    """ An attempt starts out READING; the first buffered write moves it to
        WRITING, and it never goes back.
    """

    READING = 'reading'
    WRITING = 'writing'


class RetryContext(NamedTuple):
    """What a retry attempt inherits from the attempt that failed."""

    request_tag: str
    previous_transaction_id: Optional[str]


class Transaction:
    """ A single transaction attempt against the database served by
        *client*. Pass the :class:`RetryContext` of a failed attempt as
        *retry* to build an attempt that retries it; the new attempt
        shares the request tag of the old one, and starts with an empty
        write batch.

        Application code receives a :class:`Transaction` from
        :func:`doctx.runner.run_transaction`, and only calls the read and
        write methods; :func:`begin`, :func:`commit` and :func:`rollback`
        are driven by the orchestrator.
    """

    def __init__(self, client, retry=None):

        self._client = client
        self._retry = retry
        self._write_batch = client.batch()
        self._phase = Phase.READING
        self._transaction_id = None
        self._finished = False

        if retry is None:
            self._request_tag = tag.generate()
        else:
            self._request_tag = retry.request_tag


    def __repr__(self):
        return 'Transaction(tag=%r, id=%r, %s)' % (self._request_tag,
                self._transaction_id, self._phase.value)


    @property
    def request_tag(self):
        """ The tag used with all requests for this transaction, shared by
            every retried attempt.
        """

        return self._request_tag


    @property
    def transaction_id(self):
        """ The server-issued id of this attempt; None until :func:`begin`
            has succeeded.
        """

        return self._transaction_id


    @property
    def phase(self):
        return self._phase


    @property
    def is_retry(self):
        return self._retry is not None


    def retry_context(self):
        """ Return the :class:`RetryContext` for an attempt that retries
            this one.
        """

        return RetryContext(self._request_tag, self._transaction_id)


    def _check_active(self):
        if self._finished:
            raise SequencingError('transaction %s already committed or rolled back' % (self._request_tag))


    def _check_readable(self):
        self._check_active()

        if self._phase is Phase.WRITING:
            raise SequencingError(READ_AFTER_WRITE_ERROR)


    def _check_begun(self, operation):
        if self._transaction_id is None:
            raise SequencingError('cannot %s: transaction %s has not begun' % (operation, self._request_tag))


    def _buffered(self):
        """ Record that a write has been buffered. Called only after the
            write batch accepted the write, so a rejected write does not
            end the read phase.
        """

        self._phase = Phase.WRITING
        return self


    # Reads.

    def get(self, ref_or_query):
        """ Retrieve a document or a query result. A
            :class:`DocumentReference` returns a :class:`DocumentSnapshot`,
            a :class:`Query` returns a :class:`QuerySnapshot`.

                def update_function(transaction):
                    snapshot = transaction.get(reference)
                    if snapshot.exists:
                        transaction.update(reference, {'count': snapshot.get('count') + 1})
                    else:
                        transaction.create(reference, {'count': 1})
        """

        self._check_readable()
        return self._get(ref_or_query)


    @functools.singledispatchmethod
    def _get(self, ref_or_query):
        raise ArgumentError('argument must be a DocumentReference or a Query, got %r' % (ref_or_query,))


    @_get.register
    def _get_document(self, ref_or_query: DocumentReference):
        return self.get_list((ref_or_query,))[0]


    @_get.register
    def _get_query(self, ref_or_query: Query):

        # Sending a query without an id would silently run it outside of
        # the transaction.

        self._check_begun('run a query')
        return ref_or_query._get(self._transaction_id, self._request_tag)


    def get_all(self, *documents):
        """ Retrieve multiple documents in a single round trip. Returns a
            list of :class:`DocumentSnapshot`, where the i-th snapshot is
            for the i-th reference.
        """

        return self.get_list(documents)


    def get_list(self, documents):
        """ Same as :func:`get_all`, taking the references as a single
            sequence instead of as separate arguments.
        """

        self._check_readable()

        documents = list(documents)

        for position,reference in enumerate(documents):
            _validate_reference(reference, position)

        group = DocumentGroup(self._client, documents, self._transaction_id)
        return group.get(self._request_tag)


    # Writes. None of these contact the server.

    def create(self, document_ref, data):
        """ Create the document referred to by *document_ref*. The
            transaction fails if the document already exists.
        """

        self._check_active()
        self._write_batch.create(document_ref, data)
        return self._buffered()


    def set(self, document_ref, data, merge=False, merge_fields=None):
        """ Write to the document referred to by *document_ref*, creating
            it if it does not exist; see :func:`WriteBatch.set`.
        """

        self._check_active()
        self._write_batch.set(document_ref, data, merge=merge, merge_fields=merge_fields)
        return self._buffered()


    def update(self, document_ref=_missing, *field_values, precondition=None):
        """ Update fields in the document referred to by *document_ref*.
            Fields are given as a single mapping, or as alternating field
            paths and values; see :func:`WriteBatch.update`. The
            transaction fails if the document does not exist.
        """

        self._check_active()

        if document_ref is _missing or len(field_values) == 0:
            raise ArgumentError('update() requires a document reference and at least one field')

        self._write_batch.update(document_ref, *field_values, precondition=precondition)
        return self._buffered()


    def delete(self, document_ref, precondition=None):
        """ Delete the document referred to by *document_ref*.
        """

        self._check_active()
        self._write_batch.delete(document_ref, precondition)
        return self._buffered()


    # Lifecycle.

    def begin(self):
        """ Start the transaction on the server, and obtain its id. A retry
            attempt tells the server which transaction it replaces. The
            request is safe to retry at the transport level.
        """

        self._check_active()

        if self._transaction_id is not None:
            raise SequencingError('transaction %s has already begun' % (self._request_tag))

        request = dict()
        request['database'] = self._client.formatted_name

        if self._retry is not None:
            retry = dict(retryTransaction=self._retry.previous_transaction_id)
            request['options'] = dict(readWrite=retry)

        try:
            response = self._client.request(fields.BEGIN, request, self._request_tag, allow_retries=True)
        except RpcError as e:
            raise BeginError(e.text, e.code) from e
        except TransportError as e:
            raise BeginError(str(e), UNAVAILABLE) from e

        try:
            transaction_id = response['transaction']
        except (KeyError, TypeError):
            raise BeginError('response did not include a transaction id')

        self._transaction_id = transaction_id

        if self._retry is None:
            logger.info("[%s] began transaction %r", self._request_tag, transaction_id)
        else:
            logger.info("[%s] began transaction %r, retrying %r", self._request_tag,
                        transaction_id, self._retry.previous_transaction_id)


    def commit(self):
        """ Send all buffered writes to the server as one atomic commit,
            and release the transaction. Returns a list of
            :class:`WriteResult`, one per buffered write. Raises
            :class:`CommitError` on failure, including conflicts with
            other writers.
        """

        self._check_active()
        self._check_begun('commit')

        # A failed commit leaves the attempt open for rollback(); the write
        # batch itself refuses a second commit.

        results = self._write_batch.commit(transaction_id=self._transaction_id,
                                           request_tag=self._request_tag)
        self._finished = True

        logger.info("[%s] committed transaction %r", self._request_tag, self._transaction_id)
        return results


    def rollback(self):
        """ Release the transaction on the server without applying any of
            the buffered writes. Raises :class:`RollbackError` on failure.
        """

        self._check_active()
        self._check_begun('roll back')
        self._finished = True

        request = dict()
        request['database'] = self._client.formatted_name
        request['transaction'] = self._transaction_id

        try:
            self._client.request(fields.ROLLBACK, request, self._request_tag)
        except RpcError as e:
            raise RollbackError(e.text, e.code) from e
        except TransportError as e:
            raise RollbackError(str(e), UNAVAILABLE) from e

        logger.info("[%s] rolled back transaction %r", self._request_tag, self._transaction_id)


# end of class Transaction


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
