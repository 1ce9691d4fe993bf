""" References identify documents and collections in a remote database
    without reading them. A :class:`Query` describes a filtered, ordered
    read over a collection. All three are immutable, and are safe to share
    between threads and between transaction attempts.
"""

import random
import string

from .document_group import DocumentGroup
from .errors import ArgumentError
from .protocol import fields
from .snapshot import DocumentSnapshot, QuerySnapshot


_auto_id_alphabet = string.ascii_letters + string.digits
_auto_id_length = 20

operators = frozenset(('<', '<=', '==', '>=', '>', 'array_contains'))
directions = frozenset(('ASCENDING', 'DESCENDING'))


def _split(path):

    if not isinstance(path, str) or path == '':
        raise ArgumentError('a path must be a non-empty string: ' + repr(path))

    segments = path.strip('/').split('/')

    for segment in segments:
        if segment == '':
            raise ArgumentError('path contains an empty segment: ' + repr(path))

    return segments



def auto_id():
    """ Return a random 20 character identifier, suitable as the id of a
        new document.
    """

    return ''.join(random.choice(_auto_id_alphabet) for _ in range(_auto_id_length))



class DocumentReference:
    """ A reference to the document at *path* within the database served
        by *client*. The path is a slash-separated sequence alternating
        between collection and document ids, such as 'users/alice'.
    """

    def __init__(self, client, path):

        segments = _split(path)

        if len(segments) % 2 != 0:
            raise ArgumentError('a document path needs an even number of segments: ' + repr(path))

        self._client = client
        self.path = '/'.join(segments)


    def __eq__(self, other):
        if not isinstance(other, DocumentReference):
            return NotImplemented
        return self.full_name == other.full_name


    def __hash__(self):
        return hash(self.full_name)


    def __repr__(self):
        return 'DocumentReference(%r)' % (self.path,)


    @property
    def client(self):
        return self._client


    @property
    def id(self):
        return self.path.rsplit('/', 1)[-1]


    @property
    def parent(self):
        return CollectionReference(self._client, self.path.rsplit('/', 1)[0])


    @property
    def full_name(self):
        """ The fully qualified name of this document as used on the wire,
            for example 'projects/p/databases/d/documents/users/alice'.
        """

        return self._client.formatted_name + '/documents/' + self.path


    def collection(self, collection_id):
        return CollectionReference(self._client, self.path + '/' + collection_id)


    def get(self):
        """ Read this document outside of any transaction, and return its
            :class:`DocumentSnapshot`.
        """

        group = DocumentGroup(self._client, (self,))
        return group.get()[0]


# end of class DocumentReference



class Query:
    """ A query over the collection at *path*. Each of the refining methods
        (:func:`where`, :func:`order_by`, :func:`limit`) returns a new
        :class:`Query`; the original is never modified.
    """

    def __init__(self, client, path, filters=(), orders=(), limit=None):

        segments = _split(path)

        if len(segments) % 2 != 1:
            raise ArgumentError('a collection path needs an odd number of segments: ' + repr(path))

        self._client = client
        self._path = '/'.join(segments)
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._limit = limit


    def __eq__(self, other):
        if not isinstance(other, Query):
            return NotImplemented
        return self._structured() == other._structured()


    def __hash__(self):
        return hash((self._path, self._limit))


    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self._path)


    def _copy(self, filters=None, orders=None, limit=None):

        if filters is None:
            filters = self._filters
        if orders is None:
            orders = self._orders
        if limit is None:
            limit = self._limit

        return Query(self._client, self._path, filters, orders, limit)


    def where(self, field_path, op, value):

        if op not in operators:
            raise ArgumentError('invalid query operator: ' + repr(op))

        if not isinstance(field_path, str) or field_path == '':
            raise ArgumentError('a field path must be a non-empty string')

        new_filter = dict(field=field_path, op=op, value=value)
        return self._copy(filters=self._filters + (new_filter,))


    def order_by(self, field_path, direction='ASCENDING'):

        direction = str(direction).upper()
        if direction not in directions:
            raise ArgumentError('invalid sort direction: ' + repr(direction))

        new_order = dict(field=field_path, direction=direction)
        return self._copy(orders=self._orders + (new_order,))


    def limit(self, count):

        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise ArgumentError('limit must be a positive integer: ' + repr(count))

        return self._copy(limit=count)


    def _structured(self):
        """ Return the wire representation of this query.
        """

        structured = dict()
        structured['from'] = self._path
        structured['where'] = list(self._filters)
        structured['orderBy'] = list(self._orders)

        if self._limit is not None:
            structured['limit'] = self._limit

        return structured


    def _get(self, transaction_id=None, request_tag=None):
        """ Run this query, optionally within the transaction identified by
            *transaction_id*, and return a :class:`QuerySnapshot`.
        """

        request = dict()
        request['database'] = self._client.formatted_name
        request['structuredQuery'] = self._structured()

        if transaction_id is not None:
            request['transaction'] = transaction_id

        response = self._client.request(fields.RUN_QUERY, request, request_tag)

        read_time = response.get('readTime')
        docs = list()

        for found in response.get('documents', ()):
            reference = self._client.document_from_name(found['name'])
            docs.append(DocumentSnapshot.from_found(reference, found, read_time))

        return QuerySnapshot(self, docs, read_time)


    def get(self):
        """ Run this query outside of any transaction.
        """

        return self._get()


# end of class Query



class CollectionReference(Query):
    """ A reference to the collection at *path*. A collection is also the
        simplest possible query: every document it contains.
    """

    def __init__(self, client, path):
        Query.__init__(self, client, path)


    @property
    def id(self):
        return self._path.rsplit('/', 1)[-1]


    @property
    def path(self):
        return self._path


    def document(self, document_id=None):
        """ Return a :class:`DocumentReference` for *document_id* in this
            collection; a random id is generated if none is specified.
        """

        if document_id is None:
            document_id = auto_id()

        return DocumentReference(self._client, self._path + '/' + document_id)

    doc = document


# end of class CollectionReference


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
