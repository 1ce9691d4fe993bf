""" Batched retrieval of multiple documents in a single round trip.
"""

from .errors import RpcError
from .protocol import fields
from .snapshot import DocumentSnapshot


class DocumentGroup:
    """ A :class:`DocumentGroup` fetches every reference in *documents* in
        one BATCH_GET request, within the transaction identified by
        *transaction_id* if one is provided. The results of :func:`get`
        line up positionally with *documents*: the i-th snapshot is for the
        i-th reference, and a reference that appears twice yields two
        snapshots.
    """

    def __init__(self, client, documents, transaction_id=None):

        self.client = client
        self.documents = tuple(documents)
        self.transaction_id = transaction_id


    def _unique_names(self):

        names = list()
        seen = set()

        for reference in self.documents:
            name = reference.full_name
            if name in seen:
                continue

            seen.add(name)
            names.append(name)

        return names


    def get(self, request_tag=None):
        """ Issue the request and return a list of :class:`DocumentSnapshot`
            instances, one per input reference, in input order.
        """

        if len(self.documents) == 0:
            return list()

        request = dict()
        request['database'] = self.client.formatted_name
        request['documents'] = self._unique_names()

        if self.transaction_id is not None:
            request['transaction'] = self.transaction_id

        response = self.client.request(fields.BATCH_GET, request, request_tag)

        read_time = response.get('readTime')
        found = dict()
        missing = set(response.get('missing', ()))

        for document in response.get('found', ()):
            found[document['name']] = document

        snapshots = list()

        for reference in self.documents:
            name = reference.full_name

            try:
                document = found[name]
            except KeyError:
                if name not in missing:
                    raise RpcError('server did not return a result for ' + name)
                snapshot = DocumentSnapshot.missing(reference, read_time)
            else:
                snapshot = DocumentSnapshot.from_found(reference, document, read_time)

            snapshots.append(snapshot)

        return snapshots


# end of class DocumentGroup


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
