""" A :class:`WriteBatch` buffers document mutations locally and sends them
    to the server as a single atomic COMMIT. Transactions use a batch to
    hold their writes until commit time; a batch can also be committed on
    its own, outside of any transaction.
"""

import copy
import logging

from collections.abc import Mapping

from .errors import ArgumentError, CommitError, RpcError, SequencingError
from .errors import DEADLINE_EXCEEDED, UNAVAILABLE
from .protocol import fields
from .reference import DocumentReference
from .snapshot import WriteResult
from .transport.base import TransportError, TransportResponseTimeout


logger = logging.getLogger(__name__)

_missing = object()


class Precondition:
    """ A condition the server checks before applying a single write. Set
        *exists* to require that the document does (True) or does not
        (False) exist; set *last_update_time* to require that the document
        was last changed at exactly that server timestamp. At most one of
        the two may be set.
    """

    def __init__(self, exists=None, last_update_time=None):

        if exists is not None and last_update_time is not None:
            raise ArgumentError('a precondition takes either exists or last_update_time, not both')

        if exists is not None and not isinstance(exists, bool):
            raise ArgumentError('precondition exists must be a boolean')

        self.exists = exists
        self.last_update_time = last_update_time


    def __repr__(self):
        return 'Precondition(exists=%r, last_update_time=%r)' % (self.exists, self.last_update_time)


    @property
    def is_empty(self):
        return self.exists is None and self.last_update_time is None


    def to_wire(self):

        if self.exists is not None:
            return dict(exists=self.exists)

        return dict(updateTime=self.last_update_time)


# end of class Precondition



def _validate_reference(reference, position=None):

    if isinstance(reference, DocumentReference):
        return

    if position is None:
        error = 'expected a DocumentReference, got %r' % (reference,)
    else:
        error = 'element %d: expected a DocumentReference, got %r' % (position, reference)

    raise ArgumentError(error)



def _validate_data(data):

    if not isinstance(data, Mapping):
        raise ArgumentError('document data must be a mapping, got %r' % (data,))

    for key in data.keys():
        if not isinstance(key, str) or key == '':
            raise ArgumentError('field names must be non-empty strings, got %r' % (key,))



def _validate_precondition(precondition):

    if precondition is None:
        return

    if not isinstance(precondition, Precondition):
        raise ArgumentError('expected a Precondition, got %r' % (precondition,))



def _leaf_paths(data, prefix=''):
    """ Return the dot-separated paths to every leaf value in the nested
        mapping *data*. An empty nested mapping counts as a leaf.
    """

    paths = list()

    for key,value in data.items():
        path = prefix + key

        if isinstance(value, Mapping) and len(value) > 0:
            paths.extend(_leaf_paths(value, path + '.'))
        else:
            paths.append(path)

    return paths



def _lookup(data, field_path):

    value = data
    for part in field_path.split('.'):
        if not isinstance(value, Mapping) or part not in value:
            raise KeyError(field_path)
        value = value[part]

    return value



def _nest(field_values):
    """ Turn a sequence of (dotted field path, value) pairs into a nested
        dictionary; ('a.b', 1) becomes {'a': {'b': 1}}.
    """

    nested = dict()

    for field_path,value in field_values:
        parts = field_path.split('.')
        target = nested

        for part in parts[:-1]:
            target = target.setdefault(part, dict())

        target[parts[-1]] = copy.deepcopy(value)

    return nested



def _check_field_paths(paths):
    """ Reject empty, duplicate, or overlapping field paths; updating both
        'a' and 'a.b' in a single write is ambiguous.
    """

    seen = set()

    for path in paths:
        if not isinstance(path, str) or path == '' or '' in path.split('.'):
            raise ArgumentError('invalid field path: ' + repr(path))

        if path in seen:
            raise ArgumentError('field path specified more than once: ' + repr(path))

        seen.add(path)

    ordered = sorted(seen)
    for previous,current in zip(ordered, ordered[1:]):
        if current.startswith(previous + '.'):
            raise ArgumentError('field path %r overlaps with %r' % (current, previous))



class WriteBatch:
    """ An ordered buffer of create, set, update and delete operations
        against documents served by *client*. Each mutating method returns
        the batch itself so calls can be chained.
    """

    def __init__(self, client):

        self._client = client
        self._writes = list()
        self._committed = False


    def __len__(self):
        return len(self._writes)


    @property
    def is_empty(self):
        return len(self._writes) == 0


    @property
    def writes(self):
        """ A copy of the wire representation of the buffered writes, in
            the order they were added.
        """

        return copy.deepcopy(self._writes)


    def _check_open(self):
        if self._committed:
            raise SequencingError('cannot modify a WriteBatch that has been committed')


    def _append(self, write):
        self._check_open()
        self._writes.append(write)
        return self


    def create(self, document_ref, data):
        """ Create the document referred to by *document_ref* with the
            contents of *data*. The commit fails if the document exists.
        """

        _validate_reference(document_ref)
        _validate_data(data)

        write = dict()
        write['update'] = dict(name=document_ref.full_name, fields=copy.deepcopy(dict(data)))
        write['currentDocument'] = Precondition(exists=False).to_wire()

        return self._append(write)


    def set(self, document_ref, data, merge=False, merge_fields=None):
        """ Write *data* to the document referred to by *document_ref*,
            creating it if necessary. By default the document is replaced.
            If *merge* is True, only the fields present in *data* are
            written; if *merge_fields* is a list of field paths, only those
            fields are written, and each must be present in *data*.
        """

        _validate_reference(document_ref)
        _validate_data(data)

        if merge and merge_fields is not None:
            raise ArgumentError('set() takes either merge or merge_fields, not both')

        write = dict()

        if merge_fields is not None:
            merge_fields = list(merge_fields)
            _check_field_paths(merge_fields)

            pairs = list()
            for field_path in merge_fields:
                try:
                    value = _lookup(data, field_path)
                except KeyError:
                    raise ArgumentError('merge field %r is not present in the data' % (field_path,))
                pairs.append((field_path, value))

            write['update'] = dict(name=document_ref.full_name, fields=_nest(pairs))
            write['updateMask'] = dict(fieldPaths=merge_fields)

        else:
            write['update'] = dict(name=document_ref.full_name, fields=copy.deepcopy(dict(data)))

            if merge:
                write['updateMask'] = dict(fieldPaths=_leaf_paths(data))

        return self._append(write)


    def update(self, document_ref=_missing, *field_values, precondition=None):
        """ Update fields in the document referred to by *document_ref*.
            The fields are given either as a single mapping of dotted field
            paths to values, or as alternating field paths and values:

                batch.update(ref, {'count': 1, 'owner.name': 'alice'})
                batch.update(ref, 'count', 1, 'owner.name', 'alice')

            The commit fails if the document does not exist, unless a
            different *precondition* is specified.
        """

        if document_ref is _missing:
            raise ArgumentError('update() requires a document reference')

        _validate_reference(document_ref)
        _validate_precondition(precondition)

        if len(field_values) == 0:
            raise ArgumentError('update() requires at least one field to update')

        if len(field_values) == 1:
            data = field_values[0]
            _validate_data(data)

            if len(data) == 0:
                raise ArgumentError('update() requires at least one field to update')

            pairs = list(data.items())

        else:
            if len(field_values) % 2 != 0:
                raise ArgumentError('update() needs alternating field paths and values')

            pairs = list(zip(field_values[0::2], field_values[1::2]))

        paths = [pair[0] for pair in pairs]
        _check_field_paths(paths)

        if precondition is None or precondition.is_empty:
            precondition = Precondition(exists=True)

        write = dict()
        write['update'] = dict(name=document_ref.full_name, fields=_nest(pairs))
        write['updateMask'] = dict(fieldPaths=paths)
        write['currentDocument'] = precondition.to_wire()

        return self._append(write)


    def delete(self, document_ref, precondition=None):
        """ Delete the document referred to by *document_ref*. Deleting a
            document that does not exist is not an error, unless required
            by the *precondition*.
        """

        _validate_reference(document_ref)
        _validate_precondition(precondition)

        write = dict()
        write['delete'] = document_ref.full_name

        if precondition is not None and not precondition.is_empty:
            write['currentDocument'] = precondition.to_wire()

        return self._append(write)


    def commit(self, transaction_id=None, request_tag=None):
        """ Send every buffered write to the server in a single COMMIT, as
            part of the transaction identified by *transaction_id* if one is
            specified. Returns one :class:`WriteResult` per write, in order.
            A failure is raised as a :class:`CommitError`; the request is
            never retried here, since a retried commit is not idempotent.
        """

        self._check_open()
        self._committed = True

        request = dict()
        request['database'] = self._client.formatted_name
        request['writes'] = self._writes

        if transaction_id is not None:
            request['transaction'] = transaction_id

        try:
            response = self._client.request(fields.COMMIT, request, request_tag)
        except RpcError as e:
            raise CommitError(e.text, e.code) from e
        except TransportResponseTimeout as e:
            # The server may have applied the writes.
            raise CommitError(str(e), DEADLINE_EXCEEDED) from e
        except TransportError as e:
            raise CommitError(str(e), UNAVAILABLE) from e

        commit_time = response.get('commitTime')
        results = list()

        for result in response.get('writeResults', ()):
            update_time = result.get('updateTime', commit_time)
            results.append(WriteResult(update_time))

        logger.debug("[%s] committed %d writes", request_tag, len(results))
        return results


# end of class WriteBatch


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
