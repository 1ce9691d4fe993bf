""" Read-only results returned by the server: the state of a single
    document at a point in time, the result of a query, and the outcome of
    a single committed write.
"""

import copy


class DocumentSnapshot:
    """ The contents of the document identified by *reference*, as read at
        *read_time*. A snapshot of a document that does not exist has no
        data, and *exists* is False.

        :ivar create_time: Server timestamp of the document creation, if any.
        :ivar update_time: Server timestamp of the last change, if any.
    """

    def __init__(self, reference, data=None, exists=False, read_time=None, create_time=None, update_time=None):

        self.reference = reference
        self.exists = exists
        self.read_time = read_time
        self.create_time = create_time
        self.update_time = update_time

        self._data = data


    def __eq__(self, other):
        if not isinstance(other, DocumentSnapshot):
            return NotImplemented

        return (self.reference == other.reference and
                self.exists == other.exists and
                self._data == other._data)


    def __repr__(self):
        return 'DocumentSnapshot(%r, exists=%r)' % (self.reference.path, self.exists)


    @property
    def id(self):
        return self.reference.id


    @classmethod
    def from_found(cls, reference, found, read_time=None):
        """ Build a snapshot from the wire representation of an existing
            document: a dictionary with 'name', 'fields', 'createTime' and
            'updateTime' keys.
        """

        return cls(reference, found.get('fields') or dict(), True, read_time,
                   found.get('createTime'), found.get('updateTime'))


    @classmethod
    def missing(cls, reference, read_time=None):
        return cls(reference, None, False, read_time)


    def to_dict(self):
        """ Return a deep copy of the document's fields, or None if the
            document does not exist.
        """

        if not self.exists:
            return None

        return copy.deepcopy(self._data)


    def get(self, field_path):
        """ Return the value of the field identified by the dot-separated
            *field_path*; 'a.b' refers to the field 'b' in the map 'a'. A
            KeyError is raised if the field is not present.
        """

        if not self.exists:
            raise KeyError('document does not exist: ' + self.reference.path)

        value = self._data
        for part in field_path.split('.'):
            try:
                value = value[part]
            except (KeyError, TypeError):
                raise KeyError('no field %r in %s' % (field_path, self.reference.path))

        return copy.deepcopy(value)


# end of class DocumentSnapshot



class QuerySnapshot:
    """ The documents matching *query*, in the order returned by the
        server. Iterating over a :class:`QuerySnapshot` yields each
        :class:`DocumentSnapshot` in turn.
    """

    def __init__(self, query, docs, read_time=None):

        self.query = query
        self.docs = list(docs)
        self.read_time = read_time


    def __iter__(self):
        return iter(self.docs)


    def __len__(self):
        return len(self.docs)


    def __repr__(self):
        return 'QuerySnapshot(%d documents)' % (len(self.docs))


    @property
    def size(self):
        return len(self.docs)


    @property
    def empty(self):
        return len(self.docs) == 0


# end of class QuerySnapshot



class WriteResult:
    """The server timestamp at which a single write was applied."""

    def __init__(self, update_time=None):
        self.update_time = update_time


    def __eq__(self, other):
        if not isinstance(other, WriteResult):
            return NotImplemented
        return self.update_time == other.update_time


    def __repr__(self):
        return 'WriteResult(update_time=%r)' % (self.update_time,)


# end of class WriteResult


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
