""" A class representation of a doctx message, including the request
    subclass used on the client side and the payload carried by both.
"""

import itertools
import threading
import time as timemodule

from . import fields


# This is the version of the on-the-wire protocol implemented here. It is
# a single character, sent as the first frame of every multipart message.

PROTOCOL_VERSION = 'a'


class Message:
    """ The :class:`Message` provides a very thin encapsulation of what it
        means to be a message in a doctx context. This class is used as-is
        for responses (ACK and REP), and is subclassed for requests.

        The fields roughly follow their order on the wire: the message
        *msg_type*, the *target* database, the request *tag* that ties this
        message to a logical transaction, the *payload*, and the *msg_id*
        that ties a response to its request. The *meta* dictionary holds
        transport-specific routing information that never goes on the wire
        as part of the payload.

        :ivar valid_types: A set of valid strings for the message type.
        :ivar timestamp: A UNIX epoch timestamp for the message creation.
    """

    valid_types = fields.RESPONSES

    def __init__(self, msg_type, target=None, payload=None, msg_id=None, tag=None):

        if msg_type not in self.valid_types:
            raise ValueError('invalid message type: ' + repr(msg_type))

        self.msg_id = msg_id
        self.msg_type = msg_type
        self.payload = payload
        self.tag = tag
        self.target = target
        self.timestamp = timemodule.time()
        self.meta = dict()


    def __repr__(self):
        return '%s(%s %s id=%r tag=%r %r)' % (self.__class__.__name__,
                self.msg_type, self.target, self.msg_id, self.tag, self.payload)


# end of class Message



class Request(Message):
    """ A :class:`Request` is a :class:`Message` sent by a client that
        expects a response. Requests are generally created without an id;
        one is generated automatically so that the transport can match the
        incoming response to the request that prompted it.
    """

    valid_types = fields.REQUESTS

    def __init__(self, msg_type, target=None, payload=None, msg_id=None, tag=None):

        if msg_id is None:
            msg_id = _id_next()

        Message.__init__(self, msg_type, target, payload, msg_id, tag)


# end of class Request



class Payload:
    """ This is a lightweight class to encapsulate a Python-native *value*
        for inclusion in a :class:`Message`. A response payload reporting a
        failure sets *error* to a dictionary with 'type', 'code', and 'text'
        fields. Additional keyword arguments become additional attributes,
        and are included in :func:`to_dict`.
    """

    def __init__(self, value=None, time=None, error=None, **kwargs):

        # The use of 'time' as a keyword argument is why the time module is
        # imported under a different name in this file; the keyword arguments
        # match the field names of the serialized payload.

        if time is None:
            time = timemodule.time()

        self.value = value
        self.time = time
        self.error = error

        for key,value in kwargs.items():
            setattr(self, key, value)


    def __repr__(self):
        return 'Payload(%r)' % (self.to_dict(),)


    def to_dict(self):
        """ Return a dictionary representation of this payload suitable for
            JSON encoding. An unset error is omitted.
        """

        payload = dict(vars(self))

        if payload['error'] is None:
            del payload['error']

        return payload


    @classmethod
    def from_dict(cls, payload):

        payload = dict(payload)

        try:
            value = payload.pop('value')
        except KeyError:
            raise ValueError("payload is missing the 'value' field")

        return cls(value, **payload)


# end of class Payload


_id_min = 0
_id_max = 0xFFFFFFFF
_id_lock = threading.Lock()
_id_ticker = itertools.count(_id_min)


def _id_next():
    """ Return the next request identification number for subroutines to
        use when constructing a message.
    """

    global _id_ticker

    with _id_lock:
        id = next(_id_ticker)

        if id >= _id_max:
            _id_ticker = itertools.count(_id_min)

            if id > _id_max:
                # This shouldn't happen, but here we are...
                id = next(_id_ticker)

    id = '%08x' % (id)
    id = id.encode()
    return id


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
