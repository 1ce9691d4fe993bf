""" Conversion between :class:`doctx.protocol.message.Message` instances and
    ZeroMQ multipart messages. Requests and responses share one layout:

        (routing prefix...), version, id, type, target, tag, payload

    A ROUTER socket prepends one or more identity frames to everything it
    receives, and needs them back on everything it sends; these are kept in
    the message's *meta* dictionary as 'zmq_prefix'.
"""

from ...protocol import fields
from ...protocol.message import Message, Payload, Request, PROTOCOL_VERSION
from ..codec import decode_payload, encode_payload


frame_count = 6
version = PROTOCOL_VERSION.encode()


def _encode(text):

    if text is None:
        return b''

    return text.encode()



def _decode(raw):

    if raw == b'':
        return None

    return raw.decode()



def to_request_frames(message, include_prefix=False):
    """ Return the tuple of frames for *message*. The routing prefix is only
        included if *include_prefix* is True, which is the case when a
        ROUTER socket is sending.
    """

    if include_prefix:
        prefix = tuple(message.meta.get('zmq_prefix', ()))
    else:
        prefix = ()

    parts = list()
    parts.append(version)
    parts.append(message.msg_id)
    parts.append(message.msg_type.encode())
    parts.append(_encode(message.target))
    parts.append(_encode(message.tag))
    parts.append(encode_payload(message.payload))

    return prefix + tuple(parts)



def from_request_frames(parts):
    """ Parse the multipart message *parts*. Request types are returned as
        a :class:`doctx.protocol.message.Request`, everything else as a
        plain :class:`doctx.protocol.message.Message`. A ValueError is raised
        if there are too few frames.

        A message from a peer speaking a different protocol version is
        turned into an error REP, so that the original caller receives an
        explanation instead of waiting forever.
    """

    prefix = tuple(parts[:-frame_count])
    parts = parts[len(prefix):]

    if len(parts) < frame_count:
        raise ValueError('expected %d frames, received %d' % (frame_count, len(parts)))

    their_version = parts[0]
    msg_id = parts[1]

    if their_version != version:
        error = dict()
        error['type'] = 'RuntimeError'
        error['code'] = 'FAILED_PRECONDITION'
        error['text'] = 'message is doctx protocol %r, recipient expects %r' % (their_version, version)

        message = Message(fields.REP, payload=Payload(None, error=error), msg_id=msg_id)

    else:
        msg_type = parts[2].decode()
        target = _decode(parts[3])
        tag = _decode(parts[4])
        payload = decode_payload(parts[5])

        if msg_type in fields.REQUESTS:
            message = Request(msg_type, target, payload, msg_id, tag)
        else:
            message = Message(msg_type, target, payload, msg_id, tag)

    if prefix:
        message.meta['zmq_prefix'] = prefix

    return message


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
