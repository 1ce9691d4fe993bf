""" Serialization of :class:`doctx.protocol.message.Payload` instances for
    any transport that carries the payload as a single JSON frame.
"""

from .. import json
from ..protocol.message import Payload


def encode_payload(payload):
    """ Return the JSON bytes for *payload*; an absent payload is sent as
        an empty frame.
    """

    if payload is None:
        return b''

    return json.dumps(payload.to_dict())



def decode_payload(raw):

    if raw == b'':
        return None

    decoded = json.loads(raw)

    if isinstance(decoded, dict) and 'value' in decoded:
        return Payload.from_dict(decoded)

    # Anything else is kept intact as the value of a new payload.
    return Payload(decoded)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
