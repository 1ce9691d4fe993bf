""" The protocol layer describes what travels between a doctx client and a
    document database server: message types, request ids, and payloads.
    It does not depend on any transport implementation; the transport
    layer maps these structures to and from wire frames.
"""

from . import fields
from . import message

from .message import Message, Request, Payload, PROTOCOL_VERSION

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
