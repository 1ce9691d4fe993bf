""" Request tags tie together every RPC issued on behalf of one logical
    transaction, including all of its retried attempts. A tag is a short
    random prefix, which distinguishes one client process from another,
    followed by a locally unique sequence number.
"""

import itertools
import random
import string
import threading


_alphabet = string.ascii_letters + string.digits
_prefix_length = 5

_tag_min = 0
_tag_max = 0xFFFFFFFF
_tag_lock = threading.Lock()
_tag_ticker = itertools.count(_tag_min)


def _sequence_next():
    """ Return the next sequence number, wrapping around at the maximum
        value representable in eight hexadecimal digits.
    """

    global _tag_ticker

    with _tag_lock:
        sequence = next(_tag_ticker)

        if sequence >= _tag_max:
            _tag_ticker = itertools.count(_tag_min)

            if sequence > _tag_max:
                sequence = next(_tag_ticker)

    return sequence


def generate():
    """ Return a new request tag, such as 'k3Fq9-0000002a'. Tags generated
        within the same process never repeat until the sequence number
        wraps around.
    """

    prefix = ''.join(random.choice(_alphabet) for _ in range(_prefix_length))
    sequence = _sequence_next()

    return '%s-%08x' % (prefix, sequence)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
