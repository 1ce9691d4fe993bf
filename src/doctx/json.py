''' Wrapper module for the JSON encoder and decoder used by doctx. The
    :func:`dumps` method always returns bytes, and :func:`loads` accepts
    either bytes or a string.
'''

import msgspec


# One encoder and one decoder instance are shared by the whole process;
# msgspec instances are safe to use from multiple threads.

encoder = msgspec.json.Encoder()
decoder = msgspec.json.Decoder()

dumps = encoder.encode
loads = decoder.decode

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
