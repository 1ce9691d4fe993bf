""" Message type constants, kept in one place so that nothing else in
    doctx compares against string literals.
"""

# Responses.

ACK = 'ACK'
REP = 'REP'

# Remote procedure calls understood by a document database server.

BEGIN = 'BEGIN'
COMMIT = 'COMMIT'
ROLLBACK = 'ROLLBACK'
BATCH_GET = 'BATCH_GET'
RUN_QUERY = 'RUN_QUERY'

RESPONSES = frozenset((ACK, REP))
REQUESTS = frozenset((BEGIN, COMMIT, ROLLBACK, BATCH_GET, RUN_QUERY))

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
