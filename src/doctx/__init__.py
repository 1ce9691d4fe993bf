""" Python client for running atomic transactions against a remote document
    database. Application code supplies a function that reads and writes
    documents through a :class:`Transaction`; doctx begins the transaction
    on the server, enforces that every read precedes every write, commits
    the buffered writes atomically, and retries the whole function in a
    fresh attempt when the commit conflicts with another writer.
"""

# Utility components.

from . import json
from . import errors
from . import tag

# Submodules used by multiple other components.

from . import protocol
from . import transport
from . import config
home = config.directory

# Primary public-facing interfaces.

from .errors import (
    DocTxError,
    ArgumentError,
    SequencingError,
    RpcError,
    BeginError,
    CommitError,
    RollbackError,
)

from .reference import DocumentReference, CollectionReference, Query
from .snapshot import DocumentSnapshot, QuerySnapshot, WriteResult
from .write_batch import WriteBatch, Precondition
from .document_group import DocumentGroup
from .transaction import Transaction, RetryContext, Phase
from .runner import run_transaction
from .client import Client

from . import session
connect = session.connect

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
