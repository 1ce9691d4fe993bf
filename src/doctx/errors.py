""" Exception classes raised by doctx. Every exception raised deliberately
    by this package is a subclass of :class:`DocTxError`; the subclasses
    identify which part of the transaction protocol failed, so that callers
    (most notably :func:`doctx.runner.run_transaction`) can decide whether
    a fresh attempt is warranted.
"""

from __future__ import annotations

from typing import Optional


# Server-side status codes that carry meaning for the client. Anything else
# is passed through verbatim in the exception's code attribute.

ABORTED = 'ABORTED'
DEADLINE_EXCEEDED = 'DEADLINE_EXCEEDED'
UNAVAILABLE = 'UNAVAILABLE'
UNKNOWN = 'UNKNOWN'

transient_codes = frozenset((UNAVAILABLE, DEADLINE_EXCEEDED))


class DocTxError(Exception):
    """Base class for all doctx errors."""


class SequencingError(DocTxError, RuntimeError):
    """ An operation was issued out of order for the transaction protocol:
        a read after a buffered write, a query before :func:`begin`, or
        any use of an attempt that already committed or rolled back. This
        is always a bug in the calling code and is never retried.
    """


class ArgumentError(DocTxError, ValueError):
    """Malformed input, detected locally before any network call."""


class RpcError(DocTxError):
    """ A remote procedure call completed with an error. The *code* is the
        server's status code (for example 'ABORTED'), the *text* is the
        human-readable explanation.
    """

    def __init__(self, text: str, code: Optional[str] = None):
        if code is None:
            code = UNKNOWN

        DocTxError.__init__(self, "%s: %s" % (code, text))
        self.code = code
        self.text = text


class BeginError(RpcError):
    """The server did not issue a transaction id."""


class CommitError(RpcError):
    """ The buffered writes were not applied, or, with DEADLINE_EXCEEDED,
        may or may not have been. A *conflict* means another writer
        invalidated this transaction's read set; the orchestrator treats
        conflicts and an undelivered commit as *retryable*. A commit whose
        outcome is unknown is never retried.
    """

    @property
    def conflict(self) -> bool:
        return self.code == ABORTED

    @property
    def retryable(self) -> bool:
        return self.code == ABORTED or self.code == UNAVAILABLE


class RollbackError(RpcError):
    """ A rollback request failed. Rollback is best-effort; this exception
        is reported but should never mask the failure that prompted the
        rollback in the first place.
    """


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
