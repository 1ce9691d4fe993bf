""" The retry orchestrator: run an application-supplied function inside a
    transaction, and run it again in a fresh attempt if the commit fails
    for a reason worth retrying, such as a conflict with another writer.
"""

import logging
import random
import time

from .errors import ArgumentError, CommitError, RollbackError
from .transaction import Transaction


logger = logging.getLogger(__name__)


class Backoff:
    """ Exponential backoff between transaction attempts. The first delay
        is *initial* seconds; each subsequent delay is multiplied by
        *multiplier*, up to *maximum* seconds. A random jitter of up to
        half the delay is subtracted so that competing clients do not
        retry in lockstep.
    """

    def __init__(self, initial=0.0, multiplier=1.5, maximum=5.0):

        self.initial = initial
        self.multiplier = multiplier
        self.maximum = maximum
        self.current = initial


    def next_delay(self):

        delay = min(self.current, self.maximum)
        self.current = self.current * self.multiplier

        if delay <= 0:
            return 0.0

        return delay - random.uniform(0, delay / 2)


    def wait(self):
        delay = self.next_delay()
        if delay > 0:
            time.sleep(delay)
        return delay


# end of class Backoff



def _rollback_quietly(transaction):
    """ Roll back *transaction*, logging instead of raising on failure; the
        caller is already handling a more important exception.
    """

    try:
        transaction.rollback()
    except RollbackError as e:
        logger.error("[%s] rollback failed: %s", transaction.request_tag, e)



def run_transaction(client, update_function, max_attempts=None):
    """ Run *update_function* in a transaction against *client*, and return
        whatever it returns. The function receives the
        :class:`Transaction` as its sole argument, and must perform all of
        its reads before any of its writes:

            def transfer(transaction):
                source = transaction.get(source_ref)
                target = transaction.get(target_ref)
                transaction.update(source_ref, {'balance': source.get('balance') - 10})
                transaction.update(target_ref, {'balance': target.get('balance') + 10})

            doctx.run_transaction(client, transfer)

        If the function raises, the transaction is rolled back and the
        exception propagates; nothing is committed. If the commit fails
        with a retryable :class:`CommitError` the function is run again in
        a new attempt, up to *max_attempts* attempts in total; the function
        must therefore be safe to call more than once. The default number
        of attempts comes from the client configuration.
    """

    if max_attempts is None:
        max_attempts = client.config['max_attempts']

    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
        raise ArgumentError('max_attempts must be a positive integer: ' + repr(max_attempts))

    backoff = Backoff(client.config['backoff_initial'],
                      client.config['backoff_multiplier'],
                      client.config['backoff_max'])

    retry = None
    attempt = 0

    while True:
        attempt += 1

        transaction = Transaction(client, retry)
        transaction.begin()

        try:
            result = update_function(transaction)
        except Exception:
            _rollback_quietly(transaction)
            raise

        try:
            transaction.commit()
        except CommitError as e:
            if not e.retryable:
                _rollback_quietly(transaction)
                raise

            if attempt >= max_attempts:
                logger.warning("[%s] giving up after %d attempts: %s",
                               transaction.request_tag, attempt, e)
                raise

            logger.warning("[%s] attempt %d of %d failed, retrying: %s",
                           transaction.request_tag, attempt, max_attempts, e)

            retry = transaction.retry_context()
            backoff.wait()
            continue

        return result


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
