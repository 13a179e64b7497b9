"""Bounded waits on resources the CA is still working on."""
import logging
import time
from typing import Callable
from typing import Collection

from certgen import errors

logger = logging.getLogger(__name__)


def wait_while(reload: Callable[[], str], in_flight: Collection[str],
               interval: float, timeout: float, describe: str = "resource") -> str:
    """Reload a resource until its status leaves ``in_flight``.

    The first reload happens right away. After that the loop sleeps
    ``interval`` seconds between reloads and gives up once ``timeout``
    seconds have passed since the first check, counting both the time
    spent asleep and the time spent talking to the CA.

    :param callable reload: fetches the resource and returns its status
    :param in_flight: statuses meaning the CA has not decided yet
    :param float interval: seconds between reloads
    :param float timeout: seconds before giving up
    :param str describe: what is being polled, for log messages

    :returns: the first status outside ``in_flight``
    :rtype: str

    :raises errors.PollTimeout: if the resource is still in flight at the deadline
    :raises errors.IssuanceCancelled: if the wait is interrupted

    """
    started = time.monotonic()
    waited = 0.0
    try:
        status = reload()
        while status in in_flight:
            elapsed = max(waited, time.monotonic() - started)
            if elapsed >= timeout:
                logger.debug("Gave up on %s after %.1f seconds (status %s)",
                             describe, elapsed, status)
                raise errors.PollTimeout(status, timeout)
            logger.debug("%s is %s, checking again in %g seconds",
                         describe, status, interval)
            time.sleep(interval)
            waited += interval
            status = reload()
    except KeyboardInterrupt:
        raise errors.IssuanceCancelled(
            "Interrupted while waiting for {0}".format(describe))
    logger.debug("%s is %s", describe, status)
    return status
