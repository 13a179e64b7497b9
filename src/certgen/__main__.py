"""Runs certgen."""
import logging
import sys

import certgen.main

logger = logging.getLogger(__name__)


def main() -> None:
    """Runs certgen, logs any returned message, and calls sys.exit.

    If certgen.main.main returns a non-empty string, it is passed to
    sys.exit causing a non-zero status code and the string to be
    printed to stderr.

    """
    status = certgen.main.main()
    if status:
        logger.debug('Exiting with status %s', status)
    sys.exit(status)


if __name__ == '__main__':
    main()
