"""certgen main entry point."""
import logging
import sys
from typing import List
from typing import Optional
from typing import Union

import certgen
from certgen import configuration
from certgen import errors
from certgen import util
from certgen._internal import cli
from certgen._internal import client
from certgen._internal import constants
from certgen._internal import log
from certgen._internal.display import obj as display_obj

logger = logging.getLogger(__name__)


def make_or_verify_needed_dirs(config: configuration.NamespaceConfig) -> None:
    """Create the config directory before anything is written into it.

    It holds the account key and the logs and gets
    `constants.CONFIG_DIRS_MODE` when created.

    :param config: Configuration object
    :type config: configuration.NamespaceConfig

    :raises errors.Error: if the directory cannot be created

    """
    try:
        util.make_or_verify_dir(config.config_dir, constants.CONFIG_DIRS_MODE)
    except OSError as error:
        logger.debug("Exception was:", exc_info=True)
        raise errors.Error(util.PERM_ERR_FMT.format(error))


def generate(config: configuration.NamespaceConfig) -> Optional[Union[str, int]]:
    """Obtain a certificate for the configured domain.

    :param config: Configuration object
    :type config: configuration.NamespaceConfig

    :returns: `None` on success, `EXIT_CANCELLED` if the operator stopped the run
    :rtype: None or int

    """
    try:
        bundle_path = client.Client(config).run()
    except errors.IssuanceCancelled as error:
        logger.debug("Cancelled: %s", error)
        logger.error("Exiting due to user request.")
        return constants.EXIT_CANCELLED
    logger.debug("Bundle written to %s", bundle_path)
    return None


def main(cli_args: Optional[List[str]] = None) -> Optional[Union[str, int]]:
    """Run certgen.

    :param cli_args: command line to certgen, defaults to ``sys.argv[1:]``
    :type cli_args: `list` of `str`

    :returns: value for `sys.exit` about the exit status of certgen
    :rtype: `str` or `int` or `None`

    """
    if cli_args is None:
        cli_args = sys.argv[1:]

    log.pre_arg_parse_setup()

    logger.debug("certgen version: %s", certgen.__version__)
    logger.debug("Location of certgen entry point: %s", sys.argv[0])
    logger.debug("Arguments: %r", cli_args)

    # note: arg parser internally handles --help and --version (and exits afterwards)
    args = cli.prepare_and_parse_args(cli_args)
    config = configuration.NamespaceConfig(args)

    make_or_verify_needed_dirs(config)
    log.post_arg_parse_setup(config)

    display_obj.set_display(display_obj.FileDisplay(sys.stdout))

    return generate(config)
