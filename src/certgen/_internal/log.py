"""Logging setup for certgen.

Logging is configured in two steps. `pre_arg_parse_setup` runs first and
only shows errors on the terminal, while every record is kept in memory
and spilled to a private temporary file if certgen dies before the
command line is parsed. `post_arg_parse_setup` then opens the rotating
log file under the config directory, hands it the buffered records and
sets the terminal verbosity requested by the operator.

Log records describe what certgen does. Anything the operator must read
or act on, like the DNS records to publish, goes through
`certgen.display.util` instead.

"""
import functools
import logging
import logging.handlers
import os
import shutil
import sys
import tempfile
import traceback
from types import TracebackType
from typing import Any
from typing import IO
from typing import Optional
from typing import Tuple
from typing import Type

from certgen import configuration
from certgen import errors
from certgen import util
from certgen._internal import constants

CLI_FMT = "%(message)s"
FILE_FMT = "%(asctime)s:%(levelname)s:%(name)s:%(message)s"

# Size at which the log file would roll over on its own. Rollover happens
# once per run instead, so this only has to exceed what one run writes.
MAX_LOG_BYTES = 2 ** 20

logger = logging.getLogger(__name__)


def pre_arg_parse_setup() -> None:
    """Install the terminal and in-memory handlers used until arguments are parsed.

    Also registers `logging.shutdown` at exit and replaces
    `sys.excepthook` so that fatal errors are reported before the log
    file exists.

    """
    temp_handler = TempHandler()
    temp_handler.setFormatter(logging.Formatter(FILE_FMT))
    temp_handler.setLevel(logging.DEBUG)
    memory_handler = MemoryHandler(temp_handler)

    stream_handler = ColoredStreamHandler()
    stream_handler.setFormatter(logging.Formatter(CLI_FMT))
    stream_handler.setLevel(constants.QUIET_LOGGING_LEVEL)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(memory_handler)
    root_logger.addHandler(stream_handler)

    util.atexit_register(logging.shutdown)
    sys.excepthook = functools.partial(
        pre_arg_parse_except_hook, memory_handler,
        debug='--debug' in sys.argv or _debug_env_set(),
        quiet='--quiet' in sys.argv or '-q' in sys.argv,
        log_path=temp_handler.path)


def _debug_env_set() -> bool:
    value = os.environ.get(constants.DEBUG_ENV_VAR, '')
    return value.lower() in constants.TRUE_ENV_VALUES


def post_arg_parse_setup(config: configuration.NamespaceConfig) -> None:
    """Switch from the temporary handlers to the rotating log file.

    Must follow `pre_arg_parse_setup` with the root handlers it installed
    still in place.

    :param certgen.configuration.NamespaceConfig config: Configuration object

    """
    file_handler, file_path = setup_log_file_handler(
        config, constants.LOG_FILENAME, FILE_FMT)

    root_logger = logging.getLogger()
    memory_handler = stderr_handler = None
    for handler in root_logger.handlers:
        if isinstance(handler, ColoredStreamHandler):
            stderr_handler = handler
        elif isinstance(handler, MemoryHandler):
            memory_handler = handler
    msg = 'Logging handlers installed before argument parsing are missing'
    assert memory_handler is not None and stderr_handler is not None, msg

    root_logger.addHandler(file_handler)
    root_logger.removeHandler(memory_handler)
    temp_handler = getattr(memory_handler, 'target', None)
    memory_handler.setTarget(file_handler)  # pylint: disable=no-member
    memory_handler.flush(force=True)  # pylint: disable=unexpected-keyword-arg
    memory_handler.close()
    if temp_handler:
        temp_handler.close()

    if config.quiet:
        level = constants.QUIET_LOGGING_LEVEL
    else:
        level = constants.DEFAULT_LOGGING_LEVEL - config.verbose_count * 10

    stderr_handler.setLevel(level)
    logger.debug('Terminal logging level set to %d', level)

    if not config.quiet:
        print(f'Saving debug log to {file_path}', file=sys.stderr)

    sys.excepthook = functools.partial(
        post_arg_parse_except_hook,
        debug=config.debug, quiet=config.quiet, log_path=file_path)


def setup_log_file_handler(config: configuration.NamespaceConfig, logfile: str,
                           fmt: str) -> Tuple[logging.Handler, str]:
    """Open ``logfile`` in the logs directory, starting a new file for this run.

    :param certgen.configuration.NamespaceConfig config: Configuration object
    :param str logfile: basename for the log file
    :param str fmt: logging format string

    :returns: file handler and absolute path to the log file
    :rtype: tuple

    :raises errors.Error: if the logs directory or file cannot be written

    """
    try:
        util.make_or_verify_dir(config.logs_dir, 0o700)
    except OSError as error:
        raise errors.Error(util.PERM_ERR_FMT.format(error))
    log_file_path = os.path.join(config.logs_dir, logfile)
    try:
        handler = logging.handlers.RotatingFileHandler(
            log_file_path, maxBytes=MAX_LOG_BYTES,
            backupCount=config.max_log_backups)
    except OSError as error:
        raise errors.Error(util.PERM_ERR_FMT.format(error))
    # A no-op when max_log_backups is 0.
    handler.doRollover()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=fmt))
    return handler, log_file_path


class ColoredStreamHandler(logging.StreamHandler):
    """Stream handler printing warnings and errors in red on a terminal.

    :ivar bool colored: whether the stream is a tty
    :ivar int red_level: lowest level printed in red

    """
    def __init__(self, stream: Optional[IO] = None) -> None:
        super().__init__(stream)
        self.colored = (sys.stderr.isatty() if stream is None else
                        stream.isatty())
        self.red_level = logging.WARNING

    def format(self, record: logging.LogRecord) -> str:
        out = super().format(record)
        if self.colored and record.levelno >= self.red_level:
            return ''.join((util.ANSI_SGR_RED, out, util.ANSI_SGR_RESET))
        return out


class MemoryHandler(logging.handlers.MemoryHandler):
    """Memory handler that only flushes when asked to with ``force=True``.

    `logging.shutdown` and a full buffer do not flush it, so the records
    reach whichever target is set when certgen decides to flush.

    """
    def __init__(self, target: Optional[logging.Handler] = None,
                 capacity: int = 10000) -> None:
        super().__init__(capacity, target=target)

    def close(self) -> None:
        """Close the handler but keep its target."""
        # logging may only hold a weak reference to the target; keeping it
        # here lets the target still be flushed and closed at shutdown.
        target = getattr(self, 'target')
        super().close()
        self.target = target

    def flush(self, force: bool = False) -> None:  # pylint: disable=arguments-differ
        """Send the buffered records to the target if ``force`` is set."""
        if force:
            super().flush()

    def shouldFlush(self, record: logging.LogRecord) -> bool:
        return False


class TempHandler(logging.StreamHandler):
    """Writes records to a private temporary file.

    The file is created with mode 0600 in its own directory, which is
    removed on close if nothing was logged.

    :ivar str path: path to the temporary log file

    """
    def __init__(self) -> None:
        self._workdir = tempfile.mkdtemp(prefix="certgen_log")
        self.path = os.path.join(self._workdir, 'log')
        stream = util.safe_open(self.path, mode='w', chmod=0o600)
        super().__init__(stream)
        self.stream: IO[str]
        self._delete = True

    def emit(self, record: logging.LogRecord) -> None:
        self._delete = False
        super().emit(record)

    def close(self) -> None:
        """Close the file, deleting it if it stayed empty."""
        self.acquire()
        try:
            # StreamHandler.close() leaves the stream open
            self.stream.close()
            if self._delete:
                shutil.rmtree(self._workdir)
            self._delete = False
            super().close()
        finally:
            self.release()


def pre_arg_parse_except_hook(memory_handler: MemoryHandler,
                              *args: Any, **kwargs: Any) -> None:
    """Report a fatal error, then flush the buffered records.

    The records, including the ones logged while reporting, end up in
    the temporary log file. argparse exits through SystemExit, which
    never reaches ``sys.excepthook``, so usage errors and ``--help``
    leave nothing behind.

    :param MemoryHandler memory_handler: memory handler to flush
    :param tuple args: args for post_arg_parse_except_hook
    :param dict kwargs: kwargs for post_arg_parse_except_hook

    """
    try:
        post_arg_parse_except_hook(*args, **kwargs)
    finally:
        memory_handler.flush(force=True)


def post_arg_parse_except_hook(exc_type: Type[BaseException], exc_value: BaseException,
                               trace: TracebackType, debug: bool, quiet: bool,
                               log_path: str) -> None:
    """Log a fatal exception and exit with a nonzero status.

    certgen errors are reported with their message only; the traceback
    goes to the log file, or to the terminal as well with ``debug``.
    Interruptions exit with `constants.EXIT_CANCELLED`.

    :param type exc_type: type of the raised exception
    :param BaseException exc_value: raised exception
    :param traceback trace: traceback of where the exception was raised
    :param bool debug: True if the traceback should be shown to the user
    :param bool quiet: True if certgen is running in quiet mode
    :param str log_path: path to file or directory containing the log

    """
    exc_info = (exc_type, exc_value, trace)
    exit_func = lambda: sys.exit(1) if quiet else exit_with_advice(log_path)
    if issubclass(exc_type, (KeyboardInterrupt, errors.IssuanceCancelled)):
        logger.debug('Exiting due to user request:', exc_info=exc_info)
        logger.error('Exiting due to user request.')
        sys.exit(constants.EXIT_CANCELLED)
    if debug or not issubclass(exc_type, Exception):
        assert constants.QUIET_LOGGING_LEVEL <= logging.ERROR
        logger.error('Exiting abnormally:', exc_info=exc_info)
    else:
        logger.debug('Exiting abnormally:', exc_info=exc_info)
        if issubclass(exc_type, errors.Error):
            logger.error(str(exc_value))
            exit_func()
        logger.error('An unexpected error occurred:')
        output = traceback.format_exception_only(exc_type, exc_value)
        logger.error(''.join(output).rstrip())
    exit_func()


def exit_with_advice(log_path: str) -> None:
    """Exit with a message pointing at the debug log.

    :param str log_path: path to file or directory containing the log

    """
    msg = "See the "
    if os.path.isdir(log_path):
        msg += f'logfiles in {log_path} '
    else:
        msg += f"logfile {log_path} "
    msg += 'or re-run certgen with --verbose or --debug for more details.'
    sys.exit(msg)
