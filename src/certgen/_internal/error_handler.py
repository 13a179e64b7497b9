"""Registers functions to be called if an exception or signal occurs."""
import functools
import logging
import os
import signal
import traceback
from types import TracebackType
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Type
from typing import Union

from certgen import errors

logger = logging.getLogger(__name__)


# Signals whose default action terminates the process. They are turned into
# errors.SignalExit inside an ErrorHandler so cleanup runs before the process
# goes away. Signals already ignored by the parent are left alone.
_SIGNALS: List[int] = []
if os.name != "nt":
    _SIGNALS.append(signal.SIGTERM)
    for signal_code in [signal.SIGHUP, signal.SIGQUIT,
                        signal.SIGXCPU, signal.SIGXFSZ]:
        if signal.getsignal(signal_code) != signal.SIG_IGN:
            _SIGNALS.append(signal_code)


class ErrorHandler:
    """Context manager for running code that must be cleaned up on failure.

    Registered functions are called when an exception (excluding
    SystemExit) or one of the handled signals interrupts the body::

        handler = ErrorHandler(cleanup_func, *cleanup_args)
        handler.register(other_cleanup)

        with handler:
            do_something()

    Cleanup functions run in last in first out order, each exactly once.
    A cleanup function that raises is logged and the next one is called.
    Signals received during the body raise `errors.SignalExit`; once
    cleanup is done, the signals are delivered again to the handlers that
    were installed before entering the context.

    """
    def __init__(self, func: Optional[Callable[..., Any]] = None,
                 *args: Any, **kwargs: Any) -> None:
        self.body_executed = False
        self.funcs: List[Callable[[], Any]] = []
        self.prev_handlers: Dict[int, Union[int, None, Callable]] = {}
        self.received_signals: List[int] = []
        if func is not None:
            self.register(func, *args, **kwargs)

    def __enter__(self) -> None:
        self.body_executed = False
        self._set_signal_handlers()

    def __exit__(self, exec_type: Optional[Type[BaseException]],
                 exec_value: Optional[BaseException],
                 trace: Optional[TracebackType]) -> bool:
        self.body_executed = True
        retval = False
        if exec_type is None or exec_type is SystemExit:
            self._reset_signal_handlers()
            return retval
        if exec_type is errors.SignalExit:
            logger.debug("Encountered signals: %s", self.received_signals)
            retval = True
        else:
            logger.debug("Encountered exception:\n%s", "".join(
                traceback.format_exception(exec_type, exec_value, trace)))

        if self._should_call(exec_type):
            self._call_registered()
        else:
            self.funcs.clear()
        self._reset_signal_handlers()
        self._call_signals()
        return retval

    def register(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Sets func to be run with the given arguments during cleanup.

        :param function func: function to be called in case of an error

        """
        self.funcs.append(functools.partial(func, *args, **kwargs))

    def _should_call(self, exec_type: Optional[Type[BaseException]]) -> bool:
        """Whether the registered functions run for this way of leaving the body."""
        return True

    def _call_registered(self) -> None:
        """Calls all registered functions"""
        logger.debug("Calling registered functions")
        while self.funcs:
            try:
                self.funcs[-1]()
            except Exception as exc:  # pylint: disable=broad-except
                output = traceback.format_exception_only(type(exc), exc)
                logger.error("Encountered exception during recovery: %s",
                             ''.join(output).rstrip())
            self.funcs.pop()

    def _set_signal_handlers(self) -> None:
        """Sets signal handlers for signals in _SIGNALS."""
        for signum in _SIGNALS:
            prev_handler = signal.getsignal(signum)
            # If prev_handler is None, the handler was set outside of Python
            if prev_handler is not None:
                self.prev_handlers[signum] = prev_handler
                signal.signal(signum, self._signal_handler)

    def _reset_signal_handlers(self) -> None:
        """Resets signal handlers for signals in _SIGNALS."""
        for signum, handler in self.prev_handlers.items():
            signal.signal(signum, handler)
        self.prev_handlers.clear()

    def _signal_handler(self, signum: int, unused_frame: Any) -> None:
        """Replacement function for handling received signals.

        Store the received signal. If we are executing the code block in
        the body of the context manager, stop by raising signal exit.

        :param int signum: number of current signal

        """
        self.received_signals.append(signum)
        if not self.body_executed:
            raise errors.SignalExit

    def _call_signals(self) -> None:
        """Finally call the deferred signals."""
        for signum in self.received_signals:
            logger.debug("Calling signal %s", signum)
            os.kill(os.getpid(), signum)


class InterruptHandler(ErrorHandler):
    """Context manager that only cleans up when the body is interrupted.

    Same usage as `ErrorHandler`, but the registered functions are called
    for KeyboardInterrupt, cancellation and handled signals only. Other
    failures leave whatever the body produced in place.

    """
    def _should_call(self, exec_type: Optional[Type[BaseException]]) -> bool:
        return exec_type is not None and issubclass(
            exec_type, (KeyboardInterrupt, errors.IssuanceCancelled, errors.SignalExit))
