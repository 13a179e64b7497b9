"""This module defines the display implementation used in certgen"""
import logging
import os
from typing import Optional
from typing import TextIO

from certgen._internal.display import util

logger = logging.getLogger(__name__)

# Display boundary (alternates spaces, so when copy-pasted, markdown doesn't
# interpret it as a heading)
SIDE_FRAME = ("- " * 39) + "-"


# Holding the display in an attribute avoids rebinding a module global from
# inside functions.
class _DisplayService:
    def __init__(self) -> None:
        self.display: Optional[FileDisplay] = None


_SERVICE = _DisplayService()


class FileDisplay:
    """File-based display.

    Messages go to ``outfile``; answers are read from stdin. certgen
    always needs the operator for DNS changes, so there is no
    non-interactive variant.

    """

    def __init__(self, outfile: TextIO) -> None:
        super().__init__()
        self.outfile = outfile

    def notification(self, message: str, pause: bool = True, wrap: bool = True,
                     decorate: bool = True) -> None:
        """Displays a notification and waits for user acceptance.

        :param str message: Message to display
        :param bool pause: Whether or not the program should pause for the
            user's confirmation
        :param bool wrap: Whether or not the application should wrap text
        :param bool decorate: Whether to surround the message with a
            decorated frame

        :raises EOFError: if stdin is closed while pausing

        """
        if wrap:
            message = util.wrap_lines(message)

        logger.debug("Notifying user: %s", message)

        self.outfile.write(
            (("{line}{frame}{line}" if decorate else "") +
             "{msg}{line}" +
             ("{frame}{line}" if decorate else ""))
                .format(line=os.linesep, frame=SIDE_FRAME, msg=message)
        )
        self.outfile.flush()

        if pause:
            util.input_line("Press Enter to Continue")


def get_display() -> FileDisplay:
    """Get the display utility.

    :return: the display utility
    :rtype: FileDisplay
    :raise: ValueError if the display utility is not configured yet.

    """
    if not _SERVICE.display:
        raise ValueError("This function was called too early in certgen's execution "
                         "as the display utility hasn't been configured yet.")
    return _SERVICE.display


def set_display(display: FileDisplay) -> None:
    """Set the display service.

    :param FileDisplay display: the display service

    """
    _SERVICE.display = display
