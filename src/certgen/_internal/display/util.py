"""Internal certgen display utilities."""
import sys
import textwrap
from typing import List
from typing import Optional


def wrap_lines(msg: str) -> str:
    """Format lines nicely to 80 chars.

    :param str msg: Original message

    :returns: Formatted message respecting newlines in message
    :rtype: str

    """
    lines = msg.splitlines()
    fixed_l = []

    for line in lines:
        fixed_l.append(textwrap.fill(
            line,
            80,
            break_long_words=False,
            break_on_hyphens=False))

    return '\n'.join(fixed_l)


def input_line(prompt: Optional[str] = None) -> str:
    """Read one line from stdin, waiting as long as it takes.

    Behaves like the builtin input, but reads through `sys.stdin` so that
    tests and wrappers replacing it are honored.

    :param str prompt: prompt to provide for input

    :returns: user response, without its newline
    :rtype: str

    :raises EOFError: if stdin is closed

    """
    if prompt:
        sys.stdout.write(prompt)
        sys.stdout.flush()

    line = sys.stdin.readline()

    if not line:
        raise EOFError
    return line.rstrip('\n')


def summarize_domain_list(domains: List[str]) -> str:
    """Summarizes a list of domains in the format of:
        example.com.com and N more domains
    or if there is are only two domains:
        example.com and www.example.com
    or if there is only one domain:
        example.com

    :param list domains: `str` list of domains
    :returns: the domain list summary
    :rtype: str
    """
    if not domains:
        return ""

    length = len(domains)
    if length == 1:
        return domains[0]
    elif length == 2:
        return " and ".join(domains)
    else:
        return "{0} and {1} more domains".format(domains[0], length-1)
