"""certgen command line argument & config processing."""
import argparse
import copy
import logging
from typing import Any
from typing import List

import configargparse

import certgen
from certgen._internal import constants

logger = logging.getLogger(__name__)

SHORT_USAGE = """
  certgen [options] {generate,test} -d DOMAIN -e EMAIL

Issue a certificate for DOMAIN and www.DOMAIN using DNS-01 validation. You
will be asked to publish one TXT record per name.

  generate      Request a certificate from the Let's Encrypt production CA
  test          Request a certificate from the Let's Encrypt staging CA
"""

VERB_HELP = {
    "generate": "obtain a certificate from the production CA",
    "test": "obtain a test certificate from the staging CA",
}

# Subcommands that talk to the staging CA.
STAGING_VERBS = ("test",)


def flag_default(name: str) -> Any:
    """Default value for CLI flag."""
    return copy.deepcopy(constants.CLI_DEFAULTS[name])


class CustomHelpFormatter(argparse.HelpFormatter):
    """This is a clone of ArgumentDefaultsHelpFormatter, with bugfixes.

    In particular we fix https://bugs.python.org/issue28742
    """

    def _get_help_string(self, action: argparse.Action) -> str:
        helpstr = action.help or ""
        if '%(default)' not in helpstr and '(default:' not in helpstr:
            if action.default not in (argparse.SUPPRESS, None):
                defaulting_nargs = [argparse.OPTIONAL, argparse.ZERO_OR_MORE]
                if action.option_strings or action.nargs in defaulting_nargs:
                    helpstr += ' (default: %(default)s)'
        return helpstr


def positive_float(value: str) -> float:
    """Converts value to a float and checks that it is positive.

    This function should used as the type parameter for argparse
    arguments.

    :param str value: value provided on the command line

    :returns: float representation of value
    :rtype: float

    :raises argparse.ArgumentTypeError: if value isn't a positive number

    """
    try:
        float_value = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError("value must be a number")

    if float_value <= 0:
        raise argparse.ArgumentTypeError("value must be positive")
    return float_value


def nonnegative_int(value: str) -> int:
    """Converts value to an int and checks that it is not negative.

    :param str value: value provided on the command line

    :returns: integer representation of value
    :rtype: int

    :raises argparse.ArgumentTypeError: if value isn't a non-negative integer

    """
    try:
        int_value = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("value must be an integer")

    if int_value < 0:
        raise argparse.ArgumentTypeError("value must be non-negative")
    return int_value


def _add_request_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-d", "--domain", dest="domain", required=True, metavar="DOMAIN",
        help="Apex domain of the certificate. The www. variant is added "
             "automatically.")
    parser.add_argument(
        "-e", "--email", dest="email", required=True, metavar="EMAIL",
        help="Email address for important account notifications.")


def build_parser() -> configargparse.ArgParser:
    """Build the certgen argument parser.

    Options may also be set in a config file, keyed by their long name
    without the leading dashes.

    :returns: the parser
    :rtype: configargparse.ArgParser

    """
    parser = configargparse.ArgParser(
        prog="certgen",
        usage=SHORT_USAGE,
        formatter_class=CustomHelpFormatter,
        args_for_setting_config_path=["-c", "--config"],
        default_config_files=flag_default("config_files"),
        config_arg_help_message="path to config file (default: {0})".format(
            " and ".join(flag_default("config_files"))))

    # --help is automatically provided by argparse
    parser.add_argument(
        "-v", "--version", action="version",
        version="%(prog)s {0}".format(certgen.__version__),
        help="show program's version number and exit")
    parser.add_argument(
        "--verbose", dest="verbose_count", action="count",
        default=flag_default("verbose_count"), help="This flag can be used "
        "multiple times to incrementally increase the verbosity of output, "
        "e.g. --verbose --verbose.")
    parser.add_argument(
        "-q", "--quiet", dest="quiet", action="store_true",
        default=flag_default("quiet"),
        help="Silence all output except errors. The DNS instructions are "
             "still shown.")
    parser.add_argument(
        "--debug", action="store_true", default=flag_default("debug"),
        env_var=constants.DEBUG_ENV_VAR,
        help="Show tracebacks in case of errors.")
    parser.add_argument(
        "--config-dir", default=flag_default("config_dir"),
        help="Directory holding the ACME account key and logs.")
    parser.add_argument(
        "--output-dir", dest="output_root", default=flag_default("output_root"),
        help="Certificates are written to a subdirectory named after the "
             "base domain.")
    parser.add_argument(
        "--server", default=flag_default("server"),
        help="ACME directory URL. Overrides the CA chosen by the subcommand.")
    parser.add_argument(
        "--rsa-key-size", type=int, metavar="N",
        default=flag_default("rsa_key_size"),
        help="Size of the RSA keys.")
    parser.add_argument(
        "--challenge-timeout", type=positive_float, metavar="SECONDS",
        default=flag_default("challenge_timeout"),
        help="How long to wait for the CA to check each DNS record.")
    parser.add_argument(
        "--challenge-poll-interval", type=positive_float, metavar="SECONDS",
        default=flag_default("challenge_poll_interval"),
        help="Time between DNS challenge status checks.")
    parser.add_argument(
        "--issuance-timeout", type=positive_float, metavar="SECONDS",
        default=flag_default("issuance_timeout"),
        help="How long to wait for the CA to issue the certificate.")
    parser.add_argument(
        "--issuance-poll-interval", type=positive_float, metavar="SECONDS",
        default=flag_default("issuance_poll_interval"),
        help="Time between order status checks.")
    parser.add_argument(
        "--no-verify-ssl", action="store_true",
        default=flag_default("no_verify_ssl"),
        help="Disable verification of the ACME server's certificate.")
    parser.add_argument(
        "--max-log-backups", type=nonnegative_int,
        default=flag_default("max_log_backups"),
        help="Specifies the maximum number of backup logs that should "
             "be kept by certgen's built in log rotation.")

    parser.add_argument(
        "verb", choices=sorted(VERB_HELP), metavar="{generate,test}",
        help="; ".join("{0}: {1}".format(verb, text) for verb, text in sorted(VERB_HELP.items())))
    _add_request_arguments(parser)

    return parser


def prepare_and_parse_args(args: List[str]) -> argparse.Namespace:
    """Returns parsed command line arguments.

    :param list args: command line arguments with the program name removed

    :returns: parsed command line arguments
    :rtype: argparse.Namespace

    """
    parser = build_parser()
    parsed_args = parser.parse_args(args)
    parsed_args.staging = parsed_args.verb in STAGING_VERBS
    logger.debug("Parsed arguments for %s", parsed_args.verb)
    return parsed_args
