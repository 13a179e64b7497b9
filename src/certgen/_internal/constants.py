"""certgen constants."""
import logging
import os
from typing import Any
from typing import Dict

PRODUCTION_URI = "https://acme-v02.api.letsencrypt.org/directory"
"""Let's Encrypt production ACME v2 directory."""

STAGING_URI = "https://acme-staging-v02.api.letsencrypt.org/directory"
"""Let's Encrypt staging ACME v2 directory."""

CLI_DEFAULTS: Dict[str, Any] = dict(  # noqa
    config_files=[
        os.path.join("~", ".certgen", "cli.ini"),
        # https://freedesktop.org/wiki/Software/xdg-user-dirs/
        os.path.join(os.environ.get("XDG_CONFIG_HOME", "~/.config"),
                     "certgen", "cli.ini"),
    ],

    verbose_count=0,
    quiet=False,
    debug=False,
    max_log_backups=10,
    domain=None,
    email=None,
    staging=False,
    server=None,
    no_verify_ssl=False,
    rsa_key_size=4096,
    challenge_poll_interval=5.0,
    challenge_timeout=600.0,
    issuance_poll_interval=2.0,
    issuance_timeout=90.0,
    config_dir=os.path.join("~", ".certgen"),
    output_root=os.path.join("~", ".ssl_output"),
)

MIN_RSA_KEY_SIZE = 2048
"""Smallest RSA modulus accepted for account and certificate keys."""

ACCOUNT_KEY_FILENAME = "acme_account.key"
"""Account private key file, inside the config directory."""

CONFIG_DIRS_MODE = 0o700
"""Mode of the config directory, which holds the account key."""

LOGS_DIR = "logs"
"""Logs directory, relative to the config directory."""

LOG_FILENAME = "certgen.log"

KEY_FILENAME = "private_key.pem"
CERT_FILENAME = "certificate.crt"
CHAIN_FILENAME = "ca_bundle.pem"
BUNDLE_FILENAME = "cert_bundle.zip"

DEBUG_ENV_VAR = "CERTGEN_DEBUG"
"""Environment variable enabling tracebacks in error output."""

TRUE_ENV_VALUES = ("true", "yes", "on", "1")
"""Values of `DEBUG_ENV_VAR` that count as set, as ConfigArgParse reads them."""

QUIET_LOGGING_LEVEL = logging.ERROR
"""Logging level to use in quiet mode."""

DEFAULT_LOGGING_LEVEL = logging.WARNING
"""Default logging level to use when not in quiet mode."""

EXIT_CANCELLED = 130
"""Exit status when the operator interrupts the run."""
