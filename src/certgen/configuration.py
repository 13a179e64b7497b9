"""certgen user-supplied configuration."""
import argparse
import logging
import os
from typing import Any
from typing import List
from typing import NamedTuple
from typing import Optional

from certgen import errors
from certgen import util
from certgen._internal import constants

logger = logging.getLogger(__name__)


class IssuanceRequest(NamedTuple):
    """What the operator asked for.

    :ivar str domain: apex domain, possibly given with its ``www.`` prefix
    :ivar str email: ACME account contact
    :ivar bool staging: whether to use the staging CA

    """
    domain: str
    email: str
    staging: bool

    @property
    def base_domain(self) -> str:
        """Apex domain, used to name the output directory."""
        return util.strip_www(self.domain)

    @property
    def domains(self) -> List[str]:
        """Names to put in the certificate, apex first."""
        return util.derive_domains(self.domain)

    @property
    def directory_url(self) -> str:
        """Let's Encrypt directory matching ``staging``."""
        return constants.STAGING_URI if self.staging else constants.PRODUCTION_URI


class NamespaceConfig:
    """Configuration wrapper around :class:`argparse.Namespace`.

    The following paths are resolved from
    :attr:`~certgen.configuration.NamespaceConfig.config_dir` and
    :attr:`~certgen.configuration.NamespaceConfig.output_root` with names
    defined in :py:mod:`certgen._internal.constants`:

      - `logs_dir`
      - `account_key_path`
      - `output_dir`

    :ivar namespace: Namespace typically produced by
        :meth:`argparse.ArgumentParser.parse_args`.
    :type namespace: :class:`argparse.Namespace`

    :raises errors.ConfigurationError: if the values make no sense

    """

    def __init__(self, namespace: argparse.Namespace) -> None:
        self.namespace: argparse.Namespace
        # Avoid recursion loop because of the delegation defined in __setattr__
        object.__setattr__(self, 'namespace', namespace)

        self.namespace.config_dir = os.path.abspath(
            os.path.expanduser(self.namespace.config_dir))
        self.namespace.output_root = os.path.abspath(
            os.path.expanduser(self.namespace.output_root))

        # Check command line parameters sanity, and error out in case of problem.
        _check_config_sanity(self)

    # Delegate any attribute not explicitly defined to the underlying namespace object.
    def __getattr__(self, name: str) -> Any:
        return getattr(self.namespace, name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self.namespace, name, value)

    @property
    def request(self) -> IssuanceRequest:
        """The issuance request of this run."""
        return IssuanceRequest(self.namespace.domain, self.namespace.email,
                               self.namespace.staging)

    @property
    def server(self) -> str:
        """ACME Directory Resource URI.

        ``--server`` wins over the environment chosen by the subcommand.
        """
        return self.namespace.server or self.request.directory_url

    @property
    def email(self) -> str:
        """Email used for registration and recovery contact."""
        return self.namespace.email

    @property
    def rsa_key_size(self) -> int:
        """Size of the RSA keys, for the account and the certificate."""
        return self.namespace.rsa_key_size

    @property
    def config_dir(self) -> str:
        """Configuration directory."""
        return self.namespace.config_dir

    @property
    def logs_dir(self) -> str:
        """Logs directory."""
        return os.path.join(self.namespace.config_dir, constants.LOGS_DIR)

    @property
    def account_key_path(self) -> str:
        """ACME account private key."""
        return os.path.join(self.namespace.config_dir, constants.ACCOUNT_KEY_FILENAME)

    @property
    def output_root(self) -> str:
        """Directory holding one output directory per base domain."""
        return self.namespace.output_root

    @property
    def output_dir(self) -> str:
        """Where the artifacts of this run are written."""
        return os.path.join(self.namespace.output_root, self.request.base_domain)

    @property
    def no_verify_ssl(self) -> bool:
        """Disable verification of the ACME server's certificate.

        The root certificates trusted by certgen can be overriden by setting the
        REQUESTS_CA_BUNDLE environment variable.
        """
        return self.namespace.no_verify_ssl

    @property
    def challenge_timeout(self) -> float:
        """How long (in seconds) to wait for the CA to check each DNS record."""
        return self.namespace.challenge_timeout

    @property
    def issuance_timeout(self) -> float:
        """How long (in seconds) to wait for the CA to issue the certificate."""
        return self.namespace.issuance_timeout


def _check_config_sanity(config: NamespaceConfig) -> None:
    """Validate command line options and display error message if
    requirements are not met.

    :param config: NamespaceConfig instance holding user configuration
    :type args: :class:`certgen.configuration.NamespaceConfig`

    """
    domain: Optional[str] = config.namespace.domain
    if not domain:
        raise errors.ConfigurationError("A domain is required (-d/--domain).")
    config.namespace.domain = util.enforce_domain_sanity(domain)

    email: Optional[str] = config.namespace.email
    if not email:
        raise errors.ConfigurationError("A contact email is required (-e/--email).")
    email = email.strip()
    if not util.safe_email(email):
        raise errors.ConfigurationError("Invalid email address: {0}".format(email))
    config.namespace.email = email

    if config.namespace.rsa_key_size < constants.MIN_RSA_KEY_SIZE:
        raise errors.ConfigurationError(
            "RSA key size must be at least {0} bits, got {1}".format(
                constants.MIN_RSA_KEY_SIZE, config.namespace.rsa_key_size))

    for name in ("challenge_timeout", "challenge_poll_interval",
                 "issuance_timeout", "issuance_poll_interval"):
        if getattr(config.namespace, name) <= 0:
            raise errors.ConfigurationError(
                "--{0} must be a positive number of seconds".format(name.replace("_", "-")))
