"""certgen client API."""
import functools
import logging
from typing import Callable
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Tuple

from certgen import configuration
from certgen import crypto_util
from certgen import errors
from certgen import interfaces
from certgen import util
from certgen._internal import acme_session
from certgen._internal import auth_handler
from certgen._internal import constants
from certgen._internal import error_handler
from certgen._internal import issuance
from certgen._internal import storage
from certgen._internal.account import AccountIdentity
from certgen._internal.account import ensure_identity
from certgen._internal.display import util as internal_display_util
from certgen.display import util as display_util

logger = logging.getLogger(__name__)

AcmeFactory = Callable[[AccountIdentity], interfaces.AcmeClient]


class ClientSession(NamedTuple):
    """Registered ACME account ready to place orders.

    :ivar interfaces.AcmeClient acme: authenticated ACME capability
    :ivar AccountIdentity identity: account key in use
    :ivar str contact: contact email given at registration
    :ivar interfaces.RegistrationOutcome outcome: whether the account was
        just created or already existed

    """
    acme: interfaces.AcmeClient
    identity: AccountIdentity
    contact: str
    outcome: interfaces.RegistrationOutcome


def register(identity: AccountIdentity, contact_email: str,
             directory_url: Optional[str] = None,
             acme_factory: AcmeFactory = acme_session.acme_from_identity) -> ClientSession:
    """Register the account key with the CA, or find its existing account.

    Running twice with the same key is the normal case: the CA reports
    that the account exists and the session uses it.

    :param AccountIdentity identity: account key
    :param str contact_email: contact for the account
    :param str directory_url: ACME directory, defaults to the identity's
    :param acme_factory: builds the ACME capability for an identity

    :returns: the session
    :rtype: ClientSession

    :raises errors.RegistrationError: if the CA cannot be reached or
        refuses the registration

    """
    if directory_url is not None and directory_url != identity.directory_url:
        identity = identity._replace(directory_url=directory_url)

    try:
        acme = acme_factory(identity)
        outcome = acme.new_account(contact_email, terms_of_service_agreed=True)
    except acme_session.PROTOCOL_ERRORS as error:
        raise errors.RegistrationError(
            "Unable to register an account with {0}: {1}".format(
                identity.directory_url, acme_session.describe_error(error)))

    if outcome is interfaces.RegistrationOutcome.EXISTING:
        logger.info("Using the existing account %s for %s", identity.id[:8], contact_email)
    else:
        logger.info("Registered new account %s for %s", identity.id[:8], contact_email)
    return ClientSession(acme, identity, contact_email, outcome)


def open_order(session: ClientSession, domains: List[str]
               ) -> Tuple[interfaces.Order, List[interfaces.Authorization]]:
    """Open one order covering all of ``domains``.

    :param ClientSession session: registered session
    :param list domains: names to request

    :returns: the order and its authorizations, in the order of ``domains``
    :rtype: tuple

    :raises errors.OrderError: if the CA refuses the order or answers with
        authorizations that do not match ``domains``

    """
    try:
        order = session.acme.new_order(domains)
        authorizations = order.authorizations
    except acme_session.PROTOCOL_ERRORS as error:
        raise errors.OrderError("The CA refused the order for {0}: {1}".format(
            ", ".join(domains), acme_session.describe_error(error)))
    logger.debug("Opened order %s", order.uri)

    by_domain = {}
    for authz in authorizations:
        if authz.domain not in domains:
            raise errors.OrderError(
                "The CA returned an authorization for {0}, which was not "
                "requested".format(authz.domain))
        by_domain[authz.domain] = authz
    missing = [domain for domain in domains if domain not in by_domain]
    if missing:
        raise errors.OrderError(
            "The CA returned no authorization for {0}".format(", ".join(missing)))
    return order, [by_domain[domain] for domain in domains]


class Client:
    """certgen's client.

    Runs one issuance: account key, registration, order, DNS validation,
    finalization and saving of the files.

    :ivar certgen.configuration.NamespaceConfig config: Client configuration.
    :ivar acme_factory: builds the ACME capability for an identity
    :ivar .AuthHandler auth_handler: walks the operator through DNS-01

    """

    def __init__(self, config: configuration.NamespaceConfig,
                 acme_factory: Optional[AcmeFactory] = None) -> None:
        self.config = config
        if acme_factory is None:
            acme_factory = functools.partial(acme_session.acme_from_identity,
                                             verify_ssl=not config.no_verify_ssl)
        self.acme_factory = acme_factory
        self.auth_handler = auth_handler.AuthHandler(
            poll_interval=config.challenge_poll_interval,
            timeout=config.challenge_timeout)

    def run(self) -> str:
        """Obtain and save a certificate for the configured domain.

        :returns: path to the zip bundle
        :rtype: str

        :raises errors.GenerationError: if any step fails
        :raises errors.IssuanceCancelled: if the operator interrupts the run
        :raises errors.SignalExit: if a handled signal stops the run

        """
        request = self.config.request
        with error_handler.ErrorHandler(self._abandon, request.domains):
            material, bundle_path = self._issue(request)
            self._report_success(request, material, bundle_path)
            return bundle_path
        # The handler swallowed a signal and delivered it to the previous
        # handler, which did not stop the process.
        raise errors.SignalExit("Certificate generation was stopped by a signal.")

    def _issue(self, request: configuration.IssuanceRequest
               ) -> Tuple[issuance.CertificateMaterial, str]:
        config = self.config
        domains = request.domains
        try:
            identity = ensure_identity(config.account_key_path, config.server,
                                       key_size=config.rsa_key_size)
            session = register(identity, request.email, acme_factory=self.acme_factory)
            order, authorizations = open_order(session, domains)
            self.auth_handler.handle_authorizations(authorizations)
            material = issuance.finalize(order, domains,
                                         key_size=config.rsa_key_size,
                                         poll_interval=config.issuance_poll_interval,
                                         timeout=config.issuance_timeout)
            return material, storage.persist(config.output_dir, material)
        except (errors.IssuanceCancelled, errors.SignalExit, errors.GenerationError):
            raise
        except errors.Error as error:
            logger.debug("Certificate generation failed:", exc_info=True)
            raise errors.GenerationError(error) from error

    def _abandon(self, domains: List[str]) -> None:
        logger.info("No certificate was saved for %s",
                    internal_display_util.summarize_domain_list(domains))

    def _report_success(self, request: configuration.IssuanceRequest,
                        material: issuance.CertificateMaterial, bundle_path: str) -> None:
        output_dir = self.config.output_dir
        lines = [
            "Successfully received certificate for {0}.".format(", ".join(request.domains)),
            "Files saved in: {0}".format(output_dir),
            "  - {0}".format(constants.CERT_FILENAME),
            "  - {0}".format(constants.KEY_FILENAME),
            "  - {0}".format(constants.CHAIN_FILENAME),
            "All three are bundled in {0}".format(bundle_path),
        ]
        try:
            expiry = crypto_util.notAfter(material.fullchain_pem)
        except (errors.Error, ValueError) as error:
            logger.debug("Unable to read the certificate expiry date: %s", error)
        else:
            lines.append("This certificate expires on {0}.".format(expiry.date()))
        if util.is_staging(self.config.server):
            lines.append("This is a test certificate from a staging CA; "
                         "browsers will not trust it.")
        display_util.notify("\n".join(lines))
