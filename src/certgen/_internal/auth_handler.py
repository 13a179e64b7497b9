"""DNS-01 authorization handling."""
import logging
from typing import List

from certgen import errors
from certgen import interfaces
from certgen._internal import acme_session
from certgen._internal import polling
from certgen.display import util as display_util

logger = logging.getLogger(__name__)

# Challenge states in which the CA has not decided yet.
CHALLENGE_IN_FLIGHT = ("pending", "processing")

# Authorization states that can no longer become valid.
AUTHZ_DEAD = ("invalid", "expired", "deactivated", "revoked")


class AuthHandler:
    """Walks the operator through DNS-01 validation of each authorization.

    Authorizations are handled one at a time: the operator publishes the
    TXT record, confirms, and the CA is asked to check it before moving on
    to the next one.

    :ivar float poll_interval: seconds between challenge status checks
    :ivar float timeout: seconds to wait for the CA on each challenge

    """

    _DNS_INSTRUCTIONS = """\
Please deploy a DNS TXT record for {domain}:

Record Name:  {name}
Record Type:  TXT
Record Value: {validation}
"""
    _SUBSEQUENT_DNS_CHALLENGE_INSTRUCTIONS = """
(This must be set up in addition to the previous records; do not remove or
replace them yet. You might be asked to create multiple distinct TXT records
with the same name. This is permitted by DNS standards.)
"""
    _DNS_VERIFY_INSTRUCTIONS = """
Before continuing, verify the TXT record has been deployed. Depending on the DNS
provider, this may take from a few seconds to several minutes. You can check it
with a tool such as `dig TXT {name}` or https://dnschecker.org.
"""

    def __init__(self, poll_interval: float = 5.0, timeout: float = 600.0) -> None:
        self.poll_interval = poll_interval
        self.timeout = timeout

    def handle_authorizations(self, authorizations: List[interfaces.Authorization]) -> None:
        """Get every authorization of an order to ``valid``.

        :param list authorizations: authorizations of the order, in the
            order the operator should be asked about them

        :raises errors.AuthorizationError: if an authorization cannot be
            validated; `errors.DNSValidationError` and
            `errors.ValidationTimeout` carry the domain and last status
        :raises errors.IssuanceCancelled: if the operator interrupts the run

        """
        if not authorizations:
            raise errors.AuthorizationError('No authorization to handle.')

        prompted = False
        for authz in authorizations:
            if authz.status == "valid":
                logger.info("Authorization for %s is already valid, skipping", authz.domain)
                continue
            if authz.status in AUTHZ_DEAD:
                raise errors.DNSValidationError(authz.domain, authz.status)

            challenge = authz.dns
            if challenge is None:
                raise errors.AuthorizationError(
                    "The CA did not offer a DNS-01 challenge for {0}".format(authz.domain))

            self._prompt(challenge, subsequent=prompted)
            prompted = True
            self._validate(challenge)

    def _prompt(self, challenge: interfaces.Challenge, subsequent: bool) -> None:
        msg = self._DNS_INSTRUCTIONS.format(
            domain=challenge.domain, name=challenge.record_name,
            validation=challenge.record_content)
        if subsequent:
            msg += self._SUBSEQUENT_DNS_CHALLENGE_INSTRUCTIONS
        msg += self._DNS_VERIFY_INSTRUCTIONS.format(name=challenge.record_name)
        try:
            display_util.notification(msg, wrap=False)
        except (EOFError, KeyboardInterrupt):
            raise errors.IssuanceCancelled(
                "Cancelled while waiting for the DNS record of {0}".format(challenge.domain))

    def _validate(self, challenge: interfaces.Challenge) -> None:
        domain = challenge.domain
        try:
            challenge.request_validation()
        except acme_session.PROTOCOL_ERRORS as error:
            raise errors.DNSValidationError(domain, "error", acme_session.describe_error(error))

        display_util.notify("Waiting for the CA to validate {0}...".format(domain))
        try:
            status = polling.wait_while(challenge.reload, CHALLENGE_IN_FLIGHT,
                                        self.poll_interval, self.timeout,
                                        describe="DNS challenge for {0}".format(domain))
        except errors.PollTimeout as error:
            raise errors.ValidationTimeout(domain, error.status, error.timeout)
        except acme_session.PROTOCOL_ERRORS as error:
            raise errors.DNSValidationError(domain, "error", acme_session.describe_error(error))

        if status != "valid":
            logger.info("Challenge failed for domain %s", domain)
            raise errors.DNSValidationError(domain, status, challenge.error)
        logger.info("DNS validation succeeded for %s", domain)
