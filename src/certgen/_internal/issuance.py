"""Order finalization and certificate retrieval."""
import logging
from typing import List
from typing import NamedTuple

from certgen import crypto_util
from certgen import errors
from certgen import interfaces
from certgen import util
from certgen._internal import acme_session
from certgen._internal import polling

logger = logging.getLogger(__name__)

# Order states in which the CA is still issuing after finalization.
ORDER_IN_FLIGHT = ("ready", "processing")


class CertificateMaterial(NamedTuple):
    """Certificate private key and the issued chain.

    :ivar util.Key key: leaf private key, unrelated to the account key
    :ivar str fullchain_pem: leaf certificate followed by its chain

    """
    key: util.Key
    fullchain_pem: str


def finalize(order: interfaces.Order, domains: List[str], key_size: int = 4096,
             poll_interval: float = 2.0, timeout: float = 90.0) -> CertificateMaterial:
    """Finalize ``order`` with a fresh key and wait for the certificate.

    :param interfaces.Order order: order whose authorizations are all valid
    :param list domains: names the certificate is for
    :param int key_size: RSA key size of the certificate key
    :param float poll_interval: seconds between order status checks
    :param float timeout: seconds to wait for issuance

    :returns: certificate key and chain
    :rtype: CertificateMaterial

    :raises errors.FinalizationError: if no certificate is issued
    :raises errors.IssuanceCancelled: if the wait is interrupted

    """
    key = crypto_util.generate_key(key_size)
    csr = crypto_util.generate_csr(key, domains)

    try:
        order.finalize(csr.data)
    except acme_session.PROTOCOL_ERRORS as error:
        raise errors.FinalizationError("error", acme_session.describe_error(error))

    try:
        status = polling.wait_while(order.reload, ORDER_IN_FLIGHT, poll_interval, timeout,
                                    describe="order {0}".format(order.uri))
    except errors.PollTimeout as error:
        raise errors.FinalizationTimeout(error.status, error.timeout)
    except acme_session.PROTOCOL_ERRORS as error:
        raise errors.FinalizationError("error", acme_session.describe_error(error))

    if status != "valid":
        raise errors.FinalizationError(status, order.error)

    try:
        fullchain_pem = order.certificate
    except acme_session.PROTOCOL_ERRORS as error:
        raise errors.FinalizationError(status, acme_session.describe_error(error))
    if not fullchain_pem or not fullchain_pem.strip():
        raise errors.FinalizationError(status, "the CA returned an empty certificate")

    logger.info("Certificate issued for %s", ", ".join(domains))
    return CertificateMaterial(key, fullchain_pem)
