"""certgen crypto utility functions."""
import datetime
import logging
import re
from typing import List

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.hazmat.primitives.serialization import NoEncryption
from cryptography.hazmat.primitives.serialization import PrivateFormat
import josepy as jose

from acme import crypto_util as acme_crypto_util
from certgen import errors
from certgen import util
from certgen._internal import constants

logger = logging.getLogger(__name__)


# High level functions

def generate_key(key_size: int) -> util.Key:
    """Generate a certificate private key held only in memory.

    :param int key_size: RSA key size in bits

    :returns: Key
    :rtype: :class:`certgen.util.Key`

    :raises errors.Error: If unable to generate the key given key_size.

    """
    try:
        key_pem = make_key(bits=key_size)
    except ValueError as err:
        logger.debug("", exc_info=True)
        logger.error("Encountered error while making key: %s", str(err))
        raise errors.Error(str(err))
    logger.debug("Generated RSA key (%d bits)", key_size)
    return util.Key(None, key_pem)


def generate_csr(privkey: util.Key, names: List[str]) -> util.CSR:
    """Initialize a CSR with the given private key.

    :param privkey: Key to include in the CSR
    :type privkey: :class:`certgen.util.Key`
    :param list names: `str` names to include in the CSR

    :returns: CSR
    :rtype: :class:`certgen.util.CSR`

    """
    csr_pem = acme_crypto_util.make_csr(privkey.pem, domains=names)
    logger.debug("Created CSR for %s", ", ".join(names))
    return util.CSR(None, csr_pem, "pem")


# Lower level functions

def make_key(bits: int = constants.MIN_RSA_KEY_SIZE) -> bytes:
    """Generate PEM encoded RSA key.

    :param int bits: Number of bits. At least 2048.

    :returns: new RSA key in PEM form with specified number of bits
    :rtype: bytes

    """
    if bits < constants.MIN_RSA_KEY_SIZE:
        raise errors.Error("Unsupported RSA key length: {}".format(bits))
    key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    return key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption()
    )


def load_jwk(key_pem: bytes) -> jose.JWK:
    """Load an account private key as a JWK.

    :param bytes key_pem: unencrypted RSA or EC private key in PEM form

    :returns: the key wrapped for JWS signing
    :rtype: `josepy.JWKRSA` or `josepy.JWKEC`

    :raises errors.Error: if the key cannot be parsed or is of another type

    """
    try:
        key = serialization.load_pem_private_key(key_pem, password=None)
    except (ValueError, TypeError) as error:
        raise errors.Error(f"Unable to parse private key: {error}")
    if isinstance(key, rsa.RSAPrivateKey):
        if key.key_size < constants.MIN_RSA_KEY_SIZE:
            raise errors.Error(f"RSA key is too small ({key.key_size} bits)")
        return jose.JWKRSA(key=key)
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return jose.JWKEC(key=key)
    raise errors.Error(f"Unsupported private key type: {type(key).__name__}")


CERT_PEM_REGEX = re.compile(
    b"""-----BEGIN CERTIFICATE-----\r?
.+?\r?
-----END CERTIFICATE-----\r?
""",
    re.DOTALL # DOTALL (/s) because the base64text may include newlines
)


def certs_from_fullchain(fullchain_pem: str) -> List[str]:
    """Split fullchain_pem into its PEM certificates, leaf first.

    :param str fullchain_pem: concatenated cert + chain

    :returns: list of PEM certificates, normalized
    :rtype: list

    :raises errors.Error: If no certificate can be parsed from the chain.

    """
    certs = CERT_PEM_REGEX.findall(fullchain_pem.encode())
    if not certs:
        raise errors.Error("failed to parse fullchain: no certificate found")

    # Parse each certificate found using cryptography and re-encode it,
    # with the effect of normalizing any encoding variations (e.g. CRLF, whitespace).
    normalized: List[str] = []
    for cert_pem in certs:
        try:
            cert = x509.load_pem_x509_certificate(cert_pem)
        except ValueError as error:
            raise errors.Error(f"failed to parse certificate in fullchain: {error}")
        normalized.append(cert.public_bytes(Encoding.PEM).decode())
    return normalized


def notAfter(cert_pem: str) -> datetime.datetime:
    """When does the leaf certificate of cert_pem stop being valid?

    :param str cert_pem: certificate or full chain in PEM format

    :returns: the notAfter value of the first certificate
    :rtype: :class:`datetime.datetime`

    """
    cert = x509.load_pem_x509_certificate(certs_from_fullchain(cert_pem)[0].encode())
    return cert.not_valid_after_utc
