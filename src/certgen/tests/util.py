"""Test utilities."""
import argparse
import datetime
import functools
import logging
import os
import shutil
import tempfile
from typing import Any
from typing import cast
from typing import Iterable
from typing import List
from typing import Optional
import unittest
from unittest import mock

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from certgen import configuration
from certgen import interfaces
from certgen._internal import constants


@functools.lru_cache(maxsize=None)
def rsa_key_pem(bits: int = 2048) -> bytes:
    """RSA private key in PEM form, generated once per size and test process."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption())


def ec_key_pem(curve: ec.EllipticCurve = ec.SECP256R1()) -> bytes:
    """EC private key in PEM form."""
    key = ec.generate_private_key(curve)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption())


def make_cert(names: List[str], key_pem: Optional[bytes] = None, days: int = 90) -> str:
    """Self-signed certificate for ``names`` in PEM form."""
    key = serialization.load_pem_private_key(key_pem or rsa_key_pem(), password=None)
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, names[0])])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(key.public_key())  # type: ignore[arg-type]
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(days=1))
            .not_valid_after(now + datetime.timedelta(days=days))
            .add_extension(x509.SubjectAlternativeName(
                [x509.DNSName(name) for name in names]), critical=False)
            .sign(key, hashes.SHA256()))  # type: ignore[arg-type]
    return cert.public_bytes(serialization.Encoding.PEM).decode()


def make_fullchain(names: List[str]) -> str:
    """Leaf certificate for ``names`` followed by an issuer certificate."""
    return make_cert(names) + make_cert(["ca.example.net"])


def patch_display_util() -> mock.MagicMock:
    """Patch certgen.display.util to use a mock display utility.

    The mock returned by the patched function is the display utility, so
    tests can assert on ``mock_get_display().notification`` and friends.

    :returns: patch on the function used internally by certgen.display.util to
        get a display utility instance
    :rtype: mock.MagicMock

    """
    return cast(mock.MagicMock, mock.patch('certgen._internal.display.obj.get_display'))


class StubChallenge(interfaces.Challenge):
    """DNS-01 challenge whose successive statuses are scripted.

    ``reload`` walks through ``statuses``; the last one repeats forever.

    """
    def __init__(self, domain: str, statuses: Iterable[str] = ("valid",),
                 status: str = "pending", error: Optional[str] = None,
                 validation_error: Optional[BaseException] = None) -> None:
        self._domain = domain
        self._status = status
        self._statuses = list(statuses)
        self._error = error
        self.validation_error = validation_error
        self.validation_requested = False
        self.reloads = 0

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def status(self) -> str:
        return self._status

    @property
    def record_name(self) -> str:
        return "_acme-challenge." + self._domain

    @property
    def record_content(self) -> str:
        return "token-for-" + self._domain

    @property
    def error(self) -> Optional[str]:
        return self._error

    def request_validation(self) -> None:
        if self.validation_error is not None:
            raise self.validation_error
        self.validation_requested = True

    def reload(self) -> str:
        index = min(self.reloads, len(self._statuses) - 1)
        self.reloads += 1
        self._status = self._statuses[index]
        return self._status


class StubAuthorization(interfaces.Authorization):
    """Authorization with a fixed status and optional DNS-01 challenge."""
    def __init__(self, domain: str, status: str = "pending",
                 challenge: Optional[StubChallenge] = None) -> None:
        self._domain = domain
        self._status = status
        self.challenge = challenge

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def status(self) -> str:
        return self._status

    @property
    def dns(self) -> Optional[interfaces.Challenge]:
        return self.challenge


class StubOrder(interfaces.Order):
    """Order whose post-finalization statuses are scripted."""
    def __init__(self, authorizations: Optional[List[interfaces.Authorization]] = None,
                 statuses: Iterable[str] = ("valid",), certificate: str = "",
                 error: Optional[str] = None,
                 finalize_error: Optional[BaseException] = None) -> None:
        self._authorizations = authorizations or []
        self._status = "ready"
        self._statuses = list(statuses)
        self._certificate = certificate
        self._error = error
        self.finalize_error = finalize_error
        self.csr_pem: Optional[bytes] = None
        self.reloads = 0

    @property
    def uri(self) -> Optional[str]:
        return "https://acme.example/order/1"

    @property
    def status(self) -> str:
        return self._status

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def authorizations(self) -> List[interfaces.Authorization]:
        return self._authorizations

    def finalize(self, csr_pem: bytes) -> None:
        if self.finalize_error is not None:
            raise self.finalize_error
        self.csr_pem = csr_pem
        self._status = "processing"

    def reload(self) -> str:
        index = min(self.reloads, len(self._statuses) - 1)
        self.reloads += 1
        self._status = self._statuses[index]
        return self._status

    @property
    def certificate(self) -> str:
        return self._certificate


class StubAcmeClient(interfaces.AcmeClient):
    """ACME capability returning a prepared order."""
    def __init__(self, order: Optional[StubOrder] = None,
                 outcome: interfaces.RegistrationOutcome = interfaces.RegistrationOutcome.CREATED,
                 account_error: Optional[BaseException] = None,
                 order_error: Optional[BaseException] = None) -> None:
        self.order = order or StubOrder()
        self.outcome = outcome
        self.account_error = account_error
        self.order_error = order_error
        self.contacts: List[str] = []
        self.ordered: List[List[str]] = []

    def new_account(self, contact: str,
                    terms_of_service_agreed: bool) -> interfaces.RegistrationOutcome:
        assert terms_of_service_agreed
        if self.account_error is not None:
            raise self.account_error
        self.contacts.append(contact)
        return self.outcome

    def new_order(self, domains: List[str]) -> interfaces.Order:
        if self.order_error is not None:
            raise self.order_error
        self.ordered.append(list(domains))
        return self.order


def make_namespace(**kwargs: Any) -> argparse.Namespace:
    """Parsed arguments as produced by the certgen command line."""
    values = dict(constants.CLI_DEFAULTS)
    values.pop("config_files")
    values.update(verb="generate", domain="example.com", email="admin@example.com")
    values.update(kwargs)
    return argparse.Namespace(**values)


class TempDirTestCase(unittest.TestCase):
    """Base test class which sets up and tears down a temporary directory"""

    def setUp(self) -> None:
        """Execute before test"""
        self.tempdir = tempfile.mkdtemp()

    def tearDown(self) -> None:
        """Execute after test"""
        # Cleanup opened resources after a test. This is usually done through
        # atexit handlers in certgen, but during tests atexit only runs when
        # the whole test process exits.
        logging.shutdown()
        # Remove logging handlers that have been closed so they won't be
        # accidentally used in future tests.
        logging.getLogger().handlers = []

        shutil.rmtree(self.tempdir)


class ConfigTestCase(TempDirTestCase):
    """Test class which sets up a NamespaceConfig object."""
    def setUp(self) -> None:
        super().setUp()
        self.config = configuration.NamespaceConfig(make_namespace(
            config_dir=os.path.join(self.tempdir, 'config'),
            output_root=os.path.join(self.tempdir, 'output'),
            rsa_key_size=2048))
