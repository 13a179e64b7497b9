"""Tests for certgen._internal.issuance."""
import sys
import unittest
from unittest import mock

from acme import errors as acme_errors
from cryptography import x509
import pytest

from certgen import errors
from certgen._internal import issuance
from certgen.tests import util as test_util

DOMAINS = ["example.com", "www.example.com"]


class FinalizeTest(unittest.TestCase):
    """Tests for certgen._internal.issuance.finalize."""

    def setUp(self):
        self.fullchain = test_util.make_fullchain(DOMAINS)
        patcher = mock.patch("certgen.crypto_util.make_key",
                             return_value=test_util.rsa_key_pem())
        self.mock_make_key = patcher.start()
        self.addCleanup(patcher.stop)

    def _finalize(self, order, **kwargs):
        kwargs.setdefault("key_size", 2048)
        return issuance.finalize(order, DOMAINS, **kwargs)

    def test_success(self):
        order = test_util.StubOrder(statuses=("processing", "valid"),
                                    certificate=self.fullchain)

        material = self._finalize(order)

        assert material.fullchain_pem == self.fullchain
        assert material.key.pem == test_util.rsa_key_pem()
        self.mock_make_key.assert_called_once_with(bits=2048)
        assert order.reloads == 2

        csr = x509.load_pem_x509_csr(order.csr_pem)
        san = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        assert san.value.get_values_for_type(x509.DNSName) == DOMAINS

    def test_finalize_rejected(self):
        order = test_util.StubOrder(
            finalize_error=acme_errors.ClientError("badCSR"))
        with pytest.raises(errors.FinalizationError) as excinfo:
            self._finalize(order)
        assert excinfo.value.status == "error"
        assert "badCSR" in str(excinfo.value)

    def test_order_invalid(self):
        order = test_util.StubOrder(statuses=("processing", "invalid"),
                                    error="CAA record forbids issuance")
        with pytest.raises(errors.FinalizationError) as excinfo:
            self._finalize(order)
        assert excinfo.value.status == "invalid"
        assert "CAA record forbids issuance" in str(excinfo.value)

    def test_timeout(self):
        order = test_util.StubOrder(statuses=("processing",))
        with pytest.raises(errors.FinalizationTimeout) as excinfo:
            self._finalize(order, poll_interval=2, timeout=10)
        assert excinfo.value.status == "processing"
        assert excinfo.value.timeout == 10
        assert "10 seconds" in str(excinfo.value)

    def test_reload_fails(self):
        order = test_util.StubOrder()
        order.reload = mock.MagicMock(side_effect=acme_errors.ClientError("gone"))
        with pytest.raises(errors.FinalizationError, match="gone"):
            self._finalize(order)

    def test_empty_certificate(self):
        order = test_util.StubOrder(certificate="\n")
        with pytest.raises(errors.FinalizationError, match="empty certificate"):
            self._finalize(order)

    def test_interrupted_while_waiting(self):
        order = test_util.StubOrder()
        order.reload = mock.MagicMock(side_effect=KeyboardInterrupt)
        with pytest.raises(errors.IssuanceCancelled):
            self._finalize(order)


if __name__ == "__main__":
    sys.exit(pytest.main([__file__]))  # pragma: no cover
