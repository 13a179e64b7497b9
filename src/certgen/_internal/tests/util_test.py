"""Tests for certgen.util."""
import errno
import os
import stat
import sys
import unittest
from unittest import mock

import pytest

from certgen import errors
from certgen import util
from certgen._internal import constants
from certgen.tests import util as test_util


class MakeOrVerifyDirTest(test_util.TempDirTestCase):
    """Tests for certgen.util.make_or_verify_dir."""

    def setUp(self):
        super().setUp()
        self.path = os.path.join(self.tempdir, "foo")
        os.mkdir(self.path, 0o600)
        os.chmod(self.path, 0o600)

    def test_creates_dir_when_missing(self):
        path = os.path.join(self.tempdir, "bar", "baz")
        util.make_or_verify_dir(path, 0o700)
        assert os.path.isdir(path)

    def test_new_dir_gets_mode(self):
        path = os.path.join(self.tempdir, "bar")
        util.make_or_verify_dir(path, 0o700)
        if os.name != "nt":
            assert stat.S_IMODE(os.stat(path).st_mode) == 0o700

    def test_existing_dir_left_alone(self):
        util.make_or_verify_dir(self.path, 0o700)
        if os.name != "nt":
            assert stat.S_IMODE(os.stat(self.path).st_mode) == 0o600

    def test_reraises_os_error(self):
        with mock.patch("certgen.util.os.makedirs",
                        side_effect=OSError(errno.EACCES, "denied")):
            with pytest.raises(OSError):
                util.make_or_verify_dir(self.path)


class SafeOpenTest(test_util.TempDirTestCase):
    """Tests for certgen.util.safe_open."""

    def test_mode(self):
        path = os.path.join(self.tempdir, "key.pem")
        with util.safe_open(path, "w", chmod=0o600) as f:
            f.write("secret")
        if os.name != "nt":
            assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_refuses_existing_file(self):
        path = os.path.join(self.tempdir, "key.pem")
        open(path, "w").close()
        with pytest.raises(FileExistsError):
            util.safe_open(path, "w")


class WriteAtomicallyTest(test_util.TempDirTestCase):
    """Tests for certgen.util.write_atomically."""

    def test_replaces_content(self):
        path = os.path.join(self.tempdir, "account.key")
        util.write_atomically(path, b"first")
        util.write_atomically(path, b"second", chmod=0o640)
        with open(path, "rb") as f:
            assert f.read() == b"second"
        assert os.listdir(self.tempdir) == ["account.key"]
        if os.name != "nt":
            assert stat.S_IMODE(os.stat(path).st_mode) == 0o640

    def test_failure_leaves_no_temporary_file(self):
        path = os.path.join(self.tempdir, "account.key")
        with mock.patch("certgen.util.os.replace", side_effect=OSError("busy")):
            with pytest.raises(OSError):
                util.write_atomically(path, b"data")
        assert os.listdir(self.tempdir) == []


class SafelyRemoveTest(test_util.TempDirTestCase):
    """Tests for certgen.util.safely_remove."""

    def test_existing_and_missing(self):
        path = os.path.join(self.tempdir, "foo")
        open(path, "w").close()
        util.safely_remove(path)
        assert not os.path.exists(path)
        util.safely_remove(path)

    def test_other_error(self):
        with mock.patch("certgen.util.os.remove",
                        side_effect=OSError(errno.EACCES, "denied")):
            with pytest.raises(OSError):
                util.safely_remove("foo")


class SafeEmailTest(unittest.TestCase):
    """Tests for certgen.util.safe_email."""

    def test_valid_emails(self):
        for email in ("admin@example.com", "first.last+tag@sub.example.org"):
            assert util.safe_email(email), email

    def test_invalid_emails(self):
        for email in ("", "admin", "@example.com", ".admin@example.com",
                      "ad..min@example.com", "admin@exa mple.com"):
            assert not util.safe_email(email), email


class EnforceDomainSanityTest(unittest.TestCase):
    """Tests for certgen.util.enforce_domain_sanity."""

    def test_normalizes(self):
        assert util.enforce_domain_sanity(" Example.COM. ") == "example.com"
        assert util.enforce_domain_sanity(b"example.com") == "example.com"

    def test_rejects(self):
        for domain in ("http://example.com", "192.0.2.1", "2001:db8::1",
                       "*.example.com", "example", "exa$mple.com", "a..example.com",
                       "-bad.example.com", "x" * 64 + ".com", "éxample.com",
                       ".".join(["abcdefg"] * 40)):
            with pytest.raises(errors.ConfigurationError):
                util.enforce_domain_sanity(domain)


class DeriveDomainsTest(unittest.TestCase):
    """Tests for certgen.util.derive_domains and strip_www."""

    def test_apex(self):
        assert util.derive_domains("example.com") == ["example.com", "www.example.com"]

    def test_www(self):
        assert util.derive_domains("www.example.com") == ["example.com", "www.example.com"]

    def test_subdomain(self):
        assert util.derive_domains("shop.example.com") == [
            "shop.example.com", "www.shop.example.com"]

    def test_strip_www_once(self):
        assert util.strip_www("www.www.example.com") == "www.example.com"


class MiscTest(unittest.TestCase):
    """Tests for the small predicates in certgen.util."""

    def test_is_staging(self):
        assert util.is_staging(constants.STAGING_URI)
        assert not util.is_staging(constants.PRODUCTION_URI)

    def test_is_ipaddress(self):
        assert util.is_ipaddress("192.0.2.1")
        assert util.is_ipaddress("::1")
        assert not util.is_ipaddress("example.com")

    def test_is_wildcard_domain(self):
        assert util.is_wildcard_domain("*.example.com")
        assert util.is_wildcard_domain(b"*.example.com")
        assert not util.is_wildcard_domain("example.com")


class AtexitRegisterTest(unittest.TestCase):
    """Tests for certgen.util.atexit_register."""

    def setUp(self):
        self.func = mock.MagicMock()
        self.args = ("hi",)
        self.kwargs = {"answer": 42}

    @mock.patch("certgen.util.atexit")
    def test_called(self, mock_atexit):
        util.atexit_register(self.func, *self.args, **self.kwargs)
        atexit_func = mock_atexit.register.call_args[0][0]
        atexit_func(*mock_atexit.register.call_args[0][1:],
                    **mock_atexit.register.call_args[1])
        self.func.assert_called_with(*self.args, **self.kwargs)

    @mock.patch("certgen.util.atexit")
    def test_not_called_in_child(self, mock_atexit):
        util.atexit_register(self.func, *self.args, **self.kwargs)
        with mock.patch("certgen.util.os.getpid", return_value=-1):
            atexit_func = mock_atexit.register.call_args[0][0]
            atexit_func(*mock_atexit.register.call_args[0][1:],
                        **mock_atexit.register.call_args[1])
        self.func.assert_not_called()


if __name__ == "__main__":
    sys.exit(pytest.main([__file__]))  # pragma: no cover
