"""Loads or creates the ACME account key."""
import hashlib
import logging
import os
from typing import Any
from typing import cast
from typing import Mapping
from typing import NamedTuple

from cryptography.hazmat.primitives import serialization
import josepy as jose

from certgen import crypto_util
from certgen import errors
from certgen import util
from certgen._internal import constants

logger = logging.getLogger(__name__)


class AccountIdentity(NamedTuple):
    """ACME account key bound to the directory it is used with.

    :ivar josepy.JWK key: account key, used to sign every request
    :ivar bytes pem: the key as stored on disk
    :ivar str path: where the key is stored
    :ivar str directory_url: ACME directory the account belongs to

    """
    key: jose.JWK
    pem: bytes
    path: str
    directory_url: str

    @property
    def id(self) -> str:
        """Stable identifier derived from the public key."""
        # try MD5, else use MD5 in non-security mode (e.g. for FIPS systems / RHEL)
        try:
            hasher = hashlib.md5()
        except ValueError:
            hasher = hashlib.new('md5', **cast(Mapping[str, Any], {"usedforsecurity": False}))
        hasher.update(self.key.key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo))
        return hasher.hexdigest()


def ensure_identity(key_path: str, directory_url: str,
                    key_size: int = 4096) -> AccountIdentity:
    """Return the account identity stored at ``key_path``, creating it if needed.

    An existing key is never replaced: if it cannot be read or parsed the
    run stops, since a new key would silently be a different ACME account.

    :param str key_path: account key file
    :param str directory_url: ACME directory the key is used with
    :param int key_size: RSA key size for a new key

    :returns: the account identity
    :rtype: AccountIdentity

    :raises errors.IdentityError: if the key cannot be loaded or created

    """
    if key_size < constants.MIN_RSA_KEY_SIZE:
        raise errors.IdentityError(
            "Account key size must be at least {0} bits, got {1}".format(
                constants.MIN_RSA_KEY_SIZE, key_size))

    if os.path.exists(key_path):
        return _load(key_path, directory_url)
    return _create(key_path, directory_url, key_size)


def _load(key_path: str, directory_url: str) -> AccountIdentity:
    try:
        with open(key_path, "rb") as key_file:
            key_pem = key_file.read()
    except OSError as error:
        raise errors.IdentityError(
            "Unable to read account key {0}: {1}".format(key_path, error))
    try:
        key = crypto_util.load_jwk(key_pem)
    except errors.Error as error:
        raise errors.IdentityError(
            "Account key {0} is not usable: {1}. Move it away to create "
            "a new account.".format(key_path, error))
    logger.debug("Loaded account key from %s", key_path)
    return AccountIdentity(key, key_pem, key_path, directory_url)


def _create(key_path: str, directory_url: str, key_size: int) -> AccountIdentity:
    logger.info("Creating a new %d bit account key at %s", key_size, key_path)
    try:
        key_pem = crypto_util.make_key(bits=key_size)
        key = crypto_util.load_jwk(key_pem)
        util.make_or_verify_dir(os.path.dirname(os.path.abspath(key_path)),
                                 constants.CONFIG_DIRS_MODE)
        util.write_atomically(key_path, key_pem, chmod=0o600)
    except (OSError, errors.Error) as error:
        raise errors.IdentityError(
            "Unable to create account key {0}: {1}".format(key_path, error))
    return AccountIdentity(key, key_pem, key_path, directory_url)
