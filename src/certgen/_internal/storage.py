"""Writes issued certificate material to the output directory."""
import logging
import os
import shutil
import zipfile
from typing import List

from certgen import errors
from certgen import util
from certgen._internal import constants
from certgen._internal import error_handler
from certgen._internal.issuance import CertificateMaterial

logger = logging.getLogger(__name__)


def persist(output_dir: str, material: CertificateMaterial) -> str:
    """Replace ``output_dir`` with the key, certificate and bundle of ``material``.

    Any previous content of ``output_dir`` is removed first. If the run is
    interrupted while writing, the partially written directory is removed
    too; other failures leave it as it is.

    :param str output_dir: directory dedicated to one base domain
    :param CertificateMaterial material: what to write

    :returns: path to the zip bundle
    :rtype: str

    :raises errors.PersistenceError: if the files cannot be written
    :raises errors.SignalExit: if a handled signal stopped the write

    """
    with error_handler.InterruptHandler(_remove_partial, output_dir):
        try:
            return _write_all(output_dir, material)
        except OSError as error:
            raise errors.PersistenceError(
                "Unable to save certificate files to {0}: {1}".format(output_dir, error))
    # The handler swallowed a signal and delivered it to the previous
    # handler, which did not stop the process.
    raise errors.SignalExit("Saving to {0} was stopped by a signal.".format(output_dir))


def _write_all(output_dir: str, material: CertificateMaterial) -> str:
    if os.path.lexists(output_dir):
        logger.debug("Removing previous output in %s", output_dir)
        shutil.rmtree(output_dir)
    util.make_or_verify_dir(output_dir, 0o755)
    # makedirs applies the umask
    os.chmod(output_dir, 0o755)

    key_path = os.path.join(output_dir, constants.KEY_FILENAME)
    cert_path = os.path.join(output_dir, constants.CERT_FILENAME)
    chain_path = os.path.join(output_dir, constants.CHAIN_FILENAME)

    with util.safe_open(key_path, "wb", chmod=0o600) as key_file:
        key_file.write(material.key.pem)
    for path in (cert_path, chain_path):
        with util.safe_open(path, "w", chmod=0o644) as cert_file:
            cert_file.write(material.fullchain_pem)
        os.chmod(path, 0o644)
    logger.debug("Wrote %s, %s and %s", key_path, cert_path, chain_path)

    bundle_path = os.path.join(output_dir, constants.BUNDLE_FILENAME)
    create_bundle(bundle_path, [key_path, cert_path, chain_path])
    return bundle_path


def create_bundle(bundle_path: str, paths: List[str]) -> None:
    """Zip ``paths`` by basename into ``bundle_path``.

    A file that no longer exists is left out with a warning.

    """
    with zipfile.ZipFile(bundle_path, "w", compression=zipfile.ZIP_DEFLATED) as bundle:
        for path in paths:
            try:
                bundle.write(path, arcname=os.path.basename(path))
            except FileNotFoundError:
                logger.warning("%s disappeared before it could be bundled, skipping it", path)
    os.chmod(bundle_path, 0o600)


def _remove_partial(output_dir: str) -> None:
    logger.warning("Interrupted while saving, removing partial output in %s", output_dir)
    shutil.rmtree(output_dir, ignore_errors=True)
