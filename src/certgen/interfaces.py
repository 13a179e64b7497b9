"""certgen client interfaces.

These are the ACME operations the issuance pipeline relies on. They are
implemented over the ``acme`` library in `certgen._internal.acme_session`;
JWS signing, nonces and transport are that library's concern.

"""
from abc import ABCMeta
from abc import abstractmethod
import enum
from typing import List
from typing import Optional


class RegistrationOutcome(enum.Enum):
    """Result of asking the CA to register the account key."""

    CREATED = enum.auto()
    """A new account was created for the key."""
    EXISTING = enum.auto()
    """The CA already knows an account for the key."""


class Challenge(metaclass=ABCMeta):
    """DNS-01 challenge of an authorization.

    The challenge state is owned by the CA. The client only asks for
    validation and reads the state back.

    """

    @property
    @abstractmethod
    def domain(self) -> str:  # pragma: no cover
        """Domain being validated."""
        raise NotImplementedError()

    @property
    @abstractmethod
    def status(self) -> str:  # pragma: no cover
        """Last status read from the CA."""
        raise NotImplementedError()

    @property
    @abstractmethod
    def record_name(self) -> str:  # pragma: no cover
        """Name of the TXT record to publish, ``_acme-challenge.<domain>``."""
        raise NotImplementedError()

    @property
    @abstractmethod
    def record_content(self) -> str:  # pragma: no cover
        """Value of the TXT record to publish."""
        raise NotImplementedError()

    @property
    @abstractmethod
    def error(self) -> Optional[str]:  # pragma: no cover
        """Problem reported by the CA for this challenge, if any."""
        raise NotImplementedError()

    @abstractmethod
    def request_validation(self) -> None:  # pragma: no cover
        """Tell the CA the TXT record is in place and may be checked."""
        raise NotImplementedError()

    @abstractmethod
    def reload(self) -> str:  # pragma: no cover
        """Fetch the current state from the CA.

        :returns: the refreshed status
        :rtype: str

        """
        raise NotImplementedError()


class Authorization(metaclass=ABCMeta):
    """Proof-of-control record for one domain of an order."""

    @property
    @abstractmethod
    def domain(self) -> str:  # pragma: no cover
        """Identifier value of the authorization."""
        raise NotImplementedError()

    @property
    @abstractmethod
    def status(self) -> str:  # pragma: no cover
        """Last status read from the CA."""
        raise NotImplementedError()

    @property
    @abstractmethod
    def dns(self) -> Optional[Challenge]:  # pragma: no cover
        """The DNS-01 challenge offered by the CA, or None if there is none."""
        raise NotImplementedError()


class Order(metaclass=ABCMeta):
    """Certificate order, driven by the CA from ``pending`` to ``valid``."""

    @property
    @abstractmethod
    def uri(self) -> Optional[str]:  # pragma: no cover
        """Location of the order."""
        raise NotImplementedError()

    @property
    @abstractmethod
    def status(self) -> str:  # pragma: no cover
        """Last status read from the CA."""
        raise NotImplementedError()

    @property
    @abstractmethod
    def error(self) -> Optional[str]:  # pragma: no cover
        """Problem reported by the CA for this order, if any."""
        raise NotImplementedError()

    @property
    @abstractmethod
    def authorizations(self) -> List[Authorization]:  # pragma: no cover
        """Authorizations the CA requires for this order."""
        raise NotImplementedError()

    @abstractmethod
    def finalize(self, csr_pem: bytes) -> None:  # pragma: no cover
        """Submit the certificate signing request.

        :param bytes csr_pem: CSR in PEM form

        """
        raise NotImplementedError()

    @abstractmethod
    def reload(self) -> str:  # pragma: no cover
        """Fetch the current state from the CA.

        :returns: the refreshed status
        :rtype: str

        """
        raise NotImplementedError()

    @property
    @abstractmethod
    def certificate(self) -> str:  # pragma: no cover
        """Issued certificate chain in PEM form, leaf first.

        Only available once the order is ``valid``.

        """
        raise NotImplementedError()


class AcmeClient(metaclass=ABCMeta):
    """Authenticated access to one ACME directory."""

    @abstractmethod
    def new_account(self, contact: str,
                    terms_of_service_agreed: bool) -> RegistrationOutcome:  # pragma: no cover
        """Register the account key with the CA.

        An account that already exists for the key is not an error.

        :param str contact: contact email address
        :param bool terms_of_service_agreed: whether the CA terms are accepted

        :returns: whether an account was created or already existed
        :rtype: RegistrationOutcome

        """
        raise NotImplementedError()

    @abstractmethod
    def new_order(self, domains: List[str]) -> Order:  # pragma: no cover
        """Open an order for all of ``domains`` at once.

        :param list domains: names to request

        :returns: the new order, with its authorizations loaded
        :rtype: Order

        """
        raise NotImplementedError()
