"""certgen client errors."""
from typing import Optional


class Error(Exception):
    """Generic certgen client error."""


class ConfigurationError(Error):
    """Configuration sanity error."""


class IdentityError(Error):
    """The ACME account key could not be loaded, generated or written."""


class RegistrationError(Error):
    """The ACME account could not be registered."""


class OrderError(Error):
    """The CA refused to open an order for the requested identifiers."""


# Auth Handler Errors
class AuthorizationError(Error):
    """Authorization error."""


class DNSValidationError(AuthorizationError):
    """A DNS-01 challenge reached a terminal state other than ``valid``.

    :ivar str domain: domain whose challenge failed
    :ivar str status: last status reported by the CA
    :ivar str detail: problem description reported by the CA, if any

    """
    def __init__(self, domain: str, status: str, detail: Optional[str] = None) -> None:
        self.domain = domain
        self.status = status
        self.detail = detail
        super().__init__(domain, status, detail)

    def __str__(self) -> str:
        msg = f"DNS validation failed for {self.domain}. Status: {self.status}"
        if self.detail:
            msg += f" ({self.detail})"
        return msg


class ValidationTimeout(DNSValidationError):
    """The CA did not finish validating a challenge in time."""
    def __init__(self, domain: str, status: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(domain, status)

    def __str__(self) -> str:
        return (f"DNS validation for {self.domain} did not complete within "
                f"{self.timeout:g} seconds. Last status: {self.status}")


class FinalizationError(Error):
    """The order reached a terminal state other than ``valid`` after finalization.

    :ivar str status: last order status reported by the CA
    :ivar str detail: problem description reported by the CA, if any

    """
    def __init__(self, status: str, detail: Optional[str] = None) -> None:
        self.status = status
        self.detail = detail
        super().__init__(status, detail)

    def __str__(self) -> str:
        msg = f"Order finalization failed. Status: {self.status}"
        if self.detail:
            msg += f" ({self.detail})"
        return msg


class FinalizationTimeout(FinalizationError):
    """The CA did not issue the certificate in time."""
    def __init__(self, status: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(status)

    def __str__(self) -> str:
        return (f"Certificate was not issued within {self.timeout:g} seconds. "
                f"Last order status: {self.status}")


class PersistenceError(Error):
    """Certificate artifacts could not be written."""


class PollTimeout(Error):
    """A polled resource stayed in flight past its deadline."""
    def __init__(self, status: str, timeout: float) -> None:
        self.status = status
        self.timeout = timeout
        super().__init__(f"Still {status} after {timeout:g} seconds")


class IssuanceCancelled(Error):
    """The operator interrupted the run at a suspension point."""


class SignalExit(Error):
    """A Unix signal was received while in the ErrorHandler context manager."""


class GenerationError(Error):
    """Certificate generation failed.

    Raised once by the issuance pipeline for any component failure. The
    message is the original one; the typed component error is kept in
    ``cause``.

    """
    def __init__(self, cause: Error) -> None:
        self.cause = cause
        super().__init__(str(cause))
