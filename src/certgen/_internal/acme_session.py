"""ACME resource handles implemented over the acme library."""
import logging
from typing import List
from typing import Optional

import josepy as jose
from josepy import ES256
from josepy import ES384
from josepy import ES512
from josepy import RS256
import requests

from acme import challenges
from acme import client as acme_client
from acme import errors as acme_errors
from acme import messages
import certgen
from certgen import errors
from certgen import interfaces
from certgen._internal.account import AccountIdentity

logger = logging.getLogger(__name__)


PROTOCOL_ERRORS = (acme_errors.Error, jose.DeserializationError,
                   requests.exceptions.RequestException)
"""Failures raised while talking to the CA."""


def describe_problem(problem: Optional[messages.Error]) -> Optional[str]:
    """Human readable summary of an ACME problem document."""
    if problem is None:
        return None
    return problem.detail or problem.description or problem.title or problem.typ


def describe_error(error: Exception) -> str:
    """Message for a failure from `PROTOCOL_ERRORS`."""
    if isinstance(error, messages.Error):
        return describe_problem(error) or str(error)
    return str(error) or type(error).__name__


def determine_user_agent() -> str:
    """User-Agent sent to the CA."""
    return "certgen/{0} acme-python".format(certgen.__version__)


def pick_algorithm(key: jose.JWK) -> jose.JWASignature:
    """Choose the JWS algorithm matching the account key.

    :raises errors.Error: for an EC key on an unsupported curve

    """
    if key.typ == 'EC':
        key_size = key.key.key_size
        if key_size == 256:
            return ES256
        elif key_size == 384:
            return ES384
        elif key_size == 521:
            return ES512
        raise errors.Error(
            "No matching signing algorithm can be found for the key")
    return RS256


class AcmeChallenge(interfaces.Challenge):
    """DNS-01 challenge backed by an `acme.messages.ChallengeBody`."""

    def __init__(self, acme: acme_client.ClientV2, account_key: jose.JWK,
                 domain: str, challb: messages.ChallengeBody) -> None:
        self._acme = acme
        self._account_key = account_key
        self._domain = domain
        self.challb = challb

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def status(self) -> str:
        return self.challb.status.name

    @property
    def record_name(self) -> str:
        return self.challb.chall.validation_domain_name(self._domain)

    @property
    def record_content(self) -> str:
        return self.challb.chall.validation(self._account_key)

    @property
    def error(self) -> Optional[str]:
        return describe_problem(self.challb.error)

    def request_validation(self) -> None:
        response = self.challb.chall.response(self._account_key)
        challr = self._acme.answer_challenge(self.challb, response)
        self.challb = challr.body

    def reload(self) -> str:
        response = self._acme.net.post(
            self.challb.uri, None,
            new_nonce_url=getattr(self._acme.directory, 'newNonce'))
        self.challb = messages.ChallengeBody.from_json(response.json())
        return self.status


class AcmeAuthorization(interfaces.Authorization):
    """Authorization backed by an `acme.messages.AuthorizationResource`."""

    def __init__(self, acme: acme_client.ClientV2, account_key: jose.JWK,
                 authzr: messages.AuthorizationResource) -> None:
        self._acme = acme
        self._account_key = account_key
        self.authzr = authzr

    @property
    def domain(self) -> str:
        return self.authzr.body.identifier.value

    @property
    def status(self) -> str:
        return self.authzr.body.status.name

    @property
    def dns(self) -> Optional[interfaces.Challenge]:
        for challb in self.authzr.body.challenges:
            if isinstance(challb.chall, challenges.DNS01):
                return AcmeChallenge(self._acme, self._account_key, self.domain, challb)
        return None


class AcmeOrder(interfaces.Order):
    """Order backed by an `acme.messages.OrderResource`."""

    def __init__(self, acme: acme_client.ClientV2, account_key: jose.JWK,
                 orderr: messages.OrderResource) -> None:
        self._acme = acme
        self._account_key = account_key
        self.orderr = orderr

    @property
    def uri(self) -> Optional[str]:
        return self.orderr.uri

    @property
    def status(self) -> str:
        return self.orderr.body.status.name

    @property
    def error(self) -> Optional[str]:
        return describe_problem(self.orderr.body.error)

    @property
    def authorizations(self) -> List[interfaces.Authorization]:
        return [AcmeAuthorization(self._acme, self._account_key, authzr)
                for authzr in self.orderr.authorizations]

    def finalize(self, csr_pem: bytes) -> None:
        self.orderr = self._acme.begin_finalization(self.orderr.update(csr_pem=csr_pem))

    def reload(self) -> str:
        response = self._post_as_get(self.orderr.uri)
        self.orderr = self.orderr.update(body=messages.Order.from_json(response.json()))
        return self.status

    @property
    def certificate(self) -> str:
        if self.orderr.fullchain_pem is None:
            if self.orderr.body.certificate is None:
                raise errors.FinalizationError(
                    self.status, "the CA did not provide a certificate URL")
            response = self._post_as_get(self.orderr.body.certificate)
            self.orderr = self.orderr.update(fullchain_pem=response.text)
        return self.orderr.fullchain_pem

    def _post_as_get(self, url: str) -> requests.Response:
        return self._acme.net.post(url, None,
                                   new_nonce_url=getattr(self._acme.directory, 'newNonce'))


class AcmeSession(interfaces.AcmeClient):
    """`interfaces.AcmeClient` implementation over `acme.client.ClientV2`.

    :ivar acme.client.ClientV2 acme: protocol handle
    :ivar josepy.JWK key: account key

    """

    def __init__(self, acme: acme_client.ClientV2, key: jose.JWK) -> None:
        self.acme = acme
        self.key = key

    def new_account(self, contact: str,
                    terms_of_service_agreed: bool) -> interfaces.RegistrationOutcome:
        if self.acme.external_account_required():
            raise errors.RegistrationError(
                "Server requires external account binding, which is not supported.")
        new_reg = messages.NewRegistration.from_data(
            email=contact, terms_of_service_agreed=terms_of_service_agreed)
        try:
            self.acme.new_account(new_reg)
        except acme_errors.ConflictError as error:
            # The CA answers with the existing account URL; later requests
            # are signed with it.
            logger.debug("Account already exists at %s", error.location)
            self.acme.net.account = messages.RegistrationResource(
                body=messages.Registration(), uri=error.location)
            return interfaces.RegistrationOutcome.EXISTING
        return interfaces.RegistrationOutcome.CREATED

    def new_order(self, domains: List[str]) -> interfaces.Order:
        identifiers = [messages.Identifier(typ=messages.IDENTIFIER_FQDN, value=domain)
                       for domain in domains]
        order = messages.NewOrder(identifiers=identifiers)
        new_nonce_url = getattr(self.acme.directory, 'newNonce')
        response = self.acme.net.post(self.acme.directory['newOrder'], order,
                                      new_nonce_url=new_nonce_url)
        body = messages.Order.from_json(response.json())
        authorizations = []
        for url in body.authorizations:
            authz_response = self.acme.net.post(url, None, new_nonce_url=new_nonce_url)
            authorizations.append(messages.AuthorizationResource(
                body=messages.Authorization.from_json(authz_response.json()),
                uri=url))
        orderr = messages.OrderResource(
            body=body,
            uri=response.headers.get('Location'),
            authorizations=authorizations)
        return AcmeOrder(self.acme, self.key, orderr)


def acme_from_identity(identity: AccountIdentity, verify_ssl: bool = True,
                       user_agent: Optional[str] = None) -> AcmeSession:
    """Wrangle ACME client construction.

    :param AccountIdentity identity: account key and the directory to use

    :raises acme.errors.Error: if the directory cannot be fetched

    """
    key = identity.key
    net = acme_client.ClientNetwork(key, alg=pick_algorithm(key),
                                    verify_ssl=verify_ssl,
                                    user_agent=user_agent or determine_user_agent())
    directory = acme_client.ClientV2.get_directory(identity.directory_url, net)
    return AcmeSession(acme_client.ClientV2(directory, net), key)
