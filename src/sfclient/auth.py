from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from .error_mapping import exception_from_response
from .exceptions import MissingCredentialsError, TransportError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticationInfo:
    """Result of a successful token exchange."""

    access_token: str
    instance_url: str


class AuthenticationFlow(ABC):
    """Strategy that turns credentials into an :class:`AuthenticationInfo`."""

    @abstractmethod
    def authenticate(
        self, session: requests.Session, timeout: Optional[float] = None
    ) -> AuthenticationInfo:
        """Perform the exchange. Failures raise, they are never retried."""


class _TokenRequestFlow(AuthenticationFlow):
    """Shared OAuth token endpoint handling."""

    grant_type: str = ""

    def __init__(self, token_request_endpoint_url: Optional[str]) -> None:
        self.token_request_endpoint_url = token_request_endpoint_url

    def _credentials(self) -> Dict[str, Optional[str]]:
        raise NotImplementedError

    def authenticate(
        self, session: requests.Session, timeout: Optional[float] = None
    ) -> AuthenticationInfo:
        credentials = self._credentials()
        missing = [k for k, v in credentials.items() if not v]
        if not self.token_request_endpoint_url:
            missing.append("token_request_endpoint_url")
        if missing:
            raise MissingCredentialsError(missing)

        data = {"grant_type": self.grant_type, **credentials}
        _logger.debug(
            "Requesting access token from %s (grant_type=%s)",
            self.token_request_endpoint_url,
            self.grant_type,
        )
        try:
            r = session.request(
                "POST",
                self.token_request_endpoint_url,  # type: ignore[arg-type]
                data=data,
                headers={"Accept": "application/json"},
                timeout=timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"Token request failed: {e}") from e

        if not 200 <= r.status_code < 300:
            raise exception_from_response(r)

        try:
            payload = r.json()
            info = AuthenticationInfo(
                access_token=payload["access_token"],
                instance_url=payload["instance_url"].rstrip("/"),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise TransportError(f"Unexpected token response: {e}") from e

        _logger.info("Obtained access token for instance %s", info.instance_url)
        return info


class UsernamePasswordAuthenticationFlow(_TokenRequestFlow):
    """OAuth 2.0 username-password flow."""

    grant_type = "password"

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        username: Optional[str],
        password: Optional[str],
        token_request_endpoint_url: Optional[str] = None,
    ) -> None:
        super().__init__(token_request_endpoint_url)
        self.client_id = client_id
        self.client_secret = client_secret
        self.username = username
        self.password = password

    def _credentials(self) -> Dict[str, Optional[str]]:
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "username": self.username,
            "password": self.password,
        }

    def __repr__(self) -> str:
        return (
            f"UsernamePasswordAuthenticationFlow(client_id={self.client_id!r}, "
            f"username={self.username!r}, "
            f"token_request_endpoint_url={self.token_request_endpoint_url!r})"
        )


class ClientCredentialsAuthenticationFlow(_TokenRequestFlow):
    """OAuth 2.0 client-credentials flow (server-to-server integrations)."""

    grant_type = "client_credentials"

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        token_request_endpoint_url: Optional[str] = None,
    ) -> None:
        super().__init__(token_request_endpoint_url)
        self.client_id = client_id
        self.client_secret = client_secret

    def _credentials(self) -> Dict[str, Optional[str]]:
        return {"client_id": self.client_id, "client_secret": self.client_secret}


class AccessTokenAuthenticationFlow(AuthenticationFlow):
    """Reuse a token issued elsewhere (e.g. by the sf CLI); no network call."""

    def __init__(self, access_token: Optional[str], instance_url: Optional[str]) -> None:
        self.access_token = access_token
        self.instance_url = instance_url

    def authenticate(
        self, session: requests.Session, timeout: Optional[float] = None
    ) -> AuthenticationInfo:
        missing = [
            k
            for k, v in {
                "access_token": self.access_token,
                "instance_url": self.instance_url,
            }.items()
            if not v
        ]
        if missing:
            raise MissingCredentialsError(missing)
        _logger.debug("Using existing access token.")
        return AuthenticationInfo(
            access_token=self.access_token,  # type: ignore[arg-type]
            instance_url=self.instance_url.rstrip("/"),  # type: ignore[union-attr]
        )
