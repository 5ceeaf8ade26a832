from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from dotenv import load_dotenv

from .auth import (
    AccessTokenAuthenticationFlow,
    AuthenticationFlow,
    ClientCredentialsAuthenticationFlow,
    UsernamePasswordAuthenticationFlow,
)
from .exceptions import MissingCredentialsError

_logger = logging.getLogger(__name__)

AUTH_FLOWS = ("password", "client_credentials")


def load_env_files(
    candidates: Optional[Iterable[Path]] = None,
    *,
    quiet: bool = False,
) -> Optional[Path]:
    """Load the first existing .env / .dotenv file into the environment.

    Returns the path that was loaded, or None. Variables already present in
    the environment are not overridden.
    """
    if candidates is None:
        cwd = Path.cwd()
        candidates = (cwd / ".env", cwd / ".dotenv")

    for path in candidates:
        if path.exists():
            load_dotenv(path)
            if not quiet:
                _logger.debug("Loaded environment variables from %s", path)
            return path

    if not quiet:
        _logger.debug("No .env/.dotenv file found in %s", Path.cwd())
    return None


# ----------------------------------------------------------------------
# Configuration dataclass
# ----------------------------------------------------------------------
@dataclass
class SFConfig:
    """Connection settings for a Salesforce org."""

    # "password" (username-password flow) or "client_credentials"
    auth_flow: str = "password"

    # Base login URL (not the instance URL)
    login_url: str = "https://login.salesforce.com"

    # Explicit token endpoint; derived from login_url when unset
    token_url: Optional[str] = None

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    # Optional: pre-issued token / instance URL, skips the token exchange
    access_token: Optional[str] = None
    instance_url: Optional[str] = None

    # Optional: pin the REST API version (e.g. "v60.0"); otherwise auto-discover
    api_version: Optional[str] = None

    timeout: float = 30.0

    # sObject used by the functional tests
    object_name: str = "Account"

    @classmethod
    def from_env(cls) -> SFConfig:
        """Load configuration from SF_* environment variables."""
        return cls(
            auth_flow=os.getenv("SF_AUTH_FLOW", "password"),
            login_url=os.getenv("SF_LOGIN_URL", "https://login.salesforce.com"),
            token_url=os.getenv("SF_TOKEN_URL"),
            client_id=os.getenv("SF_CLIENT_ID"),
            client_secret=os.getenv("SF_CLIENT_SECRET"),
            username=os.getenv("SF_USERNAME"),
            password=os.getenv("SF_PASSWORD"),
            access_token=os.getenv("SF_ACCESS_TOKEN"),
            instance_url=os.getenv("SF_INSTANCE_URL"),
            api_version=os.getenv("SF_API_VERSION"),
            timeout=float(os.getenv("SF_TIMEOUT", "30")),
            object_name=os.getenv("SF_OBJECT_NAME", "Account"),
        )

    @property
    def token_request_endpoint_url(self) -> str:
        if self.token_url:
            return self.token_url
        return f"{self.login_url.rstrip('/')}/services/oauth2/token"

    def authentication_flow(self) -> AuthenticationFlow:
        """Build the flow matching these settings.

        A pre-issued access token wins over any configured OAuth flow.
        """
        if self.access_token and self.instance_url:
            return AccessTokenAuthenticationFlow(self.access_token, self.instance_url)

        if self.auth_flow not in AUTH_FLOWS:
            raise ValueError(
                f"Unsupported SF_AUTH_FLOW: {self.auth_flow!r} (expected one of {AUTH_FLOWS})"
            )

        required = {"SF_CLIENT_ID": self.client_id, "SF_CLIENT_SECRET": self.client_secret}
        if self.auth_flow == "password":
            required.update({"SF_USERNAME": self.username, "SF_PASSWORD": self.password})
        missing = [k for k, v in required.items() if not v]
        if missing:
            raise MissingCredentialsError(missing)

        if self.auth_flow == "client_credentials":
            return ClientCredentialsAuthenticationFlow(
                self.client_id, self.client_secret, self.token_request_endpoint_url
            )
        return UsernamePasswordAuthenticationFlow(
            self.client_id,
            self.client_secret,
            self.username,
            self.password,
            self.token_request_endpoint_url,
        )
