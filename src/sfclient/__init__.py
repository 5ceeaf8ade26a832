"""Salesforce REST API client: authentication flows, SOQL queries and sObject CRUD."""

from importlib.metadata import PackageNotFoundError, version  # pragma: no cover

try:
    # Change here if project is renamed and does not equal the package name
    dist_name = "sfclient"
    __version__ = version(dist_name)
except PackageNotFoundError:  # pragma: no cover
    __version__ = "unknown"
finally:
    del version, PackageNotFoundError

from .auth import (  # noqa: E402
    AccessTokenAuthenticationFlow,
    AuthenticationFlow,
    AuthenticationInfo,
    ClientCredentialsAuthenticationFlow,
    UsernamePasswordAuthenticationFlow,
)
from .client import SalesforceClient, Session  # noqa: E402
from .config import SFConfig  # noqa: E402
from .exceptions import (  # noqa: E402
    FieldConversionError,
    MissingCredentialsError,
    NotAuthenticatedError,
    SalesforceError,
    SalesforceException,
    TransportError,
)

__all__ = [
    "AccessTokenAuthenticationFlow",
    "AuthenticationFlow",
    "AuthenticationInfo",
    "ClientCredentialsAuthenticationFlow",
    "FieldConversionError",
    "MissingCredentialsError",
    "NotAuthenticatedError",
    "SFConfig",
    "SalesforceClient",
    "SalesforceError",
    "SalesforceException",
    "Session",
    "TransportError",
    "UsernamePasswordAuthenticationFlow",
]
