"""Translate Salesforce error payloads into :class:`SalesforceException`.

Two body shapes come back from Salesforce:

* the REST API returns a list of ``{"errorCode", "message", "fields"}``
  objects; the first entry decides the outcome.
* the OAuth token endpoint returns ``{"error", "error_description"}``.

Dispatch is done through the lookup tables below. Adding support for a new
remote code means adding a table entry, call sites stay untouched.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests

from .exceptions import SalesforceError, SalesforceException

_logger = logging.getLogger(__name__)

REST_ERROR_CODES: Dict[str, SalesforceError] = {
    "INVALID_FIELD": SalesforceError.INVALID_FIELD,
    "INVALID_FIELD_FOR_INSERT_UPDATE": SalesforceError.INVALID_FIELD_FOR_INSERT_UPDATE,
    "NOT_FOUND": SalesforceError.NOT_FOUND,
    "ENTITY_IS_DELETED": SalesforceError.ENTITY_IS_DELETED,
    "INVALID_SESSION_ID": SalesforceError.AUTHENTICATION_FAILURE,
}

OAUTH_ERROR_CODES: Dict[str, SalesforceError] = {
    "invalid_grant": SalesforceError.AUTHENTICATION_FAILURE,
    "invalid_client_id": SalesforceError.INVALID_CLIENT,
    "invalid_client": SalesforceError.INVALID_CLIENT,
}

# The token endpoint reports a bad username and a bad password with the same
# ``invalid_grant`` code; only the description tells them apart.
OAUTH_ERROR_DESCRIPTIONS: Dict[str, SalesforceError] = {
    "authentication failure - invalid password": SalesforceError.INVALID_PASSWORD,
}

STATUS_FALLBACKS: Dict[int, SalesforceError] = {
    401: SalesforceError.AUTHENTICATION_FAILURE,
    404: SalesforceError.NOT_FOUND,
}

_ALL_CODES: Dict[str, SalesforceError] = {**REST_ERROR_CODES, **OAUTH_ERROR_CODES}


def map_error(
    status_code: Optional[int],
    error_code: Optional[str],
    message: str,
    overrides: Optional[Mapping[str, SalesforceError]] = None,
) -> Tuple[SalesforceError, str]:
    """Return the error kind and message for one remote failure.

    ``overrides`` lets a single operation remap specific codes without
    touching the shared tables.
    """
    if error_code in OAUTH_ERROR_CODES and message in OAUTH_ERROR_DESCRIPTIONS:
        return OAUTH_ERROR_DESCRIPTIONS[message], message

    if error_code:
        if overrides and error_code in overrides:
            return overrides[error_code], message
        if error_code in _ALL_CODES:
            return _ALL_CODES[error_code], message
        return SalesforceError.GENERIC, message

    if status_code in STATUS_FALLBACKS:
        return STATUS_FALLBACKS[status_code], message  # type: ignore[index]
    return SalesforceError.GENERIC, message


def parse_error_body(body: Any) -> Tuple[Optional[str], Optional[str], List[str]]:
    """Extract ``(error_code, message, fields)`` from a decoded error body."""
    if isinstance(body, list) and body and isinstance(body[0], dict):
        first = body[0]
        return first.get("errorCode"), first.get("message"), list(first.get("fields") or [])
    if isinstance(body, dict):
        if "error" in body:
            return body.get("error"), body.get("error_description"), []
        if "errorCode" in body:
            return body.get("errorCode"), body.get("message"), list(body.get("fields") or [])
        # A create() response with success=false carries its errors inline.
        if body.get("errors"):
            return parse_error_body(body["errors"])
    return None, None, []


def exception_from_response(
    response: requests.Response,
    overrides: Optional[Mapping[str, SalesforceError]] = None,
) -> SalesforceException:
    """Build the exception describing a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    return exception_from_body(
        response.status_code,
        body,
        fallback_message=response.text or f"HTTP {response.status_code}",
        overrides=overrides,
        url=response.url,
    )


def exception_from_body(
    status_code: Optional[int],
    body: Any,
    *,
    fallback_message: str = "Unknown Salesforce error",
    overrides: Optional[Mapping[str, SalesforceError]] = None,
    url: Optional[str] = None,
) -> SalesforceException:
    """Build the exception for an already decoded error body."""
    code, message, fields = parse_error_body(body)
    if message is None:
        message = fallback_message

    error, message = map_error(status_code, code, message, overrides)
    _logger.error("HTTP %s error for %s: %s (%s)", status_code, url or "?", code or "-", message)
    return SalesforceException(error, message, status_code=status_code, fields=fields)
