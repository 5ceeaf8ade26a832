from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Type
from urllib.parse import quote

import requests

from .auth import AuthenticationFlow
from .error_mapping import exception_from_body, exception_from_response
from .exceptions import (
    NotAuthenticatedError,
    SalesforceError,
    SalesforceException,
    TransportError,
)
from .mapping import map_records, record_fields, to_field_map

__author__ = "Kevin Steptoe"
__copyright__ = "Kevin Steptoe"
__license__ = "MIT"

_logger = logging.getLogger(__name__)

# Salesforce answers DELETE on a malformed id the same way as on an already
# deleted record. Keep it that way until real server behaviour says otherwise.
DELETE_ERROR_OVERRIDES: Dict[str, SalesforceError] = {
    "MALFORMED_ID": SalesforceError.ENTITY_IS_DELETED,
}


@dataclass
class Session:
    """Credentials obtained from the last successful authentication."""

    access_token: Optional[str] = None
    instance_url: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token and self.instance_url)


def _soql_literal(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


# ----------------------------------------------------------------------
# Main API client
# ----------------------------------------------------------------------
class SalesforceClient:
    """Salesforce REST API client: SOQL queries, sObject CRUD and describe.

    Usage::

        client = SalesforceClient()
        client.authenticate(UsernamePasswordAuthenticationFlow(...))
        accounts = client.query("SELECT Id, Name FROM Account", Account)

    The client is synchronous and keeps mutable session state; do not share an
    instance between threads.
    """

    def __init__(
        self,
        api_version: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.sf_session = Session()
        self._pinned_api_version = api_version
        self.api_version: Optional[str] = api_version

    @property
    def is_authenticated(self) -> bool:
        return self.sf_session.is_authenticated

    @property
    def instance_url(self) -> Optional[str]:
        return self.sf_session.instance_url

    # --------------------------- Authentication -----------------------

    def authenticate(self, flow: AuthenticationFlow) -> None:
        """Run *flow* and keep the resulting session.

        Any previous session is dropped first, so a failed attempt always
        leaves the client unauthenticated.
        """
        self.logout()
        _logger.info("Authenticating using %s", type(flow).__name__)
        info = flow.authenticate(self.session, timeout=self.timeout)

        self.sf_session = Session(access_token=info.access_token, instance_url=info.instance_url)
        self.session.headers.update({"Authorization": f"Bearer {info.access_token}"})
        try:
            self.api_version = self._pinned_api_version or self._discover_latest_api_version()
        except Exception:
            self.logout()
            raise
        _logger.info(
            "Connected to Salesforce instance=%s api=%s",
            self.instance_url,
            self.api_version,
        )

    def logout(self) -> None:
        """Forget the current session. No remote call is made."""
        self.sf_session = Session()
        self.session.headers.pop("Authorization", None)

    # --------------------------- Queries -----------------------------

    def query(self, soql: str, record_type: Optional[Type[Any]] = None) -> List[Any]:
        """Run a SOQL query and return the first page of records.

        The SOQL text is sent verbatim. Without ``record_type`` the records
        are returned as dicts.
        """
        self._require_auth("query")
        res = self._json(self._get(self._data_url("query"), params={"q": soql}))
        return map_records(res.get("records", []), record_type)

    def iter_query(self, soql: str, record_type: Optional[Type[Any]] = None) -> Iterator[Any]:
        """Return an iterator over records across all pages via nextRecordsUrl.

        The authentication check happens here, not on first iteration.
        """
        self._require_auth("iter_query")
        return (
            record for page in self._iter_pages(soql) for record in map_records(page, record_type)
        )

    def query_batch(
        self,
        soql: str,
        on_batch: Callable[[List[Any]], None],
        record_type: Optional[Type[Any]] = None,
    ) -> List[Any]:
        """Fetch every page of *soql*, calling ``on_batch`` once per page.

        Returns all records in server order.
        """
        self._require_auth("query_batch")
        results: List[Any] = []
        for page_no, page in enumerate(self._iter_pages(soql), start=1):
            batch = map_records(page, record_type)
            _logger.debug("Query batch %d: %d records", page_no, len(batch))
            on_batch(batch)
            results.extend(batch)
        return results

    def find_by_id(
        self,
        object_name: str,
        record_id: str,
        record_type: Optional[Type[Any]] = None,
    ) -> Optional[Any]:
        """Return the record with *record_id*, or None when there is none.

        Selects the read/write properties of ``record_type`` (``Id`` only
        when no type is given).
        """
        self._require_auth("find_by_id")
        fields = (record_fields(record_type) if record_type else None) or ["Id"]
        soql = (
            f"SELECT {', '.join(fields)} FROM {object_name} "
            f"WHERE Id = '{_soql_literal(record_id)}'"
        )
        records = self.query(soql, record_type)
        return records[0] if records else None

    # --------------------------- sObject CRUD -------------------------

    def create(self, object_name: str, record: Any) -> str:
        """Insert *record* and return the new record id."""
        self._require_auth("create")
        body = {
            k: v for k, v in to_field_map(record).items() if not (k.lower() == "id" and v is None)
        }
        r = self._request("POST", self._sobject_url(object_name) + "/", json=body)
        res = self._json(r)
        if not res.get("success") or not res.get("id"):
            raise exception_from_body(r.status_code, res, url=r.url)
        _logger.info("Created %s %s", object_name, res["id"])
        return res["id"]

    def update(self, object_name: str, record_id: str, record: Any) -> bool:
        """Apply a partial update. Members named Id are never sent."""
        self._require_auth("update")
        body = {k: v for k, v in to_field_map(record).items() if k.lower() != "id"}
        self._request("PATCH", self._sobject_url(object_name, record_id), json=body)
        _logger.info("Updated %s %s", object_name, record_id)
        return True

    def delete(self, object_name: str, record_id: str) -> bool:
        """Delete a record.

        Both an already deleted record and a malformed id raise
        ``SalesforceError.ENTITY_IS_DELETED``.
        """
        self._require_auth("delete")
        self._request(
            "DELETE",
            self._sobject_url(object_name, record_id),
            overrides=DELETE_ERROR_OVERRIDES,
        )
        _logger.info("Deleted %s %s", object_name, record_id)
        return True

    # --------------------------- Metadata -----------------------------

    def read_metadata(self, object_name: str) -> str:
        """Return the raw describe document of *object_name*."""
        self._require_auth("read_metadata")
        return self._get(self._sobject_url(object_name) + "/describe").text

    def describe_global(self) -> Dict[str, Any]:
        """Return /sobjects (global describe)."""
        self._require_auth("describe_global")
        return self._json(self._get(self._data_url("sobjects")))

    # --------------------------- Internal helpers --------------------

    def _require_auth(self, operation: str) -> None:
        if not self.is_authenticated:
            raise NotAuthenticatedError(operation)

    def _data_url(self, path: str = "") -> str:
        return f"{self.instance_url}/services/data/{self.api_version}/{path}"

    def _sobject_url(self, object_name: str, record_id: Optional[str] = None) -> str:
        url = self._data_url(f"sobjects/{quote(object_name, safe='')}")
        if record_id is not None:
            url += f"/{quote(record_id, safe='')}"
        return url

    def _iter_pages(self, soql: str) -> Iterator[List[Mapping[str, Any]]]:
        res = self._json(self._get(self._data_url("query"), params={"q": soql}))
        yield res.get("records", [])
        next_url = res.get("nextRecordsUrl")
        while next_url:
            res = self._json(self._get(f"{self.instance_url}{next_url}"))
            yield res.get("records", [])
            next_url = res.get("nextRecordsUrl")

    def _discover_latest_api_version(self) -> str:
        """Find the latest available API version."""
        r = self._get(f"{self.instance_url}/services/data/")
        versions = self._json(r)
        if not isinstance(versions, list) or not all(isinstance(v, dict) for v in versions):
            versions = []
        try:
            best = max(versions, key=lambda v: float(v.get("version", "0")))
        except (ValueError, TypeError) as e:  # empty list or a non-numeric version
            raise TransportError(f"No API versions listed at {r.url}") from e
        version_str = str(best.get("url", "")).rstrip("/").split("/")[-1]
        if not version_str:
            raise TransportError(f"No API versions listed at {r.url}")
        _logger.debug("Latest API version discovered: %s", version_str)
        return version_str

    @staticmethod
    def _json(r: requests.Response) -> Any:
        try:
            return r.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON in response from {r.url}: {e}") from e

    # --------------------------- HTTP wrappers -----------------------

    def _get(self, url: str, *, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        return self._request("GET", url, params=params)

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        overrides: Optional[Mapping[str, SalesforceError]] = None,
    ) -> requests.Response:
        """Send one request; non-2xx answers raise SalesforceException."""
        _logger.debug("%s %s", method, url)
        try:
            r = self.session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            _logger.warning("Request error for %s %s: %s", method, url, e)
            raise TransportError(f"{method} {url} failed: {e}") from e

        if 200 <= r.status_code < 300:
            return r

        exc: SalesforceException = exception_from_response(r, overrides)
        if exc.error is SalesforceError.AUTHENTICATION_FAILURE:
            _logger.warning("Session rejected by Salesforce; client is now unauthenticated.")
            self.logout()
        raise exc
