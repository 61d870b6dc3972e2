"""Salesforce REST Data API: CRUD, SOQL, and unit-of-work commit via composite graph."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional

import requests

from .exceptions import ApplinkError, CompositeRequestError
from .records import (
    RecordForCreate,
    RecordForUpdate,
    RecordModificationResult,
    RecordQueryResult,
    map_query_response,
)
from .rest import DEFAULT_TIMEOUT, RestClient, is_success, raise_if_cancelled, response_json
from .schemas import CompositeGraphRequest, CompositeGraphResponse
from .unit_of_work import ReferenceId, UnitOfWork

_logger = logging.getLogger(__name__)

GRAPH_ID = "graph0"


class DataApi(RestClient):
    """Minimal Salesforce REST Data API client."""

    def __init__(
        self,
        access_token: str,
        api_version: str,
        domain_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(access_token, domain_url, session=session, timeout=timeout)
        self.api_version = api_version.lstrip("vV")

    def _data_path(self, suffix: str) -> str:
        return f"/services/data/v{self.api_version}/{suffix.lstrip('/')}"

    # --------------------------- Records ------------------------------

    def create(
        self, record: RecordForCreate, *, cancel: Optional[threading.Event] = None
    ) -> RecordModificationResult:
        """Create a record and return its new Id."""
        r = self._post(self._data_path(f"sobjects/{record.type}"), json=record.to_body(), cancel=cancel)
        payload = response_json(r)
        record_id = payload.get("id") if isinstance(payload, dict) else None
        if not record_id:
            raise ApplinkError(f"Create failed: {payload}")
        _logger.info("Created %s %s", record.type, record_id)
        return RecordModificationResult(id=record_id)

    def update(
        self, record: RecordForUpdate, *, cancel: Optional[threading.Event] = None
    ) -> RecordModificationResult:
        """Update a record; ``record.fields`` must include its Id."""
        record_id, body = record.split_id()
        self._patch(self._data_path(f"sobjects/{record.type}/{record_id}"), json=body, cancel=cancel)
        _logger.info("Updated %s %s", record.type, record_id)
        return RecordModificationResult(id=record_id)

    def delete(
        self, type: str, id: str, *, cancel: Optional[threading.Event] = None
    ) -> RecordModificationResult:
        self._delete(self._data_path(f"sobjects/{type}/{id}"), cancel=cancel)
        _logger.info("Deleted %s %s", type, id)
        return RecordModificationResult(id=id)

    # --------------------------- SOQL ---------------------------------

    def query(self, soql: str, *, cancel: Optional[threading.Event] = None) -> RecordQueryResult:
        """Run a SOQL query and return the first page."""
        r = self._get(self._data_path("query"), params={"q": soql}, cancel=cancel)
        return map_query_response(r.json())

    def query_more(
        self, prior: RecordQueryResult, *, cancel: Optional[threading.Event] = None
    ) -> RecordQueryResult:
        """Fetch the page after ``prior``; returns an empty page if there is none."""
        if not prior.next_records_url:
            return RecordQueryResult(done=prior.done, total_size=prior.total_size, records=[])
        r = self._get(prior.next_records_url, cancel=cancel)
        return map_query_response(r.json())

    # --------------------------- Unit of work -------------------------

    def new_unit_of_work(self) -> UnitOfWork:
        return UnitOfWork()

    def commit_unit_of_work(
        self, uow: UnitOfWork, *, cancel: Optional[threading.Event] = None
    ) -> Dict[ReferenceId, RecordModificationResult]:
        """Send all registered operations as one composite graph.

        Returns a result per reference id, or raises CompositeRequestError on
        the first sub-result outside 2xx; no partial mapping is returned.
        """
        if uow.committed:
            raise RuntimeError("Unit of work has already been committed")
        raise_if_cancelled(cancel)
        subrequests = uow.subrequests
        uow.committed = True
        if not subrequests:
            return {}

        graph = CompositeGraphRequest(
            graph_id=GRAPH_ID,
            subrequests=[s.to_schema(self.api_version) for s in subrequests],
        )
        _logger.info("Committing unit of work with %d subrequests", len(subrequests))
        r = self._post(self._data_path("composite/graph"), json=graph.to_json(), cancel=cancel)
        response = CompositeGraphResponse.from_json(r.json())

        by_ref = {str(s.reference_id): s for s in subrequests}
        results: Dict[ReferenceId, RecordModificationResult] = {}
        for sub in response.subresponses:
            if not is_success(sub.http_status_code):
                _logger.error(
                    "Subrequest %s failed with HTTP %s", sub.reference_id, sub.http_status_code
                )
                raise CompositeRequestError(sub.reference_id, sub.error_message)

            registered = by_ref.get(sub.reference_id)
            record_id = sub.body.get("id") if isinstance(sub.body, dict) else None
            record_id = record_id or (registered.record_id if registered else None)
            if not record_id:
                raise ApplinkError(f"Subrequest {sub.reference_id} succeeded without a record id: {sub.body}")
            key = registered.reference_id if registered else ReferenceId(sub.reference_id)
            results[key] = RecordModificationResult(id=record_id)
        return results
