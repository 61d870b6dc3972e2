from __future__ import annotations

import logging
import threading
from typing import Any, Mapping, Optional

import requests

from .rest import DEFAULT_TIMEOUT, RestClient, response_json
from .schemas import DataCloudQueryRequest, DataCloudQueryResponse, DataCloudUpsertResponse

_logger = logging.getLogger(__name__)


class DataCloudApi(RestClient):
    """Minimal client for Data Cloud query and ingest endpoints."""

    def __init__(
        self,
        access_token: str,
        domain_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(access_token, domain_url, session=session, timeout=timeout)

    def query(
        self, sql: str, *, cancel: Optional[threading.Event] = None
    ) -> DataCloudQueryResponse:
        """Run a Data Cloud SQL query and return its first batch."""
        r = self._post("/api/v2/query", json=DataCloudQueryRequest(sql).to_json(), cancel=cancel)
        return DataCloudQueryResponse.from_json(response_json(r))

    def query_next_batch(
        self, next_batch_id: str, *, cancel: Optional[threading.Event] = None
    ) -> DataCloudQueryResponse:
        """Retrieve the next batch of a prior query."""
        r = self._post(f"/api/v2/query/{next_batch_id}", cancel=cancel)
        return DataCloudQueryResponse.from_json(response_json(r))

    def upsert(
        self,
        name: str,
        object_name: str,
        data: Mapping[str, Any],
        *,
        cancel: Optional[threading.Event] = None,
    ) -> DataCloudUpsertResponse:
        """Upsert records into an ingestion source object.

        ``data`` is the ingestion body, usually ``{"data": [{...}, ...]}``.
        """
        _logger.info("Upserting into Data Cloud source %s/%s", name, object_name)
        r = self._post(f"/api/v1/ingest/sources/{name}/{object_name}", json=dict(data), cancel=cancel)
        return DataCloudUpsertResponse.from_json(response_json(r))
