"""Salesforce Bulk API v2 helper for CSV ingest and query jobs."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Union

import requests

from .datatable import (
    SIZE_100_MB,
    DataTable,
    DataTableBuilder,
    parse_csv,
    split_data_table,
    to_csv,
)
from .exceptions import OperationCancelled
from .rest import CSV_CONTENT_TYPE, DEFAULT_TIMEOUT, RestClient, raise_if_cancelled
from .schemas import (
    CreateIngestJobRequest,
    CreateQueryJobRequest,
    JobCreatedResponse,
    JobStateRequest,
)

_logger = logging.getLogger(__name__)

LOCATOR_HEADER = "sforce-locator"
NULL_VALUE = "#N/A"


class JobKind(enum.Enum):
    INGEST = "ingestJob"
    QUERY = "queryJob"

    @property
    def path(self) -> str:
        return _JOB_PATHS[self]


_JOB_PATHS: Dict[JobKind, str] = {
    JobKind.INGEST: "jobs/ingest",
    JobKind.QUERY: "jobs/query",
}


@dataclass(frozen=True)
class IngestJobReference:
    id: str
    kind: ClassVar[JobKind] = JobKind.INGEST

    @property
    def type(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class QueryJobReference:
    id: str
    kind: ClassVar[JobKind] = JobKind.QUERY

    @property
    def type(self) -> str:
        return self.kind.value


JobReference = Union[IngestJobReference, QueryJobReference]


@dataclass(frozen=True)
class QueryJobResults:
    """One page of query job results."""

    data_table: DataTable
    job_reference: QueryJobReference
    locator: Optional[str] = None
    number_of_records: int = 0

    @property
    def done(self) -> bool:
        return not (self.locator or "").strip()


@dataclass(frozen=True)
class IngestResult:
    """Outcome of one uploaded chunk: a job reference, an error, or both."""

    job_reference: Optional[IngestJobReference]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _normalize_locator(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value or value.lower() == "null":
        return None
    return value


class BulkApi(RestClient):
    """Bulk API v2 ingest and query jobs, with CSV helpers."""

    def __init__(
        self,
        access_token: str,
        api_version: str,
        instance_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(access_token, instance_url, session=session, timeout=timeout)
        self.api_version = api_version.lstrip("vV")

    def _job_url(self, kind: JobKind, job_id: Optional[str] = None, *suffix: str) -> str:
        parts = [f"/services/data/v{self.api_version}", kind.path]
        if job_id:
            parts.append(job_id)
        parts.extend(suffix)
        return "/".join(parts)

    # --------------------------- Table helpers ------------------------

    def create_data_table_builder(self, *columns: str) -> DataTableBuilder:
        return DataTableBuilder(*columns)

    def split_data_table(self, table: DataTable, byte_budget: int = SIZE_100_MB) -> Iterator[DataTable]:
        return split_data_table(table, byte_budget)

    def format_date(self, value: Union[date, datetime]) -> str:
        if isinstance(value, datetime):
            value = value.astimezone(timezone.utc).date() if value.tzinfo else value.date()
        return value.strftime("%Y-%m-%d")

    def format_datetime(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()

    def format_null_value(self) -> str:
        return NULL_VALUE

    # --------------------------- Ingest -------------------------------

    def iter_ingest(
        self,
        object_name: str,
        table: DataTable,
        operation: str = "insert",
        *,
        byte_budget: int = SIZE_100_MB,
        cancel: Optional[threading.Event] = None,
    ) -> Iterator[IngestResult]:
        """Create, upload and close one ingest job per chunk, yielding each outcome.

        A failing chunk is reported in its IngestResult and the next chunk is
        still processed. Cancellation stops before the next chunk's job is created.
        """
        for index, chunk in enumerate(split_data_table(table, byte_budget), start=1):
            raise_if_cancelled(cancel)
            job: Optional[IngestJobReference] = None
            try:
                job = self._create_ingest_job(object_name, operation, cancel=cancel)
                self._upload_ingest_data(job, chunk, cancel=cancel)
                self._complete_ingest_job(job, cancel=cancel)
            except OperationCancelled:
                raise
            except Exception as e:
                _logger.warning("Ingest chunk %d for %s failed: %s", index, object_name, e)
                yield IngestResult(job_reference=job, error=str(e))
                continue
            _logger.info("Ingest chunk %d for %s queued as job %s (%d rows)", index, object_name, job.id, len(chunk))
            yield IngestResult(job_reference=job)

    def ingest(
        self,
        object_name: str,
        table: DataTable,
        operation: str = "insert",
        *,
        byte_budget: int = SIZE_100_MB,
        cancel: Optional[threading.Event] = None,
    ) -> List[IngestResult]:
        return list(
            self.iter_ingest(object_name, table, operation, byte_budget=byte_budget, cancel=cancel)
        )

    def _create_ingest_job(
        self, object_name: str, operation: str, *, cancel: Optional[threading.Event] = None
    ) -> IngestJobReference:
        body = CreateIngestJobRequest(object_name=object_name, operation=operation)
        r = self._post(self._job_url(JobKind.INGEST), json=body.to_json(), cancel=cancel)
        return IngestJobReference(JobCreatedResponse.from_json(r.json()).id)

    def _upload_ingest_data(
        self, job: IngestJobReference, table: DataTable, *, cancel: Optional[threading.Event] = None
    ) -> None:
        self._put(
            self._job_url(JobKind.INGEST, job.id, "batches"),
            data=to_csv(table).encode("utf-8"),
            headers={"Content-Type": CSV_CONTENT_TYPE},
            cancel=cancel,
        )

    def _complete_ingest_job(self, job: IngestJobReference, *, cancel: Optional[threading.Event] = None) -> None:
        self._set_state(job, "UploadComplete", cancel=cancel)

    def _set_state(self, job: JobReference, state: str, *, cancel: Optional[threading.Event] = None) -> None:
        self._patch(
            self._job_url(job.kind, job.id), json=JobStateRequest(state).to_json(), cancel=cancel
        )

    def get_successful_results(
        self, job: IngestJobReference, *, cancel: Optional[threading.Event] = None
    ) -> DataTable:
        return self._get_ingest_results(job, "successfulResults", cancel=cancel)

    def get_failed_results(
        self, job: IngestJobReference, *, cancel: Optional[threading.Event] = None
    ) -> DataTable:
        return self._get_ingest_results(job, "failedResults", cancel=cancel)

    def get_unprocessed_records(
        self, job: IngestJobReference, *, cancel: Optional[threading.Event] = None
    ) -> DataTable:
        return self._get_ingest_results(job, "unprocessedrecords", cancel=cancel)

    def _get_ingest_results(
        self, job: IngestJobReference, result_type: str, *, cancel: Optional[threading.Event] = None
    ) -> DataTable:
        r = self._get(
            self._job_url(JobKind.INGEST, job.id, result_type),
            headers={"Accept": CSV_CONTENT_TYPE},
            cancel=cancel,
        )
        return parse_csv(r.text)

    # --------------------------- Query --------------------------------

    def query(
        self, soql: str, operation: str = "query", *, cancel: Optional[threading.Event] = None
    ) -> QueryJobReference:
        """Create a query job; ``operation`` is ``query`` or ``queryAll``."""
        body = CreateQueryJobRequest(query=soql, operation=operation)
        r = self._post(self._job_url(JobKind.QUERY), json=body.to_json(), cancel=cancel)
        job = QueryJobReference(JobCreatedResponse.from_json(r.json()).id)
        _logger.info("Created query job %s", job.id)
        return job

    def get_query_results(
        self,
        job: QueryJobReference,
        max_records: Optional[int] = None,
        locator: Optional[str] = None,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> QueryJobResults:
        """Fetch one page of results; pass the previous page's locator to continue."""
        params: Dict[str, Any] = {}
        if locator and locator.strip():
            params["locator"] = locator
        if max_records is not None:
            params["maxRecords"] = max_records
        r = self._get(
            self._job_url(JobKind.QUERY, job.id, "results"),
            params=params or None,
            headers={"Accept": CSV_CONTENT_TYPE},
            cancel=cancel,
        )
        table = parse_csv(r.text)
        return QueryJobResults(
            data_table=table,
            job_reference=job,
            locator=_normalize_locator(r.headers.get(LOCATOR_HEADER)),
            number_of_records=len(table),
        )

    def get_more_query_results(
        self,
        current: QueryJobResults,
        max_records: Optional[int] = None,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> QueryJobResults:
        return self.get_query_results(current.job_reference, max_records, current.locator, cancel=cancel)

    # --------------------------- Job management -----------------------

    def abort(self, job: JobReference, *, cancel: Optional[threading.Event] = None) -> None:
        self._set_state(job, "Aborted", cancel=cancel)
        _logger.info("Aborted %s %s", job.type, job.id)

    def delete(self, job: JobReference, *, cancel: Optional[threading.Event] = None) -> None:
        self._delete(self._job_url(job.kind, job.id), cancel=cancel)
        _logger.info("Deleted %s %s", job.type, job.id)

    def get_info(self, job: JobReference, *, cancel: Optional[threading.Event] = None) -> Dict[str, Any]:
        return self._get(self._job_url(job.kind, job.id), cancel=cancel).json()
