"""Tests for heroku_applink.bulk_api."""

import threading
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from heroku_applink.bulk_api import (
    IngestJobReference,
    JobKind,
    QueryJobReference,
    QueryJobResults,
)
from heroku_applink.datatable import DataTable, DataTableBuilder
from heroku_applink.exceptions import OperationCancelled

JOBS = "https://example.my.salesforce.com/services/data/v62.0/jobs"


def _three_chunk_table():
    # header "Id,Name\r\n" is 9 bytes and each row 8, so a 17-byte budget gives one row per chunk
    b = DataTableBuilder("Id", "Name")
    for i in range(3):
        b.add_row([str(i), "abcd"])
    return b.build()


class TestIngest:
    def test_chunk_failure_does_not_stop_later_chunks(self, org, response):
        bulk = org.bulk_api
        replies = [
            response(200, json={"id": "750A", "state": "Open"}),
            response(201, text=""),
            response(200, json={"id": "750A", "state": "UploadComplete"}),
            response(500, json=[{"errorCode": "UNKNOWN_EXCEPTION", "message": "boom"}]),
            response(200, json={"id": "750C", "state": "Open"}),
            response(201, text=""),
            response(200, json={"id": "750C", "state": "UploadComplete"}),
        ]
        with patch.object(bulk.session, "request", side_effect=replies) as req:
            results = bulk.ingest("Account", _three_chunk_table(), byte_budget=17)

        assert len(results) == 3
        assert results[0].ok and results[0].job_reference == IngestJobReference("750A")
        assert not results[1].ok
        assert results[1].job_reference is None
        assert "boom" in results[1].error
        assert results[2].ok and results[2].job_reference == IngestJobReference("750C")
        assert req.call_count == 7

    def test_job_lifecycle_requests(self, org, response):
        bulk = org.bulk_api
        table = DataTableBuilder("Name").add_row(["Acme"]).build()
        replies = [
            response(200, json={"id": "750X"}),
            response(201, text=""),
            response(200, json={"id": "750X"}),
        ]
        with patch.object(bulk.session, "request", side_effect=replies) as req:
            results = bulk.ingest("Account", table, "upsert")

        create, upload, complete = req.call_args_list
        assert create.args == ("POST", f"{JOBS}/ingest")
        assert create.kwargs["json"] == {
            "object": "Account",
            "operation": "upsert",
            "contentType": "CSV",
            "lineEnding": "CRLF",
        }
        assert upload.args == ("PUT", f"{JOBS}/ingest/750X/batches")
        assert upload.kwargs["data"] == b"Name\r\nAcme\r\n"
        assert upload.kwargs["headers"]["Content-Type"] == "text/csv"
        assert complete.args == ("PATCH", f"{JOBS}/ingest/750X")
        assert complete.kwargs["json"] == {"state": "UploadComplete"}
        assert results[0].ok

    def test_upload_failure_keeps_job_reference(self, org, response):
        bulk = org.bulk_api
        table = DataTableBuilder("Name").add_row(["Acme"]).build()
        replies = [
            response(200, json={"id": "750Y"}),
            response(400, json=[{"errorCode": "INVALIDJOBSTATE", "message": "Job is not open"}]),
        ]
        with patch.object(bulk.session, "request", side_effect=replies):
            results = bulk.ingest("Account", table)

        assert results[0].job_reference == IngestJobReference("750Y")
        assert "Job is not open" in results[0].error

    def test_cancel_between_chunks(self, org, response):
        bulk = org.bulk_api
        cancel = threading.Event()
        replies = [
            response(200, json={"id": "750A"}),
            response(201, text=""),
            response(200, json={"id": "750A"}),
        ]
        with patch.object(bulk.session, "request", side_effect=replies) as req:
            results = bulk.iter_ingest("Account", _three_chunk_table(), byte_budget=17, cancel=cancel)
            first = next(results)
            cancel.set()
            with pytest.raises(OperationCancelled):
                next(results)

        assert first.ok
        assert req.call_count == 3

    def test_ingest_results_tables(self, org, response):
        bulk = org.bulk_api
        csv_body = '"sf__Id","sf__Created","Name"\n"001A","true","Acme"\n'
        with patch.object(bulk.session, "request", return_value=response(200, text=csv_body)) as req:
            ok = bulk.get_successful_results(IngestJobReference("750A"))
            bulk.get_failed_results(IngestJobReference("750A"))
            bulk.get_unprocessed_records(IngestJobReference("750A"))

        urls = [c.args[1] for c in req.call_args_list]
        assert urls == [
            f"{JOBS}/ingest/750A/successfulResults",
            f"{JOBS}/ingest/750A/failedResults",
            f"{JOBS}/ingest/750A/unprocessedrecords",
        ]
        assert req.call_args.kwargs["headers"]["Accept"] == "text/csv"
        assert ok.columns == ("sf__Id", "sf__Created", "Name")
        assert ok[0]["sf__Id"] == "001A"


class TestQuery:
    def test_create_query_job(self, org, response):
        bulk = org.bulk_api
        with patch.object(bulk.session, "request", return_value=response(200, json={"id": "750Q"})) as req:
            job = bulk.query("SELECT Id FROM Account", "queryAll")

        assert job == QueryJobReference("750Q")
        assert job.type == "queryJob"
        assert req.call_args.args == ("POST", f"{JOBS}/query")
        assert req.call_args.kwargs["json"] == {"operation": "queryAll", "query": "SELECT Id FROM Account"}

    def test_pagination_with_locator(self, org, response):
        bulk = org.bulk_api
        job = QueryJobReference("750Q")
        page1 = response(200, text="Id\n001\n002\n", headers={"sforce-locator": "MTAwMDA"})
        page2 = response(200, text="Id\n003\n", headers={"sforce-locator": "null"})
        with patch.object(bulk.session, "request", side_effect=[page1, page2]) as req:
            first = bulk.get_query_results(job, max_records=2)
            second = bulk.get_more_query_results(first, max_records=2)

        assert first.locator == "MTAwMDA"
        assert first.done is False
        assert first.number_of_records == 2
        assert [r["Id"] for r in first.data_table] == ["001", "002"]

        assert second.locator is None
        assert second.done is True
        assert second.number_of_records == 1

        first_call, second_call = req.call_args_list
        assert first_call.args[1] == f"{JOBS}/query/750Q/results"
        assert first_call.kwargs["params"] == {"maxRecords": 2}
        assert second_call.kwargs["params"] == {"locator": "MTAwMDA", "maxRecords": 2}
        assert second_call.kwargs["headers"]["Accept"] == "text/csv"

    def test_missing_locator_header_means_done(self, org, response):
        bulk = org.bulk_api
        with patch.object(bulk.session, "request", return_value=response(200, text="Id\n001\n")) as req:
            page = bulk.get_query_results(QueryJobReference("750Q"))

        assert page.done is True
        assert req.call_args.kwargs["params"] is None

    @pytest.mark.parametrize("locator,done", [(None, True), ("", True), ("  ", True), ("abc", False)])
    def test_done_is_derived_from_locator(self, locator, done):
        page = QueryJobResults(
            data_table=DataTable(columns=()), job_reference=QueryJobReference("1"), locator=locator
        )

        assert page.done is done


class TestJobManagement:
    @pytest.mark.parametrize(
        "job,segment",
        [(IngestJobReference("750I"), "ingest/750I"), (QueryJobReference("750Q"), "query/750Q")],
    )
    def test_abort_delete_info_dispatch_by_kind(self, org, response, job, segment):
        bulk = org.bulk_api
        with patch.object(bulk.session, "request", return_value=response(200, json={"id": job.id, "state": "Aborted"})) as req:
            bulk.abort(job)
            bulk.delete(job)
            info = bulk.get_info(job)

        abort, delete, get = req.call_args_list
        assert abort.args == ("PATCH", f"{JOBS}/{segment}")
        assert abort.kwargs["json"] == {"state": "Aborted"}
        assert delete.args == ("DELETE", f"{JOBS}/{segment}")
        assert get.args == ("GET", f"{JOBS}/{segment}")
        assert info["state"] == "Aborted"

    def test_job_kinds(self):
        assert IngestJobReference("1").kind is JobKind.INGEST
        assert QueryJobReference("1").kind is JobKind.QUERY
        assert IngestJobReference("1") != QueryJobReference("1")
        assert {k.path for k in JobKind} == {"jobs/ingest", "jobs/query"}


class TestFormatting:
    def test_format_helpers(self, org):
        bulk = org.bulk_api
        paris = timezone(timedelta(hours=2))

        assert bulk.format_date(date(2024, 3, 5)) == "2024-03-05"
        assert bulk.format_date(datetime(2024, 3, 5, 1, 0, tzinfo=paris)) == "2024-03-04"
        assert bulk.format_datetime(datetime(2024, 3, 5, 12, 30, tzinfo=paris)) == "2024-03-05T10:30:00+00:00"
        assert bulk.format_datetime(datetime(2024, 3, 5, 12, 30)) == "2024-03-05T12:30:00+00:00"
        assert bulk.format_null_value() == "#N/A"

    def test_builder_and_split_helpers(self, org):
        bulk = org.bulk_api
        table = bulk.create_data_table_builder("Id").add_row(["1"]).build()

        assert list(bulk.split_data_table(table)) == [table]
