"""Tests for unit-of-work registration and DataApi.commit_unit_of_work."""

import threading
from unittest.mock import patch

import pytest

from heroku_applink.exceptions import ApplinkError, CompositeRequestError, OperationCancelled
from heroku_applink.unit_of_work import ReferenceId, UnitOfWork


def _graph_response(items, successful=True):
    return {
        "graphs": [
            {
                "graphId": "graph0",
                "isSuccessful": successful,
                "graphResponse": {"compositeResponse": items},
            }
        ]
    }


class TestRegistration:
    def test_reference_ids_are_unique(self):
        uow = UnitOfWork()
        refs = {uow.register_create("Account", {"Name": str(i)}) for i in range(50)}

        assert len(refs) == 50
        assert len(uow) == 50

    def test_body_is_captured_at_registration(self):
        uow = UnitOfWork()
        fields = {"Name": "Acme", "Tags": ["a"]}
        uow.register_create("Account", fields)

        fields["Name"] = "Changed"
        fields["Tags"].append("b")

        assert uow.subrequests[0].body == {"Name": "Acme", "Tags": ["a"]}

    def test_update_injects_id(self):
        uow = UnitOfWork()
        fields = {"Name": "New"}
        uow.register_update("Account", "001A", fields)

        sub = uow.subrequests[0]
        assert sub.method == "PATCH"
        assert sub.body == {"Name": "New", "Id": "001A"}
        assert sub.build_url("62.0") == "/services/data/v62.0/sobjects/Account/001A"
        assert "Id" not in fields

    def test_delete_has_no_body(self):
        uow = UnitOfWork()
        uow.register_delete("Contact", "003B")

        sub = uow.subrequests[0]
        assert sub.method == "DELETE"
        assert sub.body is None

    def test_version_is_resolved_at_commit_time(self):
        uow = UnitOfWork()
        uow.register_create("Account", {})

        sub = uow.subrequests[0]
        assert "{version}" in sub.url_template
        assert sub.build_url("58.0") == "/services/data/v58.0/sobjects/Account"
        assert sub.build_url("62.0") == "/services/data/v62.0/sobjects/Account"


class TestCommit:
    def test_empty_commit_makes_no_call(self, org):
        uow = org.data_api.new_unit_of_work()
        with patch.object(org.data_api.session, "request") as req:
            assert org.data_api.commit_unit_of_work(uow) == {}

        req.assert_not_called()

    def test_all_success_maps_every_reference(self, org, response):
        api = org.data_api
        uow = api.new_unit_of_work()
        create_ref = uow.register_create("Account", {"Name": "Acme"})
        update_ref = uow.register_update("Account", "001X", {"Name": "Renamed"})
        delete_ref = uow.register_delete("Contact", "003Y")

        body = _graph_response(
            [
                {"referenceId": str(create_ref), "httpStatusCode": 201, "body": {"id": "001NEW", "success": True}},
                {"referenceId": str(update_ref), "httpStatusCode": 204, "body": None},
                {"referenceId": str(delete_ref), "httpStatusCode": 204, "body": None},
            ]
        )
        with patch.object(api.session, "request", return_value=response(200, json=body)) as req:
            results = api.commit_unit_of_work(uow)

        assert set(results) == {create_ref, update_ref, delete_ref}
        assert results[create_ref].id == "001NEW"
        assert results[update_ref].id == "001X"
        assert results[delete_ref].id == "003Y"

        method, url = req.call_args.args
        sent = req.call_args.kwargs["json"]
        assert method == "POST"
        assert url.endswith("/services/data/v62.0/composite/graph")
        graph = sent["graphs"][0]
        assert graph["graphId"] == "graph0"
        assert [s["referenceId"] for s in graph["compositeRequest"]] == [
            str(create_ref),
            str(update_ref),
            str(delete_ref),
        ]
        assert graph["compositeRequest"][0]["url"] == "/services/data/v62.0/sobjects/Account"
        assert "body" not in graph["compositeRequest"][2]

    def test_any_failure_fails_whole_commit(self, org, response):
        api = org.data_api
        uow = api.new_unit_of_work()
        ok_ref = uow.register_create("Account", {"Name": "Ok"})
        bad_ref = uow.register_create("Account", {})
        late_ref = uow.register_create("Account", {"Name": "Late"})

        body = _graph_response(
            [
                {"referenceId": str(ok_ref), "httpStatusCode": 201, "body": {"id": "001A"}},
                {
                    "referenceId": str(bad_ref),
                    "httpStatusCode": 400,
                    "body": [{"errorCode": "REQUIRED_FIELD_MISSING", "message": "Required fields are missing: [Name]"}],
                },
                {"referenceId": str(late_ref), "httpStatusCode": 201, "body": {"id": "001C"}},
            ],
            successful=False,
        )
        with patch.object(api.session, "request", return_value=response(200, json=body)):
            with pytest.raises(CompositeRequestError) as exc_info:
                api.commit_unit_of_work(uow)

        assert exc_info.value.reference_id == str(bad_ref)
        assert "Required fields are missing" in str(exc_info.value)

    def test_unit_of_work_is_single_use(self, org, response):
        api = org.data_api
        uow = api.new_unit_of_work()
        ref = uow.register_create("Account", {"Name": "Acme"})
        body = _graph_response([{"referenceId": str(ref), "httpStatusCode": 201, "body": {"id": "001"}}])
        with patch.object(api.session, "request", return_value=response(200, json=body)):
            api.commit_unit_of_work(uow)

        with pytest.raises(RuntimeError, match="already been committed"):
            api.commit_unit_of_work(uow)
        with pytest.raises(RuntimeError):
            uow.register_delete("Account", "001")

    def test_cancelled_commit_sends_nothing(self, org):
        api = org.data_api
        uow = api.new_unit_of_work()
        uow.register_create("Account", {"Name": "Acme"})
        cancel = threading.Event()
        cancel.set()

        with patch.object(api.session, "request") as req:
            with pytest.raises(OperationCancelled):
                api.commit_unit_of_work(uow, cancel=cancel)

        req.assert_not_called()

    def test_cancelled_commit_can_be_retried(self, org, response):
        api = org.data_api
        uow = api.new_unit_of_work()
        ref = uow.register_create("Account", {"Name": "Acme"})
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(OperationCancelled):
            api.commit_unit_of_work(uow, cancel=cancel)

        assert uow.committed is False
        body = _graph_response([{"referenceId": str(ref), "httpStatusCode": 201, "body": {"id": "001"}}])
        with patch.object(api.session, "request", return_value=response(200, json=body)) as req:
            results = api.commit_unit_of_work(uow)

        assert req.call_count == 1
        assert results[ref].id == "001"
        assert uow.committed is True

    def test_created_subresult_without_id_fails(self, org, response):
        api = org.data_api
        uow = api.new_unit_of_work()
        ref = uow.register_create("Account", {"Name": "Acme"})
        body = _graph_response([{"referenceId": str(ref), "httpStatusCode": 201, "body": {"success": True}}])
        with patch.object(api.session, "request", return_value=response(200, json=body)):
            with pytest.raises(ApplinkError, match="without a record id"):
                api.commit_unit_of_work(uow)


def test_reference_id_str():
    ref = ReferenceId("refabc")

    assert str(ref) == "refabc"
    assert ReferenceId.new() != ReferenceId.new()
