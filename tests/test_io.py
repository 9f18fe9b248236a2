import json

import httpx
import pytest

from simpleforce.data.sobject import SObject
from simpleforce.exceptions import (
    SalesforceDecodeError,
    SalesforceMalformedRequest,
    SalesforceResourceNotFound,
)

from .conftest import DATA_URL, INSTANCE_URL

SOBJECTS = f"{INSTANCE_URL}{DATA_URL}/sobjects"
NOT_FOUND = [
    {
        "message": "The requested resource does not exist",
        "errorCode": "NOT_FOUND",
    }
]


# ---------------------------------------------------------------------------
# get
# ---------------------------------------------------------------------------


def test_get_returns_fresh_bound_record(make_client):
    client = make_client(
        lambda request: httpx.Response(
            200,
            json={
                "attributes": {"type": "Case", "url": f"{DATA_URL}/sobjects/Case/500XX1"},
                "Id": "500XX1",
                "Subject": "Printer on fire",
            },
        )
    )
    template = client.sobject("Case")

    case = template.get("500XX1")

    request = client.recorder.last_request
    assert request.method == "GET"
    assert str(request.url) == f"{SOBJECTS}/Case/500XX1"
    assert request.headers["Authorization"] == "Bearer 00DXX0000000001!session"
    assert case is not template
    assert case.type == "Case"
    assert case.id == "500XX1"
    assert case.string_field("Subject") == "Printer on fire"
    assert case.client is client
    assert case.dirty_fields == set()
    assert template.serialize() == {}


def test_get_prefers_explicit_id(make_client):
    client = make_client(lambda request: httpx.Response(200, json={"Id": "500XX2"}))
    record = client.sobject("Case", Id="500XX1")

    fetched = record.get("500XX2")

    assert client.recorder.last_request.url.path.endswith("/Case/500XX2")
    # type is carried over when the body has no attributes
    assert fetched.type == "Case"


def test_get_falls_back_to_stored_id(make_client):
    client = make_client(lambda request: httpx.Response(200, json={"Id": "500XX1"}))
    client.sobject("Case", Id="500XX1").get()
    assert client.recorder.last_request.url.path.endswith("/Case/500XX1")


def test_get_escapes_id(make_client):
    client = make_client(lambda request: httpx.Response(200, json={}))
    client.sobject("Case").get("a/b c")
    assert client.recorder.last_request.url.raw_path.endswith(b"/Case/a%2Fb%20c")


def test_get_not_found(make_client):
    client = make_client(lambda request: httpx.Response(404, json=NOT_FOUND))

    with pytest.raises(SalesforceResourceNotFound) as excinfo:
        client.sobject("Case").get("500XX1")

    assert excinfo.value.error_code == "NOT_FOUND"
    assert excinfo.value.error_message == "The requested resource does not exist"
    assert excinfo.value.resource_name == "Case"


def test_get_undecodable_body(make_client):
    client = make_client(lambda request: httpx.Response(200, text="<html>hi</html>"))

    with pytest.raises(SalesforceDecodeError) as excinfo:
        client.sobject("Case").get("500XX1")

    assert excinfo.value.status_code == 200
    assert excinfo.value.content == "<html>hi</html>"


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


def test_create_sets_id(make_client):
    client = make_client(
        lambda request: httpx.Response(
            201, json={"id": "500XX9", "success": True, "errors": []}
        )
    )
    case = client.sobject("Case").set("Subject", "New").set("Origin", "Web")

    assert case.create() is case

    request = client.recorder.last_request
    assert request.method == "POST"
    assert str(request.url) == f"{SOBJECTS}/Case"
    assert client.recorder.last_json() == {"Subject": "New", "Origin": "Web"}
    assert case.id == "500XX9"
    assert case.string_field("Subject") == "New"
    assert case.dirty_fields == set()


def test_create_never_sends_id(make_client):
    client = make_client(lambda request: httpx.Response(201, json={"id": "500XX9"}))
    client.sobject("Case", Id="stale", Subject="x").create()
    assert client.recorder.last_json() == {"Subject": "x"}


def test_create_failure_leaves_record_unchanged(make_client):
    client = make_client(
        lambda request: httpx.Response(
            400,
            json=[
                {
                    "message": "No such column 'Bogus__c' on sobject of type Case",
                    "errorCode": "INVALID_FIELD",
                }
            ],
        )
    )
    case = client.sobject("Case", Bogus__c="x")

    with pytest.raises(SalesforceMalformedRequest) as excinfo:
        case.create()

    assert excinfo.value.error_code == "INVALID_FIELD"
    assert case.id == ""
    assert case.serialize() == {"Bogus__c": "x"}
    assert case.dirty_fields == {"Bogus__c"}


def test_create_without_id_in_response(make_client):
    client = make_client(lambda request: httpx.Response(201, json={"success": True}))
    case = client.sobject("Case", Subject="x")

    with pytest.raises(SalesforceDecodeError):
        case.create()

    assert case.id == ""


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


def test_update_patches_fields(make_client):
    client = make_client(lambda request: httpx.Response(204))
    case = client.sobject("Case", Id="500XX1")
    case.set("Subject", "Updated")

    assert case.update() is case

    request = client.recorder.last_request
    assert request.method == "PATCH"
    assert str(request.url) == f"{SOBJECTS}/Case/500XX1"
    assert client.recorder.last_json() == {"Subject": "Updated"}
    assert case.dirty_fields == set()


def test_update_only_changes(make_client):
    client = make_client(lambda request: httpx.Response(204))
    case = SObject.from_json(
        {"attributes": {"type": "Case"}, "Id": "500XX1", "Subject": "a", "Origin": "Web"},
        client,
    )
    case["Subject"] = "b"

    case.update(only_changes=True)

    assert client.recorder.last_json() == {"Subject": "b"}


def test_update_only_changes_without_changes_sends_nothing(make_client):
    client = make_client(lambda request: httpx.Response(204))
    case = SObject.from_json({"attributes": {"type": "Case"}, "Id": "500XX1"}, client)

    case.update(only_changes=True)

    assert client.recorder.requests == []


def test_update_then_get(make_client):
    stored = {"attributes": {"type": "Case"}, "Id": "500XX1", "Subject": "old"}

    def handler(request: httpx.Request):
        if request.method == "PATCH":
            stored.update(json.loads(request.content))
            return httpx.Response(204)
        return httpx.Response(200, json=stored)

    client = make_client(handler)

    fetched = client.sobject("Case", Id="500XX1").set("Subject", "new").update().get()

    assert fetched.string_field("Subject") == "new"


# ---------------------------------------------------------------------------
# upsert
# ---------------------------------------------------------------------------


def test_upsert_creates(make_client):
    client = make_client(
        lambda request: httpx.Response(
            201, json={"id": "001XX7", "success": True, "created": True, "errors": []}
        )
    )
    account = client.sobject("Account", Name="Acme", Ext__c="A/1")
    account.set_external_id_field("Ext__c")

    assert account.upsert() is account

    request = client.recorder.last_request
    assert request.method == "PATCH"
    assert request.url.raw_path.endswith(b"/sobjects/Account/Ext__c/A%2F1")
    assert client.recorder.last_json() == {"Name": "Acme"}
    assert account.id == "001XX7"


def test_upsert_updates_keeps_identity(make_client):
    client = make_client(lambda request: httpx.Response(204))
    account = client.sobject("Account", external_id_field="Ext__c", Ext__c="A-1")
    account._set_id("001XX1")
    account.set("Name", "Acme 2")

    account.upsert()

    assert account.id == "001XX1"
    assert client.recorder.last_json() == {"Name": "Acme 2"}


def test_upsert_update_with_body(make_client):
    client = make_client(
        lambda request: httpx.Response(
            200, json={"id": "001XX1", "success": True, "created": False, "errors": []}
        )
    )
    account = client.sobject("Account", external_id_field="Ext__c", Ext__c="A-1")

    account.upsert()

    assert account.id == "001XX1"


def test_upsert_created_without_id(make_client):
    client = make_client(lambda request: httpx.Response(201, json={"success": True}))
    account = client.sobject("Account", external_id_field="Ext__c", Ext__c="A-1")

    with pytest.raises(SalesforceDecodeError):
        account.upsert()

    assert account.id == ""


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------


def test_delete_twice(make_client):
    deleted: set[str] = set()

    def handler(request: httpx.Request):
        record_id = request.url.path.rsplit("/", 1)[1]
        if record_id in deleted:
            return httpx.Response(404, json=NOT_FOUND)
        deleted.add(record_id)
        return httpx.Response(204)

    client = make_client(handler)
    case = client.sobject("Case", Id="500XX1")

    assert case.delete() is None
    assert client.recorder.last_request.method == "DELETE"
    assert str(client.recorder.last_request.url) == f"{SOBJECTS}/Case/500XX1"

    with pytest.raises(SalesforceResourceNotFound):
        case.delete()
    assert len(client.recorder.requests) == 2


# ---------------------------------------------------------------------------
# reload / describe
# ---------------------------------------------------------------------------


def test_reload_merges_in_place(make_client):
    client = make_client(
        lambda request: httpx.Response(
            200,
            json={
                "attributes": {"type": "Case", "url": f"{DATA_URL}/sobjects/Case/500XX1"},
                "Id": "500XX1",
                "Subject": "server",
                "Status": "New",
            },
        )
    )
    case = client.sobject("Case", Id="500XX1", Subject="local")

    assert case.reload() is case

    assert case.string_field("Subject") == "server"
    assert case.string_field("Status") == "New"
    assert case.url == f"{DATA_URL}/sobjects/Case/500XX1"
    assert case.dirty_fields == set()


def test_describe(make_client):
    describe = {"name": "Case", "fields": [{"name": "Id"}, {"name": "Subject"}]}
    client = make_client(lambda request: httpx.Response(200, json=describe))

    assert client.sobject("Case").describe() == describe
    assert str(client.recorder.last_request.url) == f"{SOBJECTS}/Case/describe"


def test_timeout_is_passed_to_transport(make_client):
    def handler(request: httpx.Request):
        assert request.extensions["timeout"]["read"] == 1.5
        return httpx.Response(200, json={"Id": "500XX1"})

    client = make_client(handler)
    client.sobject("Case").get("500XX1", timeout=1.5)


# ---------------------------------------------------------------------------
# record methods and the CRUD engine
# ---------------------------------------------------------------------------


def test_record_methods_delegate_to_io(mocker, mock_sf_client):
    fetch = mocker.patch("simpleforce.io.api.fetch")
    delete = mocker.patch("simpleforce.io.api.delete")
    record = SObject("Case", mock_sf_client, Id="500XX1")

    assert record.get() is fetch.return_value
    fetch.assert_called_once_with(record, None)

    record.delete(timeout=5)
    delete.assert_called_once_with(record, timeout=5)


def test_insert_with_mock_client(mock_sf_client):
    mock_sf_client.request.return_value.json.return_value = {"id": "500XX3"}
    record = SObject("Case", mock_sf_client, Subject="x")

    record.create()

    mock_sf_client.request.assert_called_once_with(
        "POST",
        f"{mock_sf_client.sobjects_url}/Case",
        "Case",
        json={"Subject": "x"},
    )
    assert record.id == "500XX3"
