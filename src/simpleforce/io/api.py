from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from .._models import SaveResultJSON
from ..data.sobject import ID_FIELD, SObject
from ..exceptions import (
    SalesforceDecodeError,
    SObjectClientMissing,
    SObjectExternalIdMissing,
    SObjectIdMissing,
    SObjectTypeMissing,
    decode_json,
)
from ..logger import getLogger

if TYPE_CHECKING:
    from ..client import SalesforceClient

_logger = getLogger("io")


def resolve_client(record: SObject) -> "SalesforceClient":
    """The client a record is bound to, after checking it has a type."""
    sf_client = record.client
    if sf_client is None:
        raise SObjectClientMissing()
    if not record.type:
        raise SObjectTypeMissing()
    return sf_client


def _path_segment(value: Any) -> str:
    return quote(str(value), safe="")


def _record_url(sf_client: "SalesforceClient", record: SObject, record_id: str) -> str:
    return f"{sf_client.sobjects_url}/{record.type}/{_path_segment(record_id)}"


def _require_id(record: SObject, record_id: str | None = None) -> str:
    if not (record_id := record_id or record.id):
        raise SObjectIdMissing()
    return record_id


def fetch(record: SObject, record_id: str | None = None, **kwargs) -> SObject:
    sf_client = resolve_client(record)
    record_id = _require_id(record, record_id)

    response = sf_client.request(
        "GET", _record_url(sf_client, record, record_id), record.type, **kwargs
    )
    response_data = decode_json(response, record.type)
    if not isinstance(response_data, dict):
        raise SalesforceDecodeError(
            f"Expected a {record.type} record, got {type(response_data).__name__}",
            response.status_code,
            response.text,
        )

    fetched = SObject.from_json(response_data, sf_client)
    if not fetched.type:
        fetched.type = record.type
    fetched.external_id_field = record.external_id_field
    return fetched


def insert(record: SObject, **kwargs) -> SObject:
    sf_client = resolve_client(record)

    payload = record.serialize(exclude=(ID_FIELD,))
    response = sf_client.request(
        "POST",
        f"{sf_client.sobjects_url}/{record.type}",
        record.type,
        json=payload,
        **kwargs,
    )
    response_data: SaveResultJSON = decode_json(response, record.type)
    if not (isinstance(response_data, dict) and (_id_val := response_data.get("id"))):
        raise SalesforceDecodeError(
            f"Create {record.type} response did not include the new record id",
            response.status_code,
            response.text,
        )

    # Set the new ID on the object
    record._set_id(_id_val)
    del record.dirty_fields
    _logger.debug("Created %s %s", record.type, _id_val)
    return record


def update(record: SObject, only_changes: bool = False, **kwargs) -> SObject:
    sf_client = resolve_client(record)
    record_id = _require_id(record)

    payload = record.serialize(only_changes, exclude=(ID_FIELD,))
    # If only tracking changes and there are no changes, do nothing
    if only_changes and not payload:
        return record

    _ = sf_client.request(
        "PATCH",
        _record_url(sf_client, record, record_id),
        record.type,
        json=payload,
        **kwargs,
    )
    del record.dirty_fields
    return record


def upsert(record: SObject, **kwargs) -> SObject:
    sf_client = resolve_client(record)

    external_id_field = record.external_id_field
    ext_id_val = record.external_id
    if not external_id_field or ext_id_val is None or ext_id_val == "":
        raise SObjectExternalIdMissing()

    # the external id travels in the URL, not the body
    payload = record.serialize(exclude=(ID_FIELD, external_id_field))
    response = sf_client.request(
        "PATCH",
        (
            f"{sf_client.sobjects_url}/{record.type}"
            f"/{_path_segment(external_id_field)}/{_path_segment(ext_id_val)}"
        ),
        record.type,
        json=payload,
        **kwargs,
    )

    # For an insert via upsert, the response contains the new ID.
    # Updates answer 204 with no body on older API versions.
    _id_val = None
    if response.content:
        response_data: SaveResultJSON = decode_json(response, record.type)
        if isinstance(response_data, dict):
            _id_val = response_data.get("id")
    if response.status_code == 201 and not _id_val:
        raise SalesforceDecodeError(
            f"Upsert {record.type} created a record but did not return its id",
            response.status_code,
            response.text,
        )
    if _id_val:
        record._set_id(_id_val)
    del record.dirty_fields
    return record


def delete(record: SObject, **kwargs) -> None:
    sf_client = resolve_client(record)
    record_id = _require_id(record)

    _ = sf_client.request(
        "DELETE", _record_url(sf_client, record, record_id), record.type, **kwargs
    )
    _logger.debug("Deleted %s %s", record.type, record_id)


def reload(record: SObject, **kwargs) -> SObject:
    """Fetch the record again and merge the server state into it."""
    reloaded = fetch(record, **kwargs)
    record._data.update(reloaded._data)
    record._url = reloaded.url or record.url
    del record.dirty_fields
    return record


def describe(record: SObject, **kwargs) -> dict[str, Any]:
    """
    Retrieves detailed metadata information about the record's SObject type.

    Returns:
        dict: The full describe result containing metadata about the SObject's
              fields, relationships, and other properties.
    """
    sf_client = resolve_client(record)

    response = sf_client.request(
        "GET", f"{sf_client.sobjects_url}/{record.type}/describe", record.type, **kwargs
    )
    return decode_json(response, record.type)
