from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any, NamedTuple
import weakref

if TYPE_CHECKING:
    from ..client import SalesforceClient

ATTRIBUTES_KEY = "attributes"
ID_FIELD = "Id"


class _Unset:
    """Returned by SObject.raw_field for fields that are not present at all"""

    _instance: "_Unset | None" = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "UNSET"


UNSET = _Unset()


class SObjectAttributes(NamedTuple):
    type: str
    url: str = ""


class SObject:
    """
    A Salesforce record whose fields are not known ahead of time.

    Field values are kept exactly as decoded from JSON: str, int/float, bool,
    None, nested mappings (parent relationships) and lists or nested query
    results (child relationships). The record type, canonical URL, client and
    external id field name are kept apart from the field data, so
    ``serialize()`` never leaks them into a request body.

    A record can only talk to Salesforce while it is bound to a live
    SalesforceClient. The binding is a weak reference: a record never keeps
    its client alive.
    """

    _data: dict[str, Any]
    _dirty_fields: set[str]
    _type: str
    _url: str
    _external_id_field: str | None
    _client_ref: "weakref.ReferenceType[SalesforceClient] | None"

    def __init__(
        self,
        sobject_type: str = "",
        /,
        client: "SalesforceClient | None" = None,
        *,
        external_id_field: str | None = None,
        **fields: Any,
    ):
        if ATTRIBUTES_KEY in fields:
            raise KeyError(f"'{ATTRIBUTES_KEY}' is reserved and cannot be set as a field")
        self._data = dict(fields)
        self._dirty_fields = set(fields)
        self._type = sobject_type
        self._url = ""
        self._external_id_field = external_id_field
        self._client_ref = None
        if client is not None:
            self.bind(client)

    @classmethod
    def from_json(
        cls,
        data: Mapping[str, Any],
        client: "SalesforceClient | None" = None,
        sobject_type: str = "",
    ) -> "SObject":
        """
        Build a record from a decoded response body. ``sobject_type`` takes
        precedence over the type named in the body's ``attributes``.
        """
        fields = dict(data)
        attributes = fields.pop(ATTRIBUTES_KEY, None)
        if not isinstance(attributes, Mapping):
            attributes = {}
        record = cls(sobject_type or str(attributes.get("type") or ""), client)
        record._url = str(attributes.get("url") or "")
        record._data = fields
        return record

    def bind(self, client: "SalesforceClient") -> "SObject":
        self._client_ref = weakref.ref(client)
        return self

    @property
    def client(self) -> "SalesforceClient | None":
        if self._client_ref is None:
            return None
        return self._client_ref()

    # identity

    @property
    def type(self) -> str:
        return self._type

    @type.setter
    def type(self, value: str):
        self._type = value

    @property
    def url(self) -> str:
        return self._url

    @property
    def attributes(self) -> SObjectAttributes | None:
        if not self._type:
            return None
        return SObjectAttributes(self._type, self._url)

    @property
    def id(self) -> str:
        return self.string_field(ID_FIELD)

    def _set_id(self, record_id: str):
        self._data[ID_FIELD] = record_id
        self._dirty_fields.discard(ID_FIELD)

    @property
    def external_id_field(self) -> str | None:
        return self._external_id_field

    @external_id_field.setter
    def external_id_field(self, field_name: str | None):
        self._external_id_field = field_name or None

    def set_external_id_field(self, field_name: str) -> "SObject":
        """Name the field used to address this record in upsert()"""
        self.external_id_field = field_name
        return self

    @property
    def external_id(self) -> Any:
        if not self._external_id_field:
            return None
        return self._data.get(self._external_id_field)

    # field access

    def string_field(self, name: str) -> str:
        value = self._data.get(name)
        return value if isinstance(value, str) else ""

    def number_field(self, name: str) -> float:
        value = self._data.get(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0.0
        return float(value)

    def boolean_field(self, name: str) -> bool:
        value = self._data.get(name)
        return value if isinstance(value, bool) else False

    def raw_field(self, name: str, default: Any = UNSET) -> Any:
        """The value exactly as decoded; ``UNSET`` when the field is absent."""
        return self._data.get(name, default)

    def related_record(self, expected_type: str, field_name: str) -> "SObject | None":
        """
        Follow a lookup relationship.

        When the record holds the related record inline (SOQL selected
        ``Parent.Subject``, say) it is wrapped and returned as-is. When it only
        holds the foreign key (``ParentId``), an identity-only record is
        returned without any request; call ``get()`` on it to load it. Returns
        None if the relationship is not populated.
        """
        value = self._data.get(field_name)
        if isinstance(value, Mapping):
            return SObject.from_json(value, self.client, expected_type)
        if isinstance(value, str) and value:
            related = SObject(expected_type, self.client)
            related._set_id(value)
            return related
        return None

    def related_records(
        self, relationship_name: str, expected_type: str = ""
    ) -> list["SObject"]:
        """Child records selected through a parent-to-child subquery"""
        value = self._data.get(relationship_name)
        if isinstance(value, Mapping):
            value = value.get("records")
        if not isinstance(value, list):
            return []
        return [
            SObject.from_json(item, self.client, expected_type)
            for item in value
            if isinstance(item, Mapping)
        ]

    def set(self, name: str, value: Any) -> "SObject":
        """Set a field locally. Nothing is sent until a save method is called."""
        if name == ATTRIBUTES_KEY:
            raise KeyError(f"'{ATTRIBUTES_KEY}' is reserved and cannot be set as a field")
        self._data[name] = value
        self._dirty_fields.add(name)
        return self

    @property
    def dirty_fields(self) -> "set[str]":
        return self._dirty_fields

    @dirty_fields.deleter
    def dirty_fields(self):
        self._dirty_fields = set()

    def serialize(self, only_changes: bool = False, exclude: tuple[str, ...] = ()):
        return {
            name: value
            for name, value in self._data.items()
            if name not in exclude and (not only_changes or name in self._dirty_fields)
        }

    def __getitem__(self, name: str) -> Any:
        return self._data[name]

    def __setitem__(self, name: str, value: Any):
        self.set(name, value)

    def __delitem__(self, name: str):
        del self._data[name]
        self._dirty_fields.discard(name)

    def __contains__(self, name: object) -> bool:
        return name in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self):
        return f"{type(self).__name__}({self._type!r}, {self._data!r})"

    # remote operations

    def get(self, record_id: str | None = None, **kwargs) -> "SObject":
        """
        Fetch a record of this type. ``record_id`` defaults to this record's
        Id. Returns a new record; this one is left untouched.
        """
        from ..io import api

        return api.fetch(self, record_id, **kwargs)

    def create(self, **kwargs) -> "SObject":
        """Insert this record and set the Id assigned by Salesforce on it."""
        from ..io import api

        return api.insert(self, **kwargs)

    def update(self, only_changes: bool = False, **kwargs) -> "SObject":
        from ..io import api

        return api.update(self, only_changes, **kwargs)

    def upsert(self, **kwargs) -> "SObject":
        """
        Insert or update this record, addressed by ``external_id_field`` and
        the value this record holds for it.
        """
        from ..io import api

        return api.upsert(self, **kwargs)

    def delete(self, **kwargs) -> None:
        from ..io import api

        api.delete(self, **kwargs)

    def reload(self, **kwargs) -> "SObject":
        from ..io import api

        return api.reload(self, **kwargs)

    def describe(self, **kwargs) -> dict[str, Any]:
        """The describe metadata (fields, labels, relationships) of this record's type"""
        from ..io import api

        return api.describe(self, **kwargs)
