from typing import Any, TypedDict
from typing_extensions import NotRequired


class QueryResultJSON(TypedDict):
    totalSize: int
    done: bool
    nextRecordsUrl: NotRequired[str]
    records: list[dict[str, Any]]


class SaveResultJSON(TypedDict, total=False):
    id: str
    success: bool
    created: bool
    errors: list[Any]


class ErrorJSON(TypedDict, total=False):
    message: str
    errorCode: str
    fields: list[str]
