from typing import TYPE_CHECKING, Any
from collections.abc import Iterator

from .._models import QueryResultJSON
from ..exceptions import SalesforceDecodeError, decode_json
from ..logger import getLogger
from .sobject import SObject

if TYPE_CHECKING:
    from ..client import SalesforceClient

_logger = getLogger("query")

# nextRecordsUrl values are instance-relative resource paths
CONTINUATION_PREFIX = "/services/data"


def is_continuation_token(q: str) -> bool:
    return q.startswith(CONTINUATION_PREFIX)


class QueryResult:
    """
    One page of results returned by the Salesforce SOQL Query API.

    Attributes:
        done (bool): Indicates whether all records have been retrieved (True)
            or if more batches exist (False)
        total_size (int): The total number of records that match the query,
            across every page
        records (list[SObject]): The records in this page, bound to the client
            that ran the query
        next_records_url (str, optional): Continuation token for the next
            page, if more exist
    """

    done: bool
    total_size: int
    records: list[SObject]
    next_records_url: str | None
    query_locator: str | None = None
    batch_size: int | None = None
    _tooling: bool

    def __init__(
        self,
        client: "SalesforceClient",
        /,
        done: bool = True,
        totalSize: int = 0,
        records: list[dict[str, Any]] | None = None,
        nextRecordsUrl: str | None = None,
        *,
        tooling: bool = False,
        **_ignored: Any,
    ):
        self._client = client
        self._tooling = tooling
        self.done = done
        self.total_size = totalSize
        self.records = [
            SObject.from_json(record, client) for record in records or ()
        ]
        self.next_records_url = nextRecordsUrl or None
        if self.next_records_url:
            # nextRecordsUrl looks like this:
            # /services/data/v63.0/query/01gRO0000016PIAYA2-500
            locator = self.next_records_url.rsplit("/", maxsplit=1)[1]
            self.query_locator, _, batch_size = locator.rpartition("-")
            if self.query_locator and batch_size.isdigit():
                self.batch_size = int(batch_size)
            else:
                self.query_locator = locator

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[SObject]:
        return iter(self.records)

    def __repr__(self):
        return (
            f"{type(self).__name__}(done={self.done}, total_size={self.total_size}, "
            f"records={len(self.records)}, next_records_url={self.next_records_url!r})"
        )

    def query_more(self, **kwargs) -> "QueryResult":
        """Fetch the page that follows this one."""
        if not self.next_records_url:
            raise ValueError("Cannot get more records without nextRecordsUrl")
        return execute_query(
            self._client, self.next_records_url, tooling=self._tooling, **kwargs
        )


def execute_query(
    client: "SalesforceClient", q: str, *, tooling: bool = False, **kwargs
) -> QueryResult:
    """
    Run a SOQL query, or follow a continuation token from an earlier page.

    Pages are never drained automatically; loop on ``done`` and
    ``next_records_url`` (or ``query_more()``) to read every page.
    """
    if is_continuation_token(q):
        response = client.request("GET", q, "query", **kwargs)
    else:
        base = client.tooling_url if tooling else client.data_url
        params = dict(kwargs.pop("params", None) or {})
        params["q"] = q
        _logger.debug("Running %squery: %s", "tooling " if tooling else "", q)
        response = client.request(
            "GET", f"{base}/query", "query", params=params, **kwargs
        )

    result: QueryResultJSON = decode_json(response, "query")
    records = result.get("records", []) if isinstance(result, dict) else None
    if not (
        isinstance(records, list)
        and all(isinstance(record, dict) for record in records)
    ):
        raise SalesforceDecodeError(
            "Query response is not a query result",
            response.status_code,
            response.text,
        )
    return QueryResult(client, tooling=tooling, **result)
