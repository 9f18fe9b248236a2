from typing import TYPE_CHECKING, NamedTuple

from ..data.query import QueryResult, execute_query
from ..exceptions import SalesforceDecodeError, decode_json

if TYPE_CHECKING:
    from ..client import SalesforceClient


class ExecuteAnonymousResult(NamedTuple):
    compiled: bool
    success: bool
    line: int = -1
    column: int = -1
    compile_problem: str | None = None
    exception_message: str | None = None
    exception_stack_trace: str | None = None


class ToolingResource:
    """
    The Tooling API surface of a client. Queries issued here always go to the
    tooling endpoint; the client's own ``query`` is never affected.
    """

    client: "SalesforceClient"

    def __init__(self, client: "SalesforceClient"):
        self.client = client

    def query(self, q: str, **kwargs) -> QueryResult:
        return execute_query(self.client, q, tooling=True, **kwargs)

    def execute_anonymous(self, code: str, **kwargs) -> ExecuteAnonymousResult:
        response = self.client.request(
            "GET",
            self.client.tooling_url + "/executeAnonymous",
            "executeAnonymous",
            params={"anonymousBody": code},
            **kwargs,
        )
        result = decode_json(response, "executeAnonymous")
        if not isinstance(result, dict):
            raise SalesforceDecodeError(
                "executeAnonymous response is not an object",
                response.status_code,
                response.text,
            )
        return ExecuteAnonymousResult(
            compiled=bool(result.get("compiled")),
            success=bool(result.get("success")),
            line=result.get("line", -1),
            column=result.get("column", -1),
            compile_problem=result.get("compileProblem"),
            exception_message=result.get("exceptionMessage"),
            exception_stack_trace=result.get("exceptionStackTrace"),
        )
