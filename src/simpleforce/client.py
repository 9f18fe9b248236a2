from typing import Any
from typing_extensions import override

import httpx
from httpx import URL, Client, Response

from .auth import (
    SalesforceAuth,
    SalesforceLogin,
    SalesforceToken,
    TokenRefreshCallback,
)
from .constants import DEFAULT_API_VERSION
from .data.query import QueryResult, execute_query
from .data.sobject import SObject
from .exceptions import decode_json, raise_for_status, transport_failure
from .logger import getLogger
from .metrics import ApiUsage, parse_api_usage
from .resources.tooling import ToolingResource

LOGGER = getLogger("client")


def normalize_api_version(api_version: str | float | int) -> str:
    """'v54.0', '54', 54 and 54.0 all become '54.0'"""
    if isinstance(api_version, str):
        api_version = api_version.strip().lstrip("vV")
    return f"{float(api_version):.1f}"


class SalesforceClient(Client):
    """
    An httpx Client bound to one Salesforce session.

    The session (instance URL, session id, API version) is read-only once the
    login has completed, so a single client may be shared by many records and
    by concurrent callers.
    """

    token_refresh_callback: TokenRefreshCallback | None
    api_version: str
    api_usage: ApiUsage | None = None
    _auth: SalesforceAuth

    def __init__(
        self,
        login: SalesforceLogin | None = None,
        token: SalesforceToken | None = None,
        token_refresh_callback: TokenRefreshCallback | None = None,
        api_version: str | float | int = DEFAULT_API_VERSION,
        headers={"Accept": "application/json"},
        **kwargs,
    ):
        assert login or token, (
            "Either login or token parameters are required.\n"
            "Both are permitted simultaneously."
        )
        auth = SalesforceAuth(login, token, self.handle_token_refresh)
        super().__init__(auth=auth, headers=headers, **kwargs)
        self.api_version = normalize_api_version(api_version)
        if token:
            self._derive_base_url(token)
        self.token_refresh_callback = token_refresh_callback

    def __str__(self):
        if not (isinstance(self.auth, SalesforceAuth) and self.auth.token is not None):
            return f"{type(self).__name__} (not logged in)"
        return (
            f"{type(self).__name__} -> {self.auth.token.instance.host} "
            f"(API v{self.api_version})"
        )

    def handle_token_refresh(self, token: SalesforceToken):
        self._derive_base_url(token)
        if self.token_refresh_callback:
            self.token_refresh_callback(token)

    def set_token_refresh_callback(self, callback: TokenRefreshCallback):
        self.token_refresh_callback = callback

    def _derive_base_url(self, session: SalesforceToken):
        self.base_url = URL(session.instance)

    # session context

    @property
    def session_id(self) -> str | None:
        if isinstance(self.auth, SalesforceAuth) and self.auth.token is not None:
            return self.auth.token.token
        return None

    @property
    def instance_url(self) -> str:
        return str(self.base_url).rstrip("/")

    @property
    def data_url(self):
        return f"/services/data/v{self.api_version}"

    @property
    def sobjects_url(self):
        return f"{self.data_url}/sobjects"

    @property
    def tooling_url(self):
        return f"{self.data_url}/tooling"

    @override
    def __enter__(self):
        _ = super().__enter__()
        LOGGER.info("Opened connection to %s", self)
        return self

    @override
    def request(
        self,
        method: str,
        url: URL | str,
        resource_name: str = "",
        response_status_raise: bool = True,
        **kwargs,
    ) -> Response:
        LOGGER.debug("%s %s", method, url)
        response: Response | None = None
        try:
            # the body is read inside the stream so a failed read still
            # reports the status line that was received
            with self.stream(method, url, **kwargs) as response:
                response.read()
        except httpx.TransportError as e:
            raise transport_failure(e, response, resource_name) from e

        if response_status_raise:
            raise_for_status(response, resource_name)

        sforce_limit_info = response.headers.get("Sforce-Limit-Info")
        if sforce_limit_info and isinstance(sforce_limit_info, str):
            self.api_usage = parse_api_usage(sforce_limit_info)
        return response

    # records

    def sobject(self, type_name: str = "", /, **fields) -> SObject:
        """Create an empty record of ``type_name`` bound to this client."""
        return SObject(type_name, client=self, **fields)

    def query(self, q: str, **kwargs) -> QueryResult:
        """
        Run a SOQL query, or fetch the next page when ``q`` is a
        ``nextRecordsUrl`` returned by a previous query.
        """
        return execute_query(self, q, **kwargs)

    def describe_global(self, **kwargs) -> dict[str, Any]:
        """Lists the available objects and their metadata for the org"""
        response = self.request("GET", self.sobjects_url, "sobjects", **kwargs)
        return decode_json(response, "sobjects")

    def apex_rest(self, method: str, path: str, **kwargs) -> bytes:
        """
        Send a request to a custom Apex REST endpoint. ``path`` is relative to
        the instance, e.g. ``services/apexrest/my-endpoint``.
        """
        response = self.request(method, "/" + path.lstrip("/"), path, **kwargs)
        return response.content

    # resources for the client
    @property
    def tooling(self) -> ToolingResource:
        try:
            return self._tooling
        except AttributeError:
            self._tooling = ToolingResource(self)
            return self._tooling

