import typing

import httpx

from ..exceptions import unify_error_body
from ..logger import getLogger
from .types import SalesforceLogin, SalesforceToken, TokenRefreshCallback

LOGGER = getLogger("auth")


class SalesforceAuth(httpx.Auth):
    """
    Adds the session id to every request. Performs the login flow when no
    session is available yet, and once more when Salesforce reports the
    session as invalid.
    """

    requires_response_body = True

    login: SalesforceLogin | None
    callback: TokenRefreshCallback | None
    token: SalesforceToken | None

    def __init__(
        self,
        login: SalesforceLogin | None = None,
        session_token: SalesforceToken | None = None,
        callback: TokenRefreshCallback | None = None,
    ):
        self.login = login
        self.token = session_token
        self.callback = callback

    def _login_flow(self) -> typing.Generator[httpx.Request, httpx.Response, None]:
        assert self.login is not None, "No login method provided"
        login_flow = self.login()
        try:
            login_request = next(login_flow)
            while True:
                login_response = yield login_request
                login_request = login_flow.send(login_response)
        except StopIteration as login_result:
            new_token: SalesforceToken = login_result.value
        assert new_token is not None, "Failed to perform login"
        self.token = new_token
        if self.callback is not None:
            self.callback(new_token)

    def auth_flow(
        self, request: httpx.Request
    ) -> typing.Generator[httpx.Request, httpx.Response, None]:
        if self.token is None:
            yield from self._login_flow()
        assert self.token is not None

        self._bind_request(request)
        response = yield request

        if (
            response.status_code == 401
            and self.login
            and unify_error_body(401, response.content).error_code == "INVALID_SESSION_ID"
        ):
            LOGGER.info("Session expired, logging in again")
            yield from self._login_flow()
            self._bind_request(request)
            yield request

    def _bind_request(self, request: httpx.Request):
        assert self.token is not None
        # requests built before the first login have no instance host yet
        if request.url.is_relative_url:
            request.url = self.token.instance.join(request.url)
            request.headers["Host"] = request.url.netloc.decode("ascii")
        request.headers["Authorization"] = f"Bearer {self.token.token}"
