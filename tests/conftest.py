import json
import os
from collections.abc import Callable, Generator
from unittest.mock import MagicMock

import httpx
import pytest

from simpleforce.auth import SalesforceToken, password_login
from simpleforce.client import SalesforceClient

INSTANCE_URL = "https://example.my.salesforce.com"
API_VERSION = "54.0"
DATA_URL = f"/services/data/v{API_VERSION}"

Handler = Callable[[httpx.Request], httpx.Response]


class RecordedTransport(httpx.MockTransport):
    """A MockTransport that keeps every request it was asked to send"""

    def __init__(self, handler: Handler):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            request.read()
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last_request.content)


@pytest.fixture
def sf_token() -> SalesforceToken:
    return SalesforceToken(httpx.URL(INSTANCE_URL), "00DXX0000000001!session")


@pytest.fixture
def make_client(sf_token) -> Generator[Callable[[Handler], SalesforceClient], None, None]:
    """Build SalesforceClients that answer every request with ``handler``"""
    clients: list[SalesforceClient] = []

    def _make_client(handler: Handler) -> SalesforceClient:
        transport = RecordedTransport(handler)
        client = SalesforceClient(
            token=sf_token, api_version=API_VERSION, transport=transport
        )
        client.recorder = transport  # type: ignore[attr-defined]
        clients.append(client)
        return client

    yield _make_client
    for client in clients:
        client.close()


@pytest.fixture
def mock_sf_client() -> MagicMock:
    mock_client = MagicMock(spec=SalesforceClient)
    mock_client.data_url = DATA_URL
    mock_client.sobjects_url = f"{DATA_URL}/sobjects"
    mock_client.tooling_url = f"{DATA_URL}/tooling"
    return mock_client


@pytest.fixture(scope="session")
def sf_credentials():
    """Credentials for the live org tests, read from the environment"""
    username = os.getenv("SF_USER")
    password = os.getenv("SF_PASS")
    if not (username and password):
        pytest.skip("SF_USER and SF_PASS are required for integration tests")
    return {
        "username": username,
        "password": password,
        "security_token": os.getenv("SF_TOKEN", ""),
        "domain_url": os.getenv("SF_URL", "https://login.salesforce.com"),
    }


@pytest.fixture
def sf_client(sf_credentials):
    """Fixture that yields a SalesforceClient connected to a live org"""
    with SalesforceClient(login=password_login(**sf_credentials)) as client:
        yield client
