"""SOAP partner API login for simpleforce.

The SOAP ``login`` call accepts a placeholder client id, where the REST
username-password OAuth flow requires a registered connected app.
"""

from html import escape

import httpx
import lxml.etree as etree

from ..constants import DEFAULT_API_VERSION, DEFAULT_CLIENT_ID, DEFAULT_URL
from ..exceptions import (
    SalesforceAuthenticationFailed,
    SalesforceDecodeError,
    error_from_response,
)
from ..logger import getLogger
from .types import SalesforceLogin, SalesforceToken, SalesforceTokenGenerator

LOGGER = getLogger("auth")

LOGIN_ENVELOPE = """<?xml version="1.0" encoding="utf-8" ?>
<env:Envelope
        xmlns:xsd="http://www.w3.org/2001/XMLSchema"
        xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
        xmlns:env="http://schemas.xmlsoap.org/soap/envelope/"
        xmlns:urn="urn:partner.soap.sforce.com">
    <env:Header>
        <urn:CallOptions>
            <urn:client>{client_id}</urn:client>
            <urn:defaultNamespace>sf</urn:defaultNamespace>
        </urn:CallOptions>
    </env:Header>
    <env:Body>
        <n1:login xmlns:n1="urn:partner.soap.sforce.com">
            <n1:username>{username}</n1:username>
            <n1:password>{password}{security_token}</n1:password>
        </n1:login>
    </env:Body>
</env:Envelope>"""


def get_xml_element_value(xmlString: bytes | str, elementName: str) -> str | None:
    """
    Extracts an element value from an XML string.

    For example, invoking
    get_xml_element_value(
        '<?xml version="1.0" encoding="UTF-8"?><foo>bar</foo>', 'foo')
    should return the value 'bar'.
    """
    if isinstance(xmlString, str):
        xmlString = xmlString.encode("utf-8")

    root = etree.fromstring(xmlString)

    elements = root.findall(f".//{{*}}{elementName}")

    if elements and elements[0].text:
        return elements[0].text
    return None


def instance_from_server_url(server_url: str) -> httpx.URL:
    """The instance base URL is the scheme and host of the SOAP serverUrl"""
    url = httpx.URL(server_url)
    return httpx.URL(f"{url.scheme}://{url.netloc.decode('ascii')}")


def soap_login(
    domain_url: str, api_version: str, request_body: str
) -> SalesforceTokenGenerator:
    """Process SOAP specific login workflow."""
    soap_url = f"{domain_url.rstrip('/')}/services/Soap/u/{api_version}"
    response = yield httpx.Request(
        "POST",
        soap_url,
        content=request_body.encode("utf-8"),
        headers={
            "Content-Type": "text/xml",
            "charset": "UTF-8",
            "SOAPAction": "login",
        },
    )

    if not response.is_success:
        raise error_from_response(response, "login", SalesforceAuthenticationFailed)

    try:
        session_id = get_xml_element_value(response.content, "sessionId")
        server_url = get_xml_element_value(response.content, "serverUrl")
    except etree.XMLSyntaxError as e:
        raise SalesforceDecodeError(
            f"Unable to parse login response: {e}", response.status_code, response.text
        ) from e
    if not session_id or not server_url:
        raise SalesforceDecodeError(
            "Login response is missing sessionId or serverUrl",
            response.status_code,
            response.text,
        )

    LOGGER.info(
        "User authenticated: %s", get_xml_element_value(response.content, "userName")
    )
    return SalesforceToken(instance_from_server_url(server_url), session_id)


def password_login(
    username: str,
    password: str,
    security_token: str = "",
    domain_url: str = DEFAULT_URL,
    client_id: str = DEFAULT_CLIENT_ID,
    api_version: str = DEFAULT_API_VERSION,
) -> SalesforceLogin:
    """
    Log in with username and password through the SOAP API.
    ``security_token`` may be empty when the caller's IP range is trusted by the org.
    """
    request_body = LOGIN_ENVELOPE.format(
        client_id=escape(client_id),
        username=escape(username),
        password=escape(password),
        security_token=escape(security_token),
    )

    def _password_login():
        return (yield from soap_login(domain_url, api_version, request_body))

    return _password_login


def session_login(session_id: str, instance_url: str | httpx.URL) -> SalesforceLogin:
    """Reuse a session id and instance URL obtained elsewhere."""

    def _session_login():
        return SalesforceToken(httpx.URL(instance_url), session_id)
        yield

    return _session_login
