"""
Exceptions raised by simpleforce, and the helpers that turn failed HTTP
exchanges into them.

Every failed exchange surfaces as exactly one of:

* :class:`SObjectPreconditionError` - the call was rejected locally, nothing was sent
* :class:`SalesforceTransportError` - no usable response was received
* :class:`SalesforceError` - a response was received with a non-2xx status
* :class:`SalesforceDecodeError` - a 2xx response carried a body that could not be decoded
"""

from collections.abc import Callable, Mapping
import json
from typing import Any, ClassVar, NamedTuple

import httpx
from lxml import etree

from ._models import ErrorJSON
from .logger import getLogger

_logger = getLogger("exceptions")


class SimpleforceError(Exception):
    """Base class for every error raised by simpleforce"""


# precondition errors


class SObjectPreconditionError(SimpleforceError, ValueError):
    """sObject has no type id, client or id"""

    default_message: ClassVar[str] = "sObject has no type id, client or id"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class SObjectClientMissing(SObjectPreconditionError):
    default_message = "sObject is not bound to a SalesforceClient"


class SObjectTypeMissing(SObjectPreconditionError):
    default_message = "sObject has no type"


class SObjectIdMissing(SObjectPreconditionError):
    default_message = "sObject has no Id"


class SObjectExternalIdMissing(SObjectPreconditionError):
    default_message = "sObject has no external id field name or external id value"


# protocol errors


class SalesforceErrorDetail(NamedTuple):
    message: str
    error_code: str
    error_message: str


def _format_message(status_code: int, error_message: str, error_code: str) -> str:
    return (
        f"Salesforce error. http code: {status_code} "
        f"Error Message: {error_message} Error Code: {error_code}"
    )


def _body_text(body: str | bytes) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def decode_json_error(status_code: int, body: str | bytes) -> SalesforceErrorDetail | None:
    """REST and Tooling API failures: ``[{"message": ..., "errorCode": ...}, ...]``"""
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    if not isinstance(payload, list) or not payload:
        return None
    first: ErrorJSON = payload[0]
    if not isinstance(first, dict) or not ("message" in first or "errorCode" in first):
        return None
    error_message = str(first.get("message") or "")
    error_code = str(first.get("errorCode") or "")
    return SalesforceErrorDetail(
        _format_message(status_code, error_message, error_code),
        error_code,
        error_message,
    )


_XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


def decode_soap_fault(status_code: int, body: str | bytes) -> SalesforceErrorDetail | None:
    """SOAP API failures: ``Envelope/Body/Fault/{faultcode,faultstring}``"""
    if isinstance(body, str):
        body = body.encode("utf-8")
    if not body.strip():
        return None
    try:
        root = etree.fromstring(body, _XML_PARSER)
    except (etree.XMLSyntaxError, ValueError):
        return None
    if etree.QName(root).localname == "Fault":
        fault = root
    else:
        fault = root.find(".//{*}Fault")
    if fault is None:
        return None
    error_message = fault.findtext("{*}faultstring", default="")
    error_code = fault.findtext("{*}faultcode", default="")
    return SalesforceErrorDetail(
        _format_message(status_code, error_message, error_code),
        error_code,
        error_message,
    )


ErrorDecoder = Callable[[int, str | bytes], SalesforceErrorDetail | None]

ERROR_DECODERS: tuple[ErrorDecoder, ...] = (decode_json_error, decode_soap_fault)


def unify_error_body(status_code: int, body: str | bytes) -> SalesforceErrorDetail:
    """
    Classify a failed response body. Each decoder in ERROR_DECODERS is tried in
    order; when none of them recognizes the payload the raw body text becomes the
    message, with an empty error code.
    """
    for decoder in ERROR_DECODERS:
        if (detail := decoder(status_code, body)) is not None:
            return detail
    text = _body_text(body)
    return SalesforceErrorDetail(text, "", text)


class SalesforceError(SimpleforceError):
    """A response was received from Salesforce, but its status was not 2xx."""

    summary: ClassVar[str] = ""

    message: str
    status_code: int
    error_code: str
    error_message: str
    url_path: str
    method: str
    resource_name: str
    content: str

    def __init__(
        self,
        message: str,
        status_code: int,
        error_code: str = "",
        error_message: str = "",
        *,
        url_path: str = "",
        method: str = "",
        resource_name: str = "",
        content: str = "",
        headers: Mapping[str, str] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.error_message = error_message
        self.url_path = url_path
        self.method = method
        self.resource_name = resource_name
        self.content = content
        self.headers = httpx.Headers(headers or {})
        super().__init__(message)

    def _summary_context(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "url_path": self.url_path,
            "method": self.method.upper(),
            "resource_name": self.resource_name,
        }

    def __str__(self):
        if not self.summary:
            return self.message
        return f"{self.summary.format(**self._summary_context())}: {self.message}"

    def __repr__(self):
        return f"{type(self).__name__}({self})"


class SalesforceMoreThanOneRecord(SalesforceError):
    summary = "More than one record for {resource_name} ({status_code} at {url_path})"


class SalesforceRecordNotModifiedSince(SalesforceError):
    summary = (
        "Record {resource_name} not modified since {if_modified_since} "
        "({status_code} at {url_path})"
    )

    @property
    def if_modified_since(self) -> str | None:
        return self.headers.get("If-Modified-Since")

    def _summary_context(self):
        return {**super()._summary_context(), "if_modified_since": self.if_modified_since}


class SalesforceMalformedRequest(SalesforceError):
    summary = "Malformed request for {resource_name} ({status_code} at {url_path})"


class SalesforceExpiredSession(SalesforceError):
    summary = "Expired session for {resource_name} ({status_code} at {url_path})"


class SalesforceRefusedRequest(SalesforceError):
    summary = "Request refused for {resource_name} ({status_code} at {url_path})"


class SalesforceResourceNotFound(SalesforceError):
    summary = "Resource {resource_name} Not Found ({status_code} at {url_path})"


class SalesforceMethodNotAllowedForResource(SalesforceError):
    summary = "Method {method} not allowed for {resource_name} ({status_code} at {url_path})"


class SalesforceApiVersionIncompatible(SalesforceError):
    summary = "Conflict or API version mismatch for {resource_name} ({status_code} at {url_path})"


class SalesforceResourceRemoved(SalesforceError):
    summary = "Resource {resource_name} has been removed ({status_code} at {url_path})"


class SalesforceInvalidHeaderPreconditions(SalesforceError):
    summary = "Header preconditions failed for {resource_name} ({status_code} at {url_path})"


class SalesforceUriLimitExceeded(SalesforceError):
    summary = "URI length limit exceeded ({status_code} at {url_path})"


class SalesforceUnsupportedFormat(SalesforceError):
    summary = "Unsupported request format for {resource_name} ({status_code} at {url_path})"


class SalesforceEdgeRoutingUnavailable(SalesforceError):
    summary = "Edge routing unavailable ({status_code} at {url_path})"


class SalesforceMissingConditionalHeader(SalesforceError):
    summary = "Missing conditional header for {resource_name} ({status_code} at {url_path})"


class SalesforceHeaderLimitExceeded(SalesforceError):
    summary = "Header limit exceeded ({status_code} at {url_path})"


class SalesforceServerError(SalesforceError):
    summary = "Salesforce server error ({status_code} at {url_path})"


class SalesforceEdgeCommFailure(SalesforceError):
    summary = "Salesforce edge communication failure ({status_code} at {url_path})"


class SalesforceServerUnavailable(SalesforceError):
    summary = "Salesforce server unavailable ({status_code} at {url_path})"


class SalesforceGeneralError(SalesforceError):
    summary = "Error Code {status_code} for {method} {url_path}"

    def _summary_context(self):
        context = super()._summary_context()
        if len(self.url_path) > 255:
            context["url_path"] = self.url_path[:255] + "..."
        return context


class SalesforceAuthenticationFailed(SalesforceError):
    summary = "Authentication failed ({status_code})"


_STATUS_EXCEPTIONS: dict[int, type[SalesforceError]] = {
    300: SalesforceMoreThanOneRecord,
    304: SalesforceRecordNotModifiedSince,
    400: SalesforceMalformedRequest,
    401: SalesforceExpiredSession,
    403: SalesforceRefusedRequest,
    404: SalesforceResourceNotFound,
    405: SalesforceMethodNotAllowedForResource,
    409: SalesforceApiVersionIncompatible,
    410: SalesforceResourceRemoved,
    412: SalesforceInvalidHeaderPreconditions,
    414: SalesforceUriLimitExceeded,
    415: SalesforceUnsupportedFormat,
    420: SalesforceEdgeRoutingUnavailable,
    428: SalesforceMissingConditionalHeader,
    431: SalesforceHeaderLimitExceeded,
    500: SalesforceServerError,
    502: SalesforceEdgeCommFailure,
    503: SalesforceServerUnavailable,
}


def parse_salesforce_error(status_code: int, body: str | bytes) -> SalesforceError:
    """
    Build a SalesforceError from a status code and raw response body.
    Never raises: unrecognized payloads become the error message verbatim.
    """
    detail = unify_error_body(status_code, body)
    return SalesforceError(
        detail.message,
        status_code,
        detail.error_code,
        detail.error_message,
        content=_body_text(body),
    )


def error_from_response(
    response: httpx.Response,
    resource_name: str = "",
    exc_type: type[SalesforceError] | None = None,
) -> SalesforceError:
    try:
        body = response.text
    except httpx.ResponseNotRead:
        body = ""
    status_code = response.status_code
    detail = unify_error_body(status_code, body)
    if exc_type is None:
        exc_type = _STATUS_EXCEPTIONS.get(status_code, SalesforceGeneralError)
    return exc_type(
        detail.message,
        status_code,
        detail.error_code,
        detail.error_message,
        url_path=response.url.path,
        method=response.request.method,
        resource_name=resource_name,
        content=body,
        headers=response.headers,
    )


def raise_for_status(response: httpx.Response, resource_name: str = "") -> None:
    if response.is_success:
        return
    error = error_from_response(response, resource_name)
    _logger.error(
        "request failed status_code=%d method=%s path=%s",
        error.status_code,
        error.method,
        error.url_path,
    )
    _logger.error("failed response body: %s", error.content)
    raise error


# transport errors


class SalesforceTransportError(SimpleforceError):
    """
    No usable response was received. The underlying httpx error is kept on
    ``transport_error``; if a status line arrived before the failure, the
    protocol error it implies is kept on ``protocol_error``.
    """

    transport_error: Exception
    protocol_error: SalesforceError | None

    def __init__(
        self,
        transport_error: Exception,
        protocol_error: SalesforceError | None = None,
    ):
        self.transport_error = transport_error
        self.protocol_error = protocol_error
        message = f"{type(transport_error).__name__}: {transport_error}"
        if protocol_error is not None:
            message += f" (after {protocol_error})"
        super().__init__(message)

    @property
    def errors(self) -> tuple[Exception, ...]:
        if self.protocol_error is None:
            return (self.transport_error,)
        return (self.transport_error, self.protocol_error)


class SalesforceTimeout(SalesforceTransportError):
    """The request deadline passed before the exchange completed."""


def transport_failure(
    error: httpx.TransportError,
    response: httpx.Response | None = None,
    resource_name: str = "",
) -> SalesforceTransportError:
    protocol_error = None
    if response is not None and not response.is_success:
        protocol_error = error_from_response(response, resource_name)
    if isinstance(error, httpx.TimeoutException):
        return SalesforceTimeout(error, protocol_error)
    return SalesforceTransportError(error, protocol_error)


# decode errors


class SalesforceDecodeError(SimpleforceError):
    """A 2xx response carried a body that does not match the expected format."""

    def __init__(self, message: str, status_code: int, content: str = ""):
        self.status_code = status_code
        self.content = content
        super().__init__(message)


def decode_json(response: httpx.Response, resource_name: str = "") -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise SalesforceDecodeError(
            f"Unable to decode {resource_name or 'response'} body as JSON: {e}",
            response.status_code,
            response.text,
        ) from e
