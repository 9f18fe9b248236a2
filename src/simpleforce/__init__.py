from .client import SalesforceClient
from .auth import SalesforceAuth, SalesforceToken, password_login, session_login
from .data.sobject import SObject, UNSET
from .data.query import QueryResult
from .exceptions import (
    SalesforceDecodeError,
    SalesforceError,
    SalesforceTimeout,
    SalesforceTransportError,
    SimpleforceError,
    SObjectPreconditionError,
)

__all__ = [
    "SalesforceClient",
    "SalesforceAuth",
    "SalesforceToken",
    "SObject",
    "UNSET",
    "QueryResult",
    "password_login",
    "session_login",
    "SimpleforceError",
    "SObjectPreconditionError",
    "SalesforceError",
    "SalesforceTransportError",
    "SalesforceTimeout",
    "SalesforceDecodeError",
]
