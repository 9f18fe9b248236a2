from .httpx import SalesforceAuth
from .types import SalesforceLogin, SalesforceToken, TokenRefreshCallback
from .login_soap import password_login, session_login


__all__ = [
    "SalesforceAuth",
    "SalesforceLogin",
    "SalesforceToken",
    "TokenRefreshCallback",
    "password_login",
    "session_login",
]
