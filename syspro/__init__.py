"""
syspro package
--------------

Python bindings for the SYSPRO e.net REST API.  Importing ``syspro``
exposes the client, its configuration and the error hierarchy.
"""

from syspro.clients.syspro_client import SysproClient
from syspro.core.config import Settings, get_settings
from syspro.core.http_sync import ConnectionProvider
from syspro.core.retry import RetryPolicy
from syspro.errors import (
    ApiConnectionError,
    AuthenticationError,
    ConflictError,
    ConnectionFailure,
    GenericNetworkFailure,
    HTTPApplicationError,
    InvalidClientError,
    InvalidGrantError,
    InvalidRequestError,
    MalformedResponseError,
    NetworkFailureKind,
    OAuthError,
    PermissionDeniedError,
    RateLimitError,
    SysproError,
    TimeoutFailure,
    TLSFailure,
)
from syspro.schemas.response import SysproResponse
from syspro.version import VERSION

__version__ = VERSION

__all__ = [
    "SysproClient",
    "Settings",
    "get_settings",
    "ConnectionProvider",
    "RetryPolicy",
    "SysproResponse",
    "VERSION",
    "SysproError",
    "ApiConnectionError",
    "ConnectionFailure",
    "TLSFailure",
    "TimeoutFailure",
    "GenericNetworkFailure",
    "NetworkFailureKind",
    "HTTPApplicationError",
    "InvalidRequestError",
    "AuthenticationError",
    "PermissionDeniedError",
    "ConflictError",
    "RateLimitError",
    "OAuthError",
    "InvalidClientError",
    "InvalidGrantError",
    "MalformedResponseError",
]
