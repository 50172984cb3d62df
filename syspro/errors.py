"""
errors.py
---------

Exception hierarchy raised by the SYSPRO client.

Every failure surfaced to callers derives from :class:`SysproError`.
Two families are distinguished:

* network-layer failures (no HTTP response was obtained), raised as
  :class:`ApiConnectionError` subclasses, one per
  :class:`NetworkFailureKind`;
* application-layer failures (the server answered with a non-2xx
  status), raised as :class:`HTTPApplicationError` subclasses selected
  from the embedded error payload, or :class:`MalformedResponseError`
  when the payload cannot be understood.
"""

from __future__ import annotations

import ssl
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Type

import httpx

if TYPE_CHECKING:
    from syspro.schemas.response import SysproResponse


class SysproError(Exception):
    """Base class for all errors raised by the client."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        http_status: Optional[int] = None,
        http_body: Optional[str] = None,
        http_headers: Optional[Mapping[str, str]] = None,
        code: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.http_status = http_status
        self.http_body = http_body
        self.http_headers = dict(http_headers or {})
        self.code = code
        self.request_id = request_id
        self.response: Optional["SysproResponse"] = None

    def __str__(self) -> str:
        msg = self.message or "<empty message>"
        if self.request_id is not None:
            return f"(Request {self.request_id}) {msg}"
        return msg

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"http_status={self.http_status!r}, request_id={self.request_id!r})"
        )


# -----------------------------------------------------------------------------
# Network layer
# -----------------------------------------------------------------------------


class NetworkFailureKind(str, Enum):
    """Closed set of network failure categories."""

    CONNECTION = "connection"
    TLS = "tls"
    TIMEOUT = "timeout"
    GENERIC = "generic"


class ApiConnectionError(SysproError):
    """No HTTP response could be obtained from SYSPRO."""

    kind: NetworkFailureKind = NetworkFailureKind.GENERIC

    def __init__(self, message: Optional[str] = None, *, num_retries: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.num_retries = num_retries


class ConnectionFailure(ApiConnectionError):
    kind = NetworkFailureKind.CONNECTION


class TLSFailure(ApiConnectionError):
    kind = NetworkFailureKind.TLS


class TimeoutFailure(ApiConnectionError):
    kind = NetworkFailureKind.TIMEOUT


class GenericNetworkFailure(ApiConnectionError):
    kind = NetworkFailureKind.GENERIC


NETWORK_ERROR_CLASSES: Dict[NetworkFailureKind, Type[ApiConnectionError]] = {
    NetworkFailureKind.CONNECTION: ConnectionFailure,
    NetworkFailureKind.TLS: TLSFailure,
    NetworkFailureKind.TIMEOUT: TimeoutFailure,
    NetworkFailureKind.GENERIC: GenericNetworkFailure,
}

_NETWORK_MESSAGES: Dict[NetworkFailureKind, str] = {
    NetworkFailureKind.CONNECTION: "Unexpected error communicating when trying to connect to Syspro.",
    NetworkFailureKind.TLS: "Could not establish a secure connection to Syspro.",
    NetworkFailureKind.TIMEOUT: (
        "Could not connect to Syspro ({api_base}). "
        "Please check your internet connection and try again. "
        "If this problem persists, you should check your Syspro service status."
    ),
    NetworkFailureKind.GENERIC: (
        "Unexpected error communicating with Syspro. "
        "If this problem persists, talk to your Syspro implementation team."
    ),
}


def _has_ssl_cause(exc: BaseException) -> bool:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def classify_network_error(exc: httpx.RequestError) -> NetworkFailureKind:
    """Map a transport exception onto a :class:`NetworkFailureKind`."""
    if isinstance(exc, httpx.TimeoutException):
        return NetworkFailureKind.TIMEOUT
    if isinstance(exc, httpx.ConnectError) and _has_ssl_cause(exc):
        return NetworkFailureKind.TLS
    if isinstance(exc, (httpx.NetworkError, httpx.RemoteProtocolError)):
        # A server dropping the connection mid-response counts as a connection failure.
        return NetworkFailureKind.CONNECTION
    return NetworkFailureKind.GENERIC


def network_error_message(kind: NetworkFailureKind, api_base: str) -> str:
    return _NETWORK_MESSAGES[kind].format(api_base=api_base)


def build_network_error(
    exc: httpx.RequestError,
    num_retries: int,
    api_base: str,
    request_id: Optional[str] = None,
) -> ApiConnectionError:
    """Build the terminal error for a transport failure.

    The message combines the category explanation, the number of retries
    performed (when any) and the low-level error text.
    """
    kind = classify_network_error(exc)
    message = network_error_message(kind, api_base)
    if num_retries > 0:
        message += f" Request was retried {num_retries} times."
    message += f"\n\n(Network error: {exc})"
    return NETWORK_ERROR_CLASSES[kind](message, num_retries=num_retries, request_id=request_id)


# -----------------------------------------------------------------------------
# Application layer
# -----------------------------------------------------------------------------


class HTTPApplicationError(SysproError):
    """SYSPRO answered with an error status and an error payload."""


class InvalidRequestError(HTTPApplicationError):
    def __init__(self, message: Optional[str] = None, param: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.param = param


class AuthenticationError(HTTPApplicationError):
    pass


class PermissionDeniedError(HTTPApplicationError):
    pass


class ConflictError(HTTPApplicationError):
    pass


class RateLimitError(HTTPApplicationError):
    pass


class OAuthError(HTTPApplicationError):
    """Error reported in the string form ``{"error": "<code>"}``."""


class InvalidClientError(OAuthError):
    pass


class InvalidGrantError(OAuthError):
    pass


class MalformedResponseError(SysproError):
    """The response body could not be understood."""


_STATUS_ERRORS: Dict[int, Type[HTTPApplicationError]] = {
    400: InvalidRequestError,
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: InvalidRequestError,
    409: ConflictError,
    429: RateLimitError,
}

_OAUTH_ERRORS: Dict[str, Type[OAuthError]] = {
    "invalid_client": InvalidClientError,
    "invalid_grant": InvalidGrantError,
}


def _field(error_data: Mapping[str, Any], name: str) -> Any:
    # XML payloads keep SYSPRO's capitalised element names.
    for key, value in error_data.items():
        if str(key).lower() == name:
            return value
    return None


def general_api_error(status: int, body: Optional[str], headers: Optional[Mapping[str, str]] = None) -> MalformedResponseError:
    return MalformedResponseError(
        f"Invalid response object from API: {body!r} (HTTP response code was {status})",
        http_status=status,
        http_body=body,
        http_headers=headers,
    )


def specific_api_error(resp: "SysproResponse", error_data: Mapping[str, Any]) -> HTTPApplicationError:
    """Build the error for a structured ``error`` payload."""
    kwargs: Dict[str, Any] = {
        "http_status": resp.http_status,
        "http_body": resp.http_body,
        "http_headers": resp.http_headers,
        "code": _field(error_data, "code"),
        "request_id": resp.request_id,
    }
    message = _field(error_data, "message")
    error_class = _STATUS_ERRORS.get(resp.http_status, HTTPApplicationError)
    if error_class is InvalidRequestError:
        return InvalidRequestError(message, _field(error_data, "param"), **kwargs)
    return error_class(message, **kwargs)


def specific_oauth_error(resp: "SysproResponse", error_code: str) -> OAuthError:
    """Build the error for a string ``error`` payload."""
    description = resp.data.get("error_description") or error_code
    error_class = _OAUTH_ERRORS.get(error_code, OAuthError)
    return error_class(
        description,
        http_status=resp.http_status,
        http_body=resp.http_body,
        http_headers=resp.http_headers,
        code=error_code,
        request_id=resp.request_id,
    )
