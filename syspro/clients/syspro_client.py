"""
clients/syspro_client.py
------------------------

The SYSPRO client turns method calls into HTTP requests against the
SYSPRO e.net REST service.  It owns the request pipeline:

1. resolve the API base and split parameters into query string or body;
2. merge the default headers with the caller's;
3. drive the retry loop, asking :class:`RetryPolicy` after every failed
   attempt whether to try again;
4. classify terminal failures into :mod:`syspro.errors` exceptions;
5. parse successful responses into :class:`SysproResponse`.

One client should be created per configuration and reused.  Connections
come from a :class:`ConnectionProvider`, which keeps one ``httpx.Client``
per execution context.

    client = SysproClient()
    user_id = client.logon("ADMIN", "", "EDU1")
    resp = client.execute_request("GET", "/Query/Browse", params={"UserId": user_id})
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, Hashable, Mapping, Optional, Tuple

import httpx

from syspro.clients.system_profiler import SystemProfiler
from syspro.core.config import Settings, get_settings
from syspro.core.context import RequestLogContext
from syspro.core.http_sync import ConnectionProvider
from syspro.core.retry import AttemptFailed, AttemptResult, AttemptSucceeded, RetryPolicy
from syspro.errors import (
    SysproError,
    build_network_error,
    general_api_error,
    specific_api_error,
    specific_oauth_error,
)
from syspro.logging_config import log_debug, log_error, log_info, redact_query
from syspro.schemas.response import ResponseParseError, SysproResponse
from syspro.services import auth_service
from syspro.utils import encode_parameters, flatten_params, normalize_headers, objects_to_ids
from syspro.version import VERSION

BODYLESS_METHODS = {"get", "head", "delete"}
MULTIPART_FORM_DATA = "multipart/form-data"


def _is_file(value: Any) -> bool:
    return hasattr(value, "read") or isinstance(value, tuple)


class SysproClient:
    """Synchronous SYSPRO e.net client."""

    def __init__(
        self,
        conn: Optional[httpx.Client] = None,
        *,
        settings: Optional[Settings] = None,
        connection_provider: Optional[ConnectionProvider] = None,
        retry_policy: Optional[RetryPolicy] = None,
        context_key: Optional[Hashable] = None,
    ) -> None:
        self.settings = settings if settings is not None else get_settings()
        # An injected provider may be shared with other clients; only close our own.
        self._owns_provider = connection_provider is None
        self.connection_provider = (
            connection_provider if connection_provider is not None else ConnectionProvider(self.settings)
        )
        self.retry_policy = retry_policy if retry_policy is not None else RetryPolicy.from_settings(self.settings)
        self.context_key = context_key
        self.api_base = self.settings.api_base
        self.last_response: Optional[SysproResponse] = None
        self._conn = conn
        self._system_profiler = SystemProfiler(self.settings.app_info)
        self._user_agent = self._system_profiler.user_agent()

    @property
    def conn(self) -> httpx.Client:
        if self._conn is not None:
            return self._conn
        return self.connection_provider.get_connection(self.context_key)

    def close(self) -> None:
        if self._owns_provider:
            self.connection_provider.close()

    def __enter__(self) -> "SysproClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def logon(self, operator: str, operator_password: str, company_id: str, company_password: str = "") -> str:
        return auth_service.logon(self, operator, operator_password, company_id, company_password)

    def get_syspro_version(self) -> str:
        return auth_service.get_syspro_version(self)

    def request(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Tuple[Any, Optional[SysproResponse]]:
        """Run ``fn(self, *args, **kwargs)`` and return its result with the last response.

        Usage looks like:

            version, resp = client.request(get_syspro_version)
        """
        self.last_response = None
        res = fn(self, *args, **kwargs)
        return res, self.last_response

    def api_url(self, path: str = "", api_base: Optional[str] = None) -> str:
        return (api_base or self.api_base) + path

    def request_headers(self, method: str) -> Dict[str, str]:
        return {
            "User-Agent": f"Syspro/7 PythonBindings/{VERSION}",
            "X-Syspro-Client-User-Agent": json.dumps(self._user_agent),
            "Content-Type": "application/x-www-form-urlencoded",
        }

    def execute_request(
        self,
        method: str,
        path: str,
        *,
        user_id: Optional[str] = None,
        api_base: Optional[str] = None,
        headers: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> SysproResponse:
        """Send one logical request and return the parsed response.

        Raises a :class:`SysproError` subclass when the request fails for
        good, after any retries the policy allows.
        """
        api_base = api_base or self.api_base
        user_id = user_id or ""
        params = objects_to_ids(params or {})
        url = self.api_url(path, api_base)
        headers = normalize_headers(headers)

        body: Any = None
        query_params: Optional[Mapping[str, Any]] = None
        request_kwargs: Dict[str, Any] = {}

        if method.lower() in BODYLESS_METHODS:
            query_params = params
            if params:
                request_kwargs["params"] = flatten_params(params)
        elif headers.get("Content-Type") == MULTIPART_FORM_DATA:
            body = params
            # httpx writes the boundary into the header itself.
            headers.pop("Content-Type")
            request_kwargs["data"] = {k: v for k, v in params.items() if not _is_file(v)}
            request_kwargs["files"] = {k: v for k, v in params.items() if _is_file(v)}
        else:
            body = encode_parameters(params)
            request_kwargs["content"] = body

        request_headers = self.request_headers(method)
        if "Content-Type" not in headers and "files" in request_kwargs:
            request_headers.pop("Content-Type")
        request_headers.update(headers)

        # stores information on the request we're about to make so that we
        # don't have to pass as many parameters around for logging.
        context = RequestLogContext(
            method=method,
            path=path,
            user_id=user_id,
            body=body,
            query_params=encode_parameters(query_params) if query_params is not None else None,
        )

        timeout = httpx.Timeout(self.settings.read_timeout, connect=self.settings.open_timeout)

        def send() -> httpx.Response:
            return self.conn.request(method.upper(), url, headers=request_headers, timeout=timeout, **request_kwargs)

        http_resp = self._execute_request_with_retries(api_base, context, send)

        try:
            resp = SysproResponse.from_httpx_response(http_resp)
        except ResponseParseError as exc:
            raise general_api_error(http_resp.status_code, http_resp.text, http_resp.headers) from exc

        # Allows SysproClient.request to return a response object to a caller.
        self.last_response = resp
        return resp

    # -----------------------------------------------------------------
    # Retry loop
    # -----------------------------------------------------------------

    @staticmethod
    def _attempt(send: Callable[[], httpx.Response], num_retries: int) -> AttemptResult:
        try:
            return AttemptSucceeded(send(), num_retries)
        except (httpx.HTTPStatusError, httpx.RequestError) as exc:
            return AttemptFailed(exc, num_retries)

    def _execute_request_with_retries(
        self,
        api_base: str,
        context: RequestLogContext,
        send: Callable[[], httpx.Response],
    ) -> httpx.Response:
        num_retries = 0
        while True:
            request_start = time.monotonic()
            self._log_request(context, num_retries)
            result = self._attempt(send, num_retries)

            if isinstance(result, AttemptSucceeded):
                context = context.dup_from_response_headers(result.response.headers)
                self._log_response(context, request_start, result.response.status_code, result.response.text)
                return result.response

            error = result.error
            if isinstance(error, httpx.HTTPStatusError):
                context = context.dup_from_response_headers(error.response.headers)
                self._log_response(context, request_start, error.response.status_code, error.response.text)
            else:
                self._log_response_error(context, request_start, error)

            if self.retry_policy.should_retry(error, num_retries):
                num_retries += 1
                time.sleep(self.retry_policy.sleep_time(num_retries))
                continue

            raise self._terminal_error(error, context, num_retries, api_base) from error

    def _terminal_error(
        self,
        error: Exception,
        context: RequestLogContext,
        num_retries: int,
        api_base: str,
    ) -> SysproError:
        if isinstance(error, httpx.HTTPStatusError):
            return self._handle_error_response(error.response)
        return self._handle_network_error(error, context, num_retries, api_base)

    def _handle_network_error(
        self,
        error: Any,
        context: RequestLogContext,
        num_retries: int,
        api_base: str,
    ) -> SysproError:
        log_error("Syspro network error", error_message=str(error), request_id=context.request_id)
        return build_network_error(error, num_retries, api_base, request_id=context.request_id)

    def _handle_error_response(self, http_resp: httpx.Response) -> SysproError:
        try:
            resp = SysproResponse.from_httpx_response(http_resp)
        except ResponseParseError:
            return general_api_error(http_resp.status_code, http_resp.text, http_resp.headers)

        error_data = resp.error
        if isinstance(error_data, str) and error_data:
            error: SysproError = specific_oauth_error(resp, error_data)
        elif isinstance(error_data, Mapping) and error_data:
            error = specific_api_error(resp, error_data)
        else:
            error = general_api_error(resp.http_status, resp.http_body, resp.http_headers)

        error.response = resp
        return error

    # -----------------------------------------------------------------
    # Logging
    # -----------------------------------------------------------------

    def _log_request(self, context: RequestLogContext, num_retries: int) -> None:
        log_info(
            "Request to Syspro API",
            account=context.account,
            api_version=context.api_version,
            method=context.method,
            num_retries=num_retries,
            path=context.path,
        )
        log_debug(
            "Request details",
            body=redact_query(context.body) if isinstance(context.body, str) else context.body,
            query_params=redact_query(context.query_params),
        )

    def _log_response(self, context: RequestLogContext, request_start: float, status: int, body: str) -> None:
        log_info(
            "Response from Syspro API",
            account=context.account,
            api_version=context.api_version,
            elapsed=time.monotonic() - request_start,
            method=context.method,
            path=context.path,
            request_id=context.request_id,
            status=status,
        )
        log_debug("Response details", body=body, request_id=context.request_id)

    def _log_response_error(self, context: RequestLogContext, request_start: float, error: Exception) -> None:
        log_error(
            "Request error",
            elapsed=time.monotonic() - request_start,
            error_message=str(error),
            method=context.method,
            path=context.path,
        )
