"""
core/context.py
----------------

Request log context.  ``RequestLogContext`` stores information about a
request that is being made so that the executor can log it without
passing many parameters around.  The model is frozen: metadata that
only becomes known once the server answers (request id, account, API
version) is folded in by :meth:`RequestLogContext.dup_from_response_headers`,
which returns a new context.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict

ACCOUNT_HEADER = "Syspro-Account"
API_VERSION_HEADER = "Syspro-Version"
REQUEST_ID_HEADERS = ("Request-Id", "X-Request-Id")


class RequestLogContext(BaseModel):
    method: str
    path: str
    user_id: str = ""
    body: Any = None
    query_params: Optional[str] = None
    request_id: Optional[str] = None
    account: Optional[str] = None
    api_version: Optional[str] = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    def dup_from_response_headers(self, headers: Optional[Mapping[str, str]]) -> "RequestLogContext":
        """Return a copy enriched with metadata from response headers."""
        if not headers:
            return self
        lowered = {k.lower(): v for k, v in headers.items()}
        request_id = next((lowered[h.lower()] for h in REQUEST_ID_HEADERS if h.lower() in lowered), None)
        return self.model_copy(update={
            "request_id": request_id or self.request_id,
            "account": lowered.get(ACCOUNT_HEADER.lower(), self.account),
            "api_version": lowered.get(API_VERSION_HEADER.lower(), self.api_version),
        })
