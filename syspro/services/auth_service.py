"""
services/auth_service.py
------------------------

Operator logon and service version lookups.  These functions
orchestrate calls to SYSPRO through a :class:`SysproClient`; they are
also exposed as ``SysproClient.logon`` and
``SysproClient.get_syspro_version``.

SYSPRO answers both endpoints with a bare text value rather than an
XML document, so the result is read from ``SysproResponse.text``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from syspro.errors import AuthenticationError
from syspro.logging_config import log_call, log_info

if TYPE_CHECKING:
    from syspro.clients.syspro_client import SysproClient

LOGON_PATH = "/Logon"
VERSION_PATH = "/GetSyspro8Version"


@log_call
def logon(
    client: "SysproClient",
    operator: str,
    operator_password: str,
    company_id: str,
    company_password: str = "",
) -> str:
    """Log an operator on and return the SYSPRO user id (session GUID).

    :raises AuthenticationError: if SYSPRO answers without a user id
    """
    resp = client.execute_request(
        "GET",
        LOGON_PATH,
        params={
            "Operator": operator,
            "OperatorPassword": operator_password,
            "CompanyId": company_id,
            "CompanyPassword": company_password,
        },
    )
    user_id = (resp.text or "").strip()
    if not user_id:
        error = AuthenticationError(
            "Logon did not return a user id",
            http_status=resp.http_status,
            http_body=resp.http_body,
            http_headers=resp.http_headers,
            request_id=resp.request_id,
        )
        error.response = resp
        raise error
    log_info("logon_success", operator=operator, company_id=company_id)
    return user_id


@log_call
def get_syspro_version(client: "SysproClient") -> str:
    """Return the version string reported by the SYSPRO service."""
    resp = client.execute_request("GET", VERSION_PATH)
    return (resp.text or "").strip()
