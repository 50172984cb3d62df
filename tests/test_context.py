from __future__ import annotations

import pydantic
import pytest

from syspro.core.config import Settings, get_settings
from syspro.core.context import RequestLogContext


def test_context_is_frozen():
    context = RequestLogContext(method="GET", path="/Query/Browse")
    with pytest.raises(pydantic.ValidationError):
        context.path = "/other"  # type: ignore[misc]


def test_dup_from_response_headers():
    context = RequestLogContext(method="POST", path="/Transaction/Post", user_id="u1", body="a=1")
    enriched = context.dup_from_response_headers(
        {"request-id": "req_1", "Syspro-Account": "EDU1", "Syspro-Version": "8.0"}
    )

    assert enriched is not context
    assert context.request_id is None
    assert (enriched.request_id, enriched.account, enriched.api_version) == ("req_1", "EDU1", "8.0")
    assert enriched.body == "a=1"
    assert context.dup_from_response_headers({}) is context


def test_dup_keeps_previous_values_when_headers_lack_them():
    context = RequestLogContext(method="GET", path="/x", request_id="req_0", account="EDU1")
    enriched = context.dup_from_response_headers({"Content-Type": "text/xml"})

    assert enriched.request_id == "req_0"
    assert enriched.account == "EDU1"


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("SYSPRO_API_BASE", "https://erp.example/Rest")
    monkeypatch.setenv("SYSPRO_MAX_NETWORK_RETRIES", "2")
    monkeypatch.setenv("SYSPRO_VERIFY_SSL_CERTS", "true")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.api_base == "https://erp.example/Rest"
        assert settings.max_network_retries == 2
        assert settings.verify_ssl_certs is True
        assert get_settings() is settings
    finally:
        get_settings.cache_clear()


def test_settings_reject_negative_retries():
    with pytest.raises(pydantic.ValidationError):
        Settings(max_network_retries=-1)
