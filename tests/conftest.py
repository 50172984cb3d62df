"""Shared fixtures for the SYSPRO client tests."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List

import httpx
import pytest

from syspro.clients.syspro_client import SysproClient
from syspro.core.config import Settings
from syspro.core.http_sync import ConnectionProvider

API_BASE = "https://syspro.test/SYSPROWCFService/Rest"


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base=API_BASE, max_network_retries=3)


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    """Record backoff sleeps instead of waiting."""
    calls: List[float] = []
    monkeypatch.setattr("syspro.clients.syspro_client.time.sleep", calls.append)
    return calls


@pytest.fixture
def make_client(settings: Settings, sleeps: List[float]) -> Callable[..., SysproClient]:
    def _make(handler: Callable[[httpx.Request], httpx.Response], **overrides: Any) -> SysproClient:
        cfg = settings.model_copy(update=overrides) if overrides else settings
        provider = ConnectionProvider(cfg, transport=httpx.MockTransport(handler))
        client = SysproClient(settings=cfg, connection_provider=provider)
        # Anything else would send the request over the real network.
        assert client.connection_provider is provider
        return client

    return _make


@pytest.fixture
def syspro_logs(caplog: pytest.LogCaptureFixture) -> Callable[[], List[Dict[str, Any]]]:
    """Return the JSON documents logged on the ``syspro`` logger."""
    caplog.set_level(logging.DEBUG, logger="syspro")

    def _records() -> List[Dict[str, Any]]:
        out = []
        for record in caplog.records:
            if record.name != "syspro":
                continue
            try:
                out.append(json.loads(record.getMessage()))
            except ValueError:
                out.append({"message": record.getMessage()})
        return out

    return _records


def xml_response(status: int, body: str, **headers: str) -> httpx.Response:
    return httpx.Response(status, content=body.encode("utf-8"), headers={"Content-Type": "application/xml", **headers})
