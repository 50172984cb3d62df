from __future__ import annotations

import gc
import logging
import threading
import time
import weakref

import httpx
import pytest

from syspro.core.config import Settings
from syspro.core.http_sync import SSL_WARNING, ConnectionProvider, OnceFlag, verify_ssl_warned


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="ok")


@pytest.fixture(autouse=True)
def _reset_warning_flag():
    verify_ssl_warned.reset()
    yield
    verify_ssl_warned.reset()


def _warnings(caplog):
    return [r for r in caplog.records if r.name == "syspro" and r.getMessage() == SSL_WARNING]


def test_connection_is_cached_per_context_key():
    provider = ConnectionProvider(Settings(), transport=httpx.MockTransport(_ok))

    first = provider.get_connection("worker-1")
    assert provider.get_connection("worker-1") is first
    assert provider.get_connection("worker-2") is not first
    assert len(provider) == 2


def test_default_context_is_the_current_thread():
    provider = ConnectionProvider(Settings(), transport=httpx.MockTransport(_ok))
    main = provider.get_connection()
    seen = []

    thread = threading.Thread(target=lambda: seen.append(provider.get_connection()))
    thread.start()
    thread.join()

    assert provider.get_connection() is main
    assert seen[0] is not main


def test_finished_thread_connection_is_not_retained():
    provider = ConnectionProvider(Settings(), transport=httpx.MockTransport(_ok))
    refs = []

    def work():
        refs.append(weakref.ref(provider.get_connection()))

    threads = [threading.Thread(target=work) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    for _ in range(100):
        gc.collect()
        if len(provider) == 0:
            break
        time.sleep(0.01)

    assert len(refs) == 20
    assert len(provider) == 0
    assert all(ref() is None for ref in refs)


def test_close_drops_thread_connection():
    provider = ConnectionProvider(Settings(), transport=httpx.MockTransport(_ok))
    conn = provider.get_connection()
    assert len(provider) == 1

    provider.close()

    assert conn.is_closed
    assert len(provider) == 0
    fresh = provider.get_connection()
    assert fresh is not conn
    assert not fresh.is_closed


def test_tls_warning_fires_once_per_process(caplog):
    caplog.set_level(logging.WARNING, logger="syspro")
    settings = Settings(verify_ssl_certs=False)
    providers = [ConnectionProvider(settings, transport=httpx.MockTransport(_ok)) for _ in range(3)]

    threads = [
        threading.Thread(target=provider.get_connection, args=(key,))
        for provider in providers
        for key in range(5)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(_warnings(caplog)) == 1
    assert verify_ssl_warned.is_set()


def test_no_warning_when_verification_enabled(caplog):
    caplog.set_level(logging.WARNING, logger="syspro")
    provider = ConnectionProvider(Settings(verify_ssl_certs=True), transport=httpx.MockTransport(_ok))

    provider.get_connection("a")

    assert _warnings(caplog) == []
    assert not verify_ssl_warned.is_set()


def test_error_statuses_are_promoted_with_body_available():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, text="locked")

    conn = ConnectionProvider(Settings(), transport=httpx.MockTransport(handler)).get_connection()

    with pytest.raises(httpx.HTTPStatusError) as excinfo:
        conn.get("https://syspro.test/Rest/Query/Browse")

    assert excinfo.value.response.status_code == 409
    assert excinfo.value.response.text == "locked"


def test_success_is_not_promoted():
    conn = ConnectionProvider(Settings(), transport=httpx.MockTransport(_ok)).get_connection()
    assert conn.get("https://syspro.test/Rest/GetSyspro8Version").text == "ok"


def test_timeouts_come_from_settings():
    settings = Settings(open_timeout=5, read_timeout=50)
    conn = ConnectionProvider(settings, transport=httpx.MockTransport(_ok)).get_connection()

    assert conn.timeout.connect == 5
    assert conn.timeout.read == 50


def test_close_forgets_connections():
    provider = ConnectionProvider(Settings(), transport=httpx.MockTransport(_ok))
    conn = provider.get_connection("a")

    provider.close()

    assert conn.is_closed
    assert len(provider) == 0
    assert provider.get_connection("a") is not conn


def test_once_flag_claim():
    flag = OnceFlag()
    assert flag.claim() is True
    assert flag.claim() is False
    flag.reset()
    assert flag.claim() is True
