"""
Synchronous HTTP connections for SYSPRO.

``ConnectionProvider`` hands out one ``httpx.Client`` per execution
context (by default, per thread) so that sequential calls from the same
context reuse the underlying connection.  Every client it builds:

* sends URL-encoded (``data=``) and multipart (``files=``) bodies;
* promotes non-2xx responses to ``httpx.HTTPStatusError`` through a
  response event hook, after reading the body so it stays available;
* applies the TLS verification policy from :class:`Settings`.

Certificates are not verified by default.  This is unsafe outside a
trusted network; the first time an unverified connection is created in
the process a warning is logged.

Usage example:

    from syspro.core.http_sync import ConnectionProvider
    conn = ConnectionProvider().get_connection()
"""

from __future__ import annotations

import threading
import weakref
from typing import Any, Dict, Hashable, Optional

import httpx

from syspro.core.config import Settings, get_settings
from syspro.logging_config import logger


class OnceFlag:
    """Process-wide flag that can be claimed exactly once."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._set = False

    def claim(self) -> bool:
        """Set the flag; return True only for the caller that set it."""
        with self._lock:
            if self._set:
                return False
            self._set = True
            return True

    def is_set(self) -> bool:
        return self._set

    def reset(self) -> None:
        with self._lock:
            self._set = False


verify_ssl_warned = OnceFlag()

SSL_WARNING = (
    "WARNING: Running without SSL cert verification. "
    "You should never do this in production. "
    "Set SYSPRO_VERIFY_SSL_CERTS=true to enable verification."
)


def raise_on_error_status(response: httpx.Response) -> None:
    """Response hook promoting non-2xx responses to ``HTTPStatusError``."""
    if not response.is_success:
        response.read()
        response.raise_for_status()


class ConnectionProvider:
    """Cache of ``httpx.Client`` objects keyed by execution context.

    Without a ``context_key`` the client lives in thread-local storage and
    goes away with its thread.  Pass an explicit ``context_key`` to scope
    connections to something other than the current thread (a task id, a
    worker name); those stay cached until :meth:`close`.  A client is
    never shared between two contexts.
    """

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.settings = settings or get_settings()
        self._transport = transport
        self._lock = threading.Lock()
        self._connections: Dict[Hashable, httpx.Client] = {}
        self._local = threading.local()
        self._thread_connections: "weakref.WeakSet[httpx.Client]" = weakref.WeakSet()
        # Bumped by close() so threads drop clients built before it.
        self._generation = 0

    def get_connection(self, context_key: Optional[Hashable] = None) -> httpx.Client:
        if context_key is None:
            return self._thread_connection()
        with self._lock:
            conn = self._connections.get(context_key)
            if conn is None:
                conn = self._build_connection()
                self._connections[context_key] = conn
        return conn

    def _thread_connection(self) -> httpx.Client:
        cached = getattr(self._local, "conn", None)
        if cached is not None and cached[0] == self._generation:
            return cached[1]
        with self._lock:
            conn = self._build_connection()
            self._thread_connections.add(conn)
            self._local.conn = (self._generation, conn)
        return conn

    def _build_connection(self) -> httpx.Client:
        kwargs: Dict[str, Any] = {
            "verify": self.settings.verify_ssl_certs,
            "timeout": httpx.Timeout(self.settings.read_timeout, connect=self.settings.open_timeout),
            "event_hooks": {"response": [raise_on_error_status]},
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        conn = httpx.Client(**kwargs)

        if not self.settings.verify_ssl_certs and verify_ssl_warned.claim():
            logger.warning(SSL_WARNING)
        return conn

    def close(self) -> None:
        """Close every live client and forget them."""
        with self._lock:
            connections = list(self._connections.values()) + list(self._thread_connections)
            self._connections.clear()
            self._thread_connections.clear()
            self._generation += 1
        for conn in connections:
            conn.close()

    def __len__(self) -> int:
        """Number of live clients, keyed and thread-local."""
        return len(self._connections) + len(self._thread_connections)
