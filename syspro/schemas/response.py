"""
schemas/response.py
-------------------

Structured view of a raw SYSPRO HTTP response.

SYSPRO e.net answers most business object queries with XML, a few
endpoints (``/Logon``, ``/GetSyspro8Version``) with a bare text value,
and gateways sitting in front of it sometimes with JSON.  The body is
parsed eagerly when the response is built; a syntax error raises
:class:`ResponseParseError` so that callers can tell a broken payload
apart from an empty one.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

REQUEST_ID_HEADERS = ("Request-Id", "X-Request-Id")


class ResponseParseError(ValueError):
    """The response body is not valid XML or JSON."""


def _strip_namespace(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def element_to_dict(element: ET.Element) -> Any:
    """Convert an XML element into plain Python values.

    Leaf elements become their stripped text (``None`` when empty).
    Elements with children or attributes become dicts; attributes are
    stored under ``@name`` and repeated child tags are collected into
    lists.
    """
    children = list(element)
    text = (element.text or "").strip()
    if not children and not element.attrib:
        return text or None

    node: Dict[str, Any] = {f"@{_strip_namespace(k)}": v for k, v in element.attrib.items()}
    for child in children:
        key = _strip_namespace(child.tag)
        value = element_to_dict(child)
        if key in node:
            if not isinstance(node[key], list):
                node[key] = [node[key]]
            node[key].append(value)
        else:
            node[key] = value
    if text:
        node["#text"] = text
    return node


def parse_payload(body: str, content_type: str = "") -> Tuple[Dict[str, Any], Optional[str]]:
    """Parse ``body`` into ``(data, text)``.

    ``data`` is the structured payload; ``text`` is set instead for
    plain-text replies.
    """
    stripped = body.strip()
    if not stripped:
        return {}, None

    if "json" in content_type.lower() or stripped[0] in "{[":
        try:
            decoded = json.loads(stripped)
        except ValueError as exc:
            raise ResponseParseError(f"Invalid JSON payload: {exc}") from exc
        if isinstance(decoded, dict):
            return decoded, None
        return {"items": decoded}, None

    if stripped[0] == "<":
        try:
            root = ET.fromstring(stripped)
        except ET.ParseError as exc:
            raise ResponseParseError(f"Invalid XML payload: {exc}") from exc
        return {_strip_namespace(root.tag): element_to_dict(root)}, None

    return {}, stripped


def _find_error(data: Mapping[str, Any]) -> Any:
    for key, value in data.items():
        if key.lower() == "error":
            return value
    # XML documents have a single root element wrapping the payload.
    if len(data) == 1:
        (root,) = data.values()
        if isinstance(root, dict):
            for key, value in root.items():
                if key.lower() == "error":
                    return value
    return None


class SysproResponse:
    """Parsed HTTP response returned by the client.

    Attributes are set once in the constructor and exposed read-only.
    """

    __slots__ = ("_http_status", "_http_headers", "_http_body", "_data", "_text", "_error", "_request_id")

    def __init__(self, http_status: int, http_headers: Mapping[str, str], http_body: str) -> None:
        headers = httpx.Headers(http_headers)
        data, text = parse_payload(http_body, headers.get("Content-Type", ""))
        self._http_status = http_status
        self._http_headers = headers
        self._http_body = http_body
        self._data = data
        self._text = text
        self._error = _find_error(data)
        self._request_id = next((headers[h] for h in REQUEST_ID_HEADERS if h in headers), None)

    @classmethod
    def from_httpx_response(cls, response: httpx.Response) -> "SysproResponse":
        return cls(response.status_code, response.headers, response.text)

    @property
    def http_status(self) -> int:
        return self._http_status

    @property
    def http_headers(self) -> httpx.Headers:
        return self._http_headers

    @property
    def http_body(self) -> str:
        return self._http_body

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    @property
    def text(self) -> Optional[str]:
        return self._text

    @property
    def error(self) -> Any:
        return self._error

    @property
    def request_id(self) -> Optional[str]:
        return self._request_id

    def __repr__(self) -> str:
        return f"<SysproResponse status={self._http_status} request_id={self._request_id!r}>"
