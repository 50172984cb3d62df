"""
Parameter and header helpers used when building SYSPRO requests.

Nested parameter structures are flattened into bracketed keys
(``Filter[Customer]=0000001``, ``Lines[]=1``) and URL encoded.  Header
maps supplied by callers are normalised to canonical HTTP casing so
that they merge predictably with the default headers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote_plus


def objects_to_ids(value: Any) -> Any:
    """Replace objects exposing an ``id`` attribute by that id, recursively."""
    if isinstance(value, Mapping):
        return {k: objects_to_ids(v) for k, v in value.items()}
    if isinstance(value, tuple):
        # Multipart file parts are (filename, content, content_type) tuples.
        return tuple(objects_to_ids(v) for v in value)
    if isinstance(value, list):
        return [objects_to_ids(v) for v in value]
    if hasattr(value, "id") and not isinstance(value, (str, bytes, int, float)):
        return value.id
    return value


def url_encode(key: Any) -> str:
    # Brackets stay readable; SYSPRO accepts them unescaped.
    return quote_plus(str(key)).replace("%5B", "[").replace("%5D", "]")


def flatten_params(params: Mapping[str, Any], parent_key: Optional[str] = None) -> List[Tuple[str, Any]]:
    """Flatten nested mappings and lists into ``(key, value)`` pairs."""
    result: List[Tuple[str, Any]] = []
    for key, value in params.items():
        calculated_key = f"{parent_key}[{key}]" if parent_key else str(key)
        if isinstance(value, Mapping):
            result.extend(flatten_params(value, calculated_key))
        elif isinstance(value, (list, tuple)):
            result.extend(flatten_params_array(value, calculated_key))
        else:
            result.append((calculated_key, value))
    return result


def flatten_params_array(values: Any, calculated_key: str) -> List[Tuple[str, Any]]:
    result: List[Tuple[str, Any]] = []
    for i, elem in enumerate(values):
        if isinstance(elem, Mapping):
            result.extend(flatten_params(elem, f"{calculated_key}[{i}]"))
        elif isinstance(elem, (list, tuple)):
            result.extend(flatten_params_array(elem, f"{calculated_key}[{i}]"))
        else:
            result.append((f"{calculated_key}[]", elem))
    return result


def encode_parameters(params: Optional[Mapping[str, Any]]) -> str:
    """Encode ``params`` as an ``application/x-www-form-urlencoded`` string."""
    if not params:
        return ""
    return "&".join(
        f"{url_encode(key)}={url_encode('' if value is None else value)}"
        for key, value in flatten_params(params)
    )


def normalize_header(name: str) -> str:
    """``content_type`` / ``content-type`` -> ``Content-Type``."""
    parts = str(name).replace("_", "-").split("-")
    return "-".join(part[:1].upper() + part[1:].lower() for part in parts)


def normalize_headers(headers: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    if not headers:
        return {}
    return {normalize_header(k): str(v) for k, v in headers.items()}


__all__ = [
    "objects_to_ids",
    "url_encode",
    "flatten_params",
    "flatten_params_array",
    "encode_parameters",
    "normalize_header",
    "normalize_headers",
]
