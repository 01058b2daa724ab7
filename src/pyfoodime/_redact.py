"""Helpers for safe debug logging.

pyfoodime handles partner credentials, session nonces and customer
contact details. This module redacts those fields before payloads are
emitted in DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

REDACTED = "<redacted>"

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "nonce",
        "x-wp-nonce",
        "authorization",
        "cookie",
        "set-cookie",
        "customer_phone",
    }
)

# Keys ending in one of these are secrets too (``session_token``, ``user_password``).
_SENSITIVE_SUFFIXES = ("_token", "_password", "_nonce")

_MAX_DEPTH = 20


def is_sensitive_key(key: object) -> bool:
    name = str(key).lower()
    return name in _SENSITIVE_KEYS or name.endswith(_SENSITIVE_SUFFIXES)


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Mappings keep their keys with sensitive values replaced, sequences are
    walked, long strings are truncated and anything else is ``repr``'d.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    nested = _depth + 1
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if is_sensitive_key(key) else redact_for_log(item, max_string=max_string, _depth=nested)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [redact_for_log(item, max_string=max_string, _depth=nested) for item in value]
    return repr(value)
