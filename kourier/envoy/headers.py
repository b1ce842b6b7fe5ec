"""Header options added to requests by routes and clusters."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

OVERWRITE_IF_EXISTS_OR_ADD = "OVERWRITE_IF_EXISTS_OR_ADD"


def headers_to_add(headers: Mapping[str, str] | None) -> list[dict[str, Any]]:
    """Turn a mapping of headers into header value options that overwrite."""
    if not headers:
        return []
    return [
        {
            "header": {"key": name, "value": value},
            # Headers are set rather than appended.
            "append_action": OVERWRITE_IF_EXISTS_OR_ADD,
        }
        for name, value in headers.items()
    ]