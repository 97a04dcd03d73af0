"""Response error extraction for load test observability.

Parses commerce API error responses into human-readable messages. Every
failure the API renders has the shape
`{"success": false, "message": "...", "errorKind": "..."}`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from an API error response.

    Returns a compact string suitable for Locust failure messages and log lines.
    Gracefully handles unparseable bodies and missing fields.
    """
    try:
        body = response.json()
    except ValueError:
        # Not JSON, return raw text truncated
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if isinstance(body, dict) and "errorKind" in body:
        return f"{body['errorKind']}: {body.get('message', '')}"

    # Unknown shape, stringify and truncate
    return str(body)[:300]


def error_kind(response: Response) -> str | None:
    try:
        return response.json().get("errorKind")
    except (ValueError, AttributeError):
        return None
