"""
HTTP helpers.

This module centralizes the minimal HTTP client logic used by the HR backend client.

Design goals:
- Small surface area (a single JSON request function).
- Deterministic defaults (timeout + User-Agent + JSON accept headers).
- Raise on non-2xx so callers can decide how to fail.
"""

from __future__ import annotations

from typing import Any

import httpx


DEFAULT_USER_AGENT = "geoattend/0.1.0 (+https://local)"
DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def request_json(
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    json: Any = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> Any:
    """Send a request and return the decoded JSON response (None for empty bodies).

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    request_headers = {"User-Agent": DEFAULT_USER_AGENT, **DEFAULT_HEADERS}
    if headers:
        request_headers.update(headers)

    with httpx.Client(timeout=timeout_seconds) as client:
        resp = client.request(method, url, params=params, json=json, headers=request_headers)
        resp.raise_for_status()
        if not resp.content:
            return None
        return resp.json()
