"""
HTTP helpers.

This module centralizes the minimal HTTP client logic used by the route provider and
the hazard feed client.

Design goals:
- Small surface area (async GET JSON).
- Deterministic defaults (timeout + User-Agent).
- Raise on non-2xx so callers can decide how to fail (providers map these to
  retryable routing errors).
"""

from __future__ import annotations

from typing import Any

import httpx


DEFAULT_USER_AGENT = "roadguard/0.1.0 (+https://local)"


def _headers(extra: dict[str, str] | None) -> dict[str, str]:
    request_headers = {"User-Agent": DEFAULT_USER_AGENT}
    if extra:
        request_headers.update(extra)
    return request_headers


async def aget_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> Any:
    """GET `url` on the event loop and return the decoded JSON response.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    async with httpx.AsyncClient(timeout=timeout_seconds) as client:
        resp = await client.get(url, params=params, headers=_headers(headers))
        resp.raise_for_status()
        return resp.json()
