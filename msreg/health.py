from __future__ import annotations

import time

import httpx


def check_route(
    url: str,
    host: str | None = None,
    timeout_s: float = 2.0,
    transport: httpx.BaseTransport | None = None,
) -> tuple[bool, str, float | None]:
    """Call a public path through the gateway proxy.

    Kong answers 404 when no API matches the Host/path and 502/503 when the upstream
    has no live target, so any non-2xx status counts as a failed route.
    Returns (is_routed, message, latency_ms).
    """
    headers = {"Host": host} if host else {}
    start = time.time()
    try:
        with httpx.Client(timeout=timeout_s, follow_redirects=False, transport=transport) as client:
            resp = client.get(url, headers=headers)
        latency_ms = round((time.time() - start) * 1000.0, 2)
        if not resp.is_success:
            return False, f"HTTP {resp.status_code}", latency_ms
        return True, "Routed", latency_ms
    except httpx.TimeoutException:
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return False, "No response", latency_ms
    except httpx.HTTPError as e:
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return False, f"Error: {type(e).__name__}: {e}", latency_ms
