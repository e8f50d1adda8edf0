"""curlbridge executor - default HTTP transport built on requests."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import requests

from curlbridge.errors import TransportError

logger = logging.getLogger("curlbridge.executor")

_DNS_MARKERS = (
    "NameResolutionError",
    "Failed to resolve",
    "Name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "Temporary failure in name resolution",
)
_REFUSED_MARKERS = ("Connection refused", "Errno 111", "Errno 61", "ECONNREFUSED")


class TransportResponse:
    """What a transport hands back for one HTTP exchange."""

    def __init__(self):
        self.status_code: int = 0
        self.status_text: str = ""
        self.headers: dict[str, str] = {}
        self.body: Any = None  # parsed JSON or raw text
        self.elapsed_ms: float = 0
        self.raw_text: str = ""


def classify_connection_error(exc: Exception) -> str:
    text = str(exc)
    if any(marker in text for marker in _DNS_MARKERS):
        return "host_not_found"
    if any(marker in text for marker in _REFUSED_MARKERS):
        return "connection_refused"
    return "network"


def send(descriptor: dict[str, Any]) -> TransportResponse:
    """Send one request described by a dispatch descriptor.

    descriptor keys: url, method, headers, data (optional), timeout (ms),
    follow_redirects, max_redirects, verify.

    - Attempts to parse response as JSON, falls back to raw text
    - Captures timing
    - Raises TransportError(kind=...) when no response was received
    """
    method = (descriptor.get("method") or "GET").upper()
    url = descriptor.get("url") or ""
    timeout_ms = descriptor.get("timeout") or 30000
    timeout = timeout_ms / 1000
    data = descriptor.get("data")

    session = requests.Session()
    session.max_redirects = descriptor.get("max_redirects", 5) or 0
    try:
        start = time.monotonic()
        resp = session.request(
            method=method,
            url=url,
            headers=descriptor.get("headers") or {},
            data=data.encode("utf-8") if data else None,
            timeout=timeout,
            allow_redirects=bool(descriptor.get("follow_redirects", True)),
            verify=descriptor.get("verify", True),
        )
        elapsed_ms = (time.monotonic() - start) * 1000
    except requests.exceptions.Timeout as e:
        raise TransportError(f"Request timed out after {timeout:g}s", "timeout") from e
    except requests.exceptions.ConnectionError as e:
        raise TransportError(f"Connection error: {e}", classify_connection_error(e)) from e
    except (
        requests.exceptions.MissingSchema,
        requests.exceptions.InvalidSchema,
        requests.exceptions.InvalidURL,
        requests.exceptions.URLRequired,
    ) as e:
        raise TransportError(f"Invalid URL: {e}", "invalid_url") from e
    except requests.exceptions.RequestException as e:
        raise TransportError(f"Request failed: {e}", "network") from e
    finally:
        session.close()

    result = TransportResponse()
    result.elapsed_ms = elapsed_ms
    result.status_code = resp.status_code
    result.status_text = resp.reason or ""
    result.headers = dict(resp.headers)
    result.raw_text = resp.text

    try:
        result.body = resp.json()
    except (json.JSONDecodeError, ValueError):
        result.body = resp.text

    logger.debug("%s %s -> %s (%.0fms)", method, url, result.status_code, elapsed_ms)
    return result
