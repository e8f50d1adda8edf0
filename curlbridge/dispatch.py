"""curlbridge dispatch - settings defaults, substitution, sending, history.

Pipeline for one dispatch (no retries):
  validate -> apply_defaults -> resolve_request -> normalize_url
  -> strip_unsafe_headers -> transport -> history
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable
from urllib.parse import urlsplit

from curlbridge import executor
from curlbridge.errors import TransportError, ValidationError
from curlbridge.history import HistoryStore
from curlbridge.models import (
    BODYLESS_METHODS,
    HTTP_METHODS,
    Environment,
    HistoryEntry,
    Request,
    ResponseSummary,
    Settings,
)
from curlbridge.templating import resolve_request, unresolved_variables

UNSAFE_HEADERS = (
    "host",
    "connection",
    "content-length",
    "sec-ch-ua",
    "sec-ch-ua-mobile",
    "sec-ch-ua-platform",
    "sec-fetch-dest",
    "sec-fetch-mode",
    "sec-fetch-site",
)

ERROR_MESSAGES = {
    "connection_refused": "Unable to connect to server. Please check the URL and try again.",
    "host_not_found": "Host not found. Please verify the URL is correct.",
    "timeout": "Request timed out. The server did not respond in time.",
    "network": "Network error. Please check your internet connection.",
    "invalid_url": "Invalid URL. Please check the URL format.",
}
UNEXPECTED_ERROR = "An unexpected error occurred."

URL_SCHEMES = ("http", "https")
HISTORY_TEMPLATED_HEADERS = ("authorization", "proxy-authorization")

_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*)://")
_PARTIAL_SCHEME_RE = re.compile(r"^https?:/{0,2}", re.IGNORECASE)


def validate_request(request: Request) -> None:
    """Raise ValidationError if the request cannot be sent."""
    if not request.url or not request.url.strip():
        raise ValidationError("URL cannot be empty")
    if request.method not in HTTP_METHODS:
        raise ValidationError(
            f"Unsupported method '{request.method}'. Use one of: {', '.join(HTTP_METHODS)}",
        )


def normalize_url(url: str) -> str:
    """Prefix https:// when no scheme is given; reject other schemes and hostless URLs."""
    url = url.strip()
    match = _SCHEME_RE.match(url)
    if match:
        scheme = match.group(1)
        if scheme.lower() not in URL_SCHEMES:
            raise ValidationError(f"Unsupported URL scheme '{scheme}'. Use http or https")
    else:
        url = "https://" + _PARTIAL_SCHEME_RE.sub("", url)
    try:
        host = urlsplit(url).netloc
    except ValueError:
        host = ""
    if not host:
        raise ValidationError(f"Invalid URL '{url}'")
    return url


def merge_headers(defaults: dict[str, str], explicit: dict[str, str]) -> dict[str, str]:
    """Default headers under explicit ones; an explicit name of any casing wins."""
    explicit_names = {k.lower() for k in explicit}
    merged = {k: v for k, v in defaults.items() if k.lower() not in explicit_names}
    merged.update(explicit)
    return merged


def apply_defaults(request: Request, settings: Settings) -> tuple[Request, dict[str, Any]]:
    """Return (request with default headers merged, transport options)."""
    merged = request.copy(headers=merge_headers(settings.default_headers, request.headers))
    options = {
        "timeout": settings.timeout,
        "follow_redirects": settings.follow_redirects,
        "max_redirects": settings.max_redirects if settings.follow_redirects else 0,
        "verify": settings.ssl_verification,
    }
    return merged, options


def strip_unsafe_headers(headers: dict[str, str]) -> tuple[dict[str, str], list[str]]:
    """Drop headers a client may not set. Returns (kept, removed names)."""
    kept: dict[str, str] = {}
    removed: list[str] = []
    for key, value in headers.items():
        if key.lower() in UNSAFE_HEADERS:
            removed.append(key)
        else:
            kept[key] = value
    return kept, removed


def friendly_error_message(exc: BaseException) -> str:
    """Map a transport failure onto the fixed user-facing message table."""
    if isinstance(exc, TransportError):
        return ERROR_MESSAGES.get(exc.kind, ERROR_MESSAGES["network"])
    return UNEXPECTED_ERROR


def build_descriptor(request: Request, options: dict[str, Any]) -> dict[str, Any]:
    descriptor: dict[str, Any] = {
        "url": request.url,
        "method": request.method,
        "headers": dict(request.headers),
        **options,
    }
    if request.method not in BODYLESS_METHODS and request.body:
        descriptor["data"] = request.body
    return descriptor


def history_snapshot(sent: Request, templated_headers: dict[str, str]) -> Request:
    """The request as sent, with credential headers kept in their {{template}} form."""
    headers = {
        key: templated_headers.get(key, value)
        if key.lower() in HISTORY_TEMPLATED_HEADERS
        else value
        for key, value in sent.headers.items()
    }
    return sent.copy(headers=headers)


class Dispatcher:
    """Sends requests through an injected transport and records every attempt.

    transport: callable(descriptor) -> response object with status_code,
    status_text, headers, body, elapsed_ms. Defaults to executor.send.
    """

    def __init__(
        self,
        transport: Callable[[dict[str, Any]], Any] | None = None,
        history: HistoryStore | None = None,
        logger: logging.Logger | None = None,
    ):
        self.transport = transport
        self.history = history if history is not None else HistoryStore()
        self.logger = logger or logging.getLogger("curlbridge.dispatch")

    def dispatch(
        self,
        request: Request,
        settings: Settings | None = None,
        env: Environment | None = None,
    ) -> ResponseSummary:
        settings = settings or Settings()

        try:
            validate_request(request)
        except ValidationError as e:
            return self._rejected(request, e)

        prepared, options = apply_defaults(request, settings)
        templated_headers = dict(prepared.headers)

        missing = unresolved_variables(prepared, env)
        if missing:
            self.logger.warning("Unresolved variables: %s", ", ".join(missing))
        prepared = resolve_request(prepared, env)

        try:
            url = normalize_url(prepared.url)
        except ValidationError as e:
            return self._rejected(request, e)
        if url != prepared.url:
            self.logger.debug("No scheme in %r, sending to %s", prepared.url, url)

        headers, removed = strip_unsafe_headers(prepared.headers)
        if removed:
            self.logger.debug("Removed unsafe headers: %s", ", ".join(removed))
        prepared = prepared.copy(url=url, headers=headers)
        if prepared.method in BODYLESS_METHODS:
            prepared = prepared.copy(body="")

        descriptor = build_descriptor(prepared, options)
        send = self.transport or executor.send
        snapshot = history_snapshot(prepared, templated_headers)

        start = time.monotonic()
        try:
            result = send(descriptor)
        except TransportError as e:
            elapsed = (time.monotonic() - start) * 1000
            if e.response is not None:
                return self._record_response(snapshot, e.response, elapsed)
            if e.kind == "invalid_url":
                return self._rejected(request, ValidationError(ERROR_MESSAGES["invalid_url"]))
            return self._record_failure(snapshot, e, elapsed)
        except Exception as e:
            elapsed = (time.monotonic() - start) * 1000
            return self._record_failure(snapshot, e, elapsed)

        elapsed = (time.monotonic() - start) * 1000
        return self._record_response(snapshot, result, elapsed)

    def _rejected(self, request: Request, exc: ValidationError) -> ResponseSummary:
        self.logger.warning("Request %s not sent: %s", request.id, exc)
        return ResponseSummary(status=str(exc), status_code=0, body={"error": str(exc)})

    def _record_response(self, sent: Request, result: Any, elapsed: float) -> ResponseSummary:
        summary = ResponseSummary(
            status=getattr(result, "status_text", "") or "",
            status_code=getattr(result, "status_code", 0) or 0,
            headers=dict(getattr(result, "headers", None) or {}),
            body=getattr(result, "body", None),
            response_time=getattr(result, "elapsed_ms", 0) or elapsed,
        )
        self.history.add(
            HistoryEntry(
                sent,
                {
                    "status": summary.status_code,
                    "statusText": summary.status,
                    "headers": summary.headers,
                    "data": summary.body,
                    "time": summary.response_time,
                },
            ),
        )
        return summary

    def _record_failure(self, sent: Request, exc: BaseException, elapsed: float) -> ResponseSummary:
        message = friendly_error_message(exc)
        self.logger.error("%s %s failed: %s (%s)", sent.method, sent.url, message, exc)
        self.history.add(
            HistoryEntry(
                sent,
                {
                    "status": 0,
                    "statusText": "Error",
                    "headers": {},
                    "data": {"error": message},
                    "time": elapsed,
                },
            ),
        )
        return ResponseSummary(
            status=message,
            status_code=0,
            headers={},
            body={"error": message},
            response_time=elapsed,
        )
