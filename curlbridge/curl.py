"""curlbridge curl - cURL command import and export.

Import path:  tokenize -> interpret (scan_flags + apply_body_inference)
              -> build_request
Export path:  to_curl
"""

from __future__ import annotations

import json
import logging
import shlex
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import urlsplit

from curlbridge.models import BODY_METHODS, Request

logger = logging.getLogger("curlbridge.curl")

METHOD_FLAGS = ("-X", "--request")
HEADER_FLAGS = ("-H", "--header")
DATA_FLAGS = ("-d", "--data", "--data-raw", "--data-binary")

IMPORTED_NAME = "Imported Request"
IMPORTED_DESCRIPTION = "Imported from cURL"


# ── Tokenizer ────────────────────────────────────────────────────────────


def _fold_continuations(command: str) -> str:
    """Turn unquoted backslash-newline pairs into spaces; quoted text is kept."""
    out: list[str] = []
    quote = None
    i = 0
    while i < len(command):
        c = command[i]
        if quote == "'":
            if c == "'":
                quote = None
            out.append(c)
            i += 1
            continue
        if c == "\\":
            newline = next((nl for nl in ("\n", "\r\n") if command.startswith(nl, i + 1)), None)
            if quote is None and newline:
                out.append(" ")
                i += 1 + len(newline)
            else:
                out.append(command[i : i + 2])
                i += 2
            continue
        if quote is None and c in "'\"":
            quote = c
        elif c == quote:
            quote = None
        out.append(c)
        i += 1
    return "".join(out)


def tokenize(command: str) -> list[str]:
    """Split a shell-style command into words.

    Quotes are honored and removed; adjacent quoted/unquoted fragments join
    into one word like a POSIX shell does, so 'it'\\''s' reads as it's.
    Unquoted line continuations are folded into spaces. An unterminated quote is
    captured to the end of the string. Never raises.
    """
    if not command or not command.strip():
        return []

    cmd = _fold_continuations(command).strip()

    try:
        return shlex.split(cmd)
    except ValueError:
        pass

    # Unterminated quote or trailing escape: close it and retry
    for closer in ("'", '"'):
        try:
            return shlex.split(cmd + closer)
        except ValueError:
            continue

    return cmd.split()


# ── Flag interpreter ─────────────────────────────────────────────────────


class CurlFlags:
    """Raw flag values collected by a single scan, before any inference."""

    def __init__(self):
        self.url: str | None = None
        self.method: str | None = None
        self.headers: dict[str, str] = {}
        self.data: list[str] = []

    @property
    def method_explicit(self) -> bool:
        return self.method is not None


class ParsedCurl:
    """Structured result of interpreting a curl command.

    url is None when the command named no URL; body is None when no data
    flag was given.
    """

    def __init__(
        self,
        url: str | None = None,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: str | None = None,
        method_explicit: bool = False,
    ):
        self.url = url
        self.method = method
        self.headers: dict[str, str] = headers or {}
        self.body = body
        self.method_explicit = method_explicit

    @property
    def has_url(self) -> bool:
        return bool(self.url)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url or "",
            "method": self.method,
            "headers": dict(self.headers),
        }
        if self.body is not None:
            data["body"] = self.body
        return data

    def __repr__(self) -> str:
        return f"ParsedCurl({self.to_dict()!r})"


def scan_flags(tokens: Sequence[str]) -> CurlFlags:
    """Walk tokens[1:] once, sorting each into flag, flag argument, or URL."""
    flags = CurlFlags()
    consumed: set[int] = set()

    for i in range(1, len(tokens)):
        if i in consumed:
            continue
        tok = tokens[i]
        has_arg = i + 1 < len(tokens)

        if tok in METHOD_FLAGS and has_arg:
            flags.method = tokens[i + 1].upper()
            consumed.add(i + 1)
        elif tok in HEADER_FLAGS and has_arg:
            header = tokens[i + 1]
            colon = header.find(":")
            if colon != -1:
                key = header[:colon].strip()
                val = header[colon + 1 :].strip()
                flags.headers[key] = val
            consumed.add(i + 1)
        elif tok in DATA_FLAGS and has_arg:
            flags.data.append(tokens[i + 1])
            consumed.add(i + 1)
        elif not tok.startswith("-") and tok != "curl":
            if flags.url is None:
                flags.url = tok
        # Unknown flags are skipped without consuming an argument

    return flags


def apply_body_inference(flags: CurlFlags) -> ParsedCurl:
    """Join data fragments with '&'; promote to POST only if no -X was given."""
    method = flags.method or "GET"
    body = None
    if flags.data:
        body = "&".join(flags.data)
        if not flags.method_explicit and method == "GET":
            method = "POST"
    return ParsedCurl(
        url=flags.url,
        method=method,
        headers=dict(flags.headers),
        body=body,
        method_explicit=flags.method_explicit,
    )


def interpret(tokens: Sequence[str]) -> ParsedCurl | None:
    """Interpret curl tokens. Returns None if the first token is not 'curl'."""
    if not tokens or tokens[0].lower() != "curl":
        return None
    parsed = apply_body_inference(scan_flags(tokens))
    logger.debug("Parsed curl command: %s", parsed.to_dict())
    return parsed


def parse_curl(command: str) -> ParsedCurl | None:
    return interpret(tokenize(command))


# ── Request builder ──────────────────────────────────────────────────────


def derive_name(url: str | None) -> str:
    """Last non-empty path segment of url, or the import placeholder."""
    if not url:
        return IMPORTED_NAME
    try:
        path = urlsplit(url).path
    except ValueError:
        path = url
    segments = [s for s in path.split("/") if s]
    return segments[-1] if segments else IMPORTED_NAME


def build_request(parsed: ParsedCurl) -> Request:
    """Turn a ParsedCurl into a new Request. No validation happens here."""
    return Request(
        name=derive_name(parsed.url),
        url=parsed.url or "",
        method=parsed.method,
        headers=dict(parsed.headers),
        body=parsed.body or "",
        description=IMPORTED_DESCRIPTION,
    )


def import_curl(command: str) -> Request | None:
    parsed = parse_curl(command)
    if parsed is None:
        return None
    return build_request(parsed)


# ── Serializer ───────────────────────────────────────────────────────────


def shell_escape(value: str) -> str:
    """Make value safe to place between single quotes in a POSIX shell."""
    return value.replace("'", "'\\''")


def _request_fields(request_like: Any) -> tuple[str, str, dict, str]:
    """Pull (url, method, headers, body) from a Request or a dispatch config."""
    if isinstance(request_like, Mapping):
        url = request_like.get("url") or ""
        method = (request_like.get("method") or "GET").upper()
        headers = request_like.get("headers") or {}
        raw = request_like.get("body")
        if raw is None:
            raw = request_like.get("data")
        if raw is None:
            body = ""
        elif isinstance(raw, str):
            body = raw
        elif isinstance(raw, bytes):
            body = raw.decode("utf-8", errors="replace")
        else:
            try:
                body = json.dumps(raw)
            except (TypeError, ValueError):
                body = str(raw)
        return url, method, headers, body

    return (
        request_like.url or "",
        (request_like.method or "GET").upper(),
        request_like.headers or {},
        request_like.body or "",
    )


def to_curl(request_like: Any) -> str:
    """Render a Request (or {url, method, headers, data} mapping) as curl."""
    url, method, headers, body = _request_fields(request_like)

    cmd = f"curl -X {method} '{shell_escape(url)}'"

    for key, value in headers.items():
        if key and value:
            cmd += f" \\\n  -H '{shell_escape(str(key))}: {shell_escape(str(value))}'"

    if body and method in BODY_METHODS:
        cmd += f" \\\n  -d '{shell_escape(body)}'"

    return cmd
