"""curlbridge templating - {{variable}} substitution against an Environment."""

from __future__ import annotations

import re
from typing import Any

from curlbridge.models import Environment, Request

PLACEHOLDER_RE = re.compile(r"\{\{(.+?)\}\}")


class TemplateResult:
    """Substituted text plus the placeholder names that did and didn't resolve."""

    def __init__(self, text: str, resolved: list[str], unresolved: list[str]):
        self.text = text
        self.resolved = resolved
        self.unresolved = unresolved

    def __repr__(self) -> str:
        return (
            f"TemplateResult(text={self.text!r}, resolved={self.resolved!r}, "
            f"unresolved={self.unresolved!r})"
        )


def _lookup(name: str, env: Environment | None) -> str | None:
    if env is None:
        return None
    return env.get_variable_value(name) or None


def substitute(text: str, env: Environment | None) -> TemplateResult:
    """Replace {{name}} spans whose trimmed name has a non-empty value in env.

    Spans without a value are left untouched. Never raises.
    """
    if not isinstance(text, str) or not text:
        return TemplateResult(text, [], [])

    resolved: list[str] = []
    unresolved: list[str] = []

    def _replace(m: re.Match) -> str:
        name = m.group(1).strip()
        value = _lookup(name, env)
        if value is None:
            unresolved.append(name)
            return m.group(0)
        resolved.append(name)
        return value

    return TemplateResult(PLACEHOLDER_RE.sub(_replace, text), resolved, unresolved)


def resolve(text: Any, env: Environment | None) -> Any:
    """Resolve placeholders in text. Non-string input comes back unchanged."""
    if not isinstance(text, str):
        return text
    return substitute(text, env).text


def find_unresolved(text: Any, env: Environment | None) -> list[str]:
    """Names of placeholders in text that env cannot fill. Read-only."""
    if not isinstance(text, str) or not text:
        return []
    return [
        m.group(1).strip()
        for m in PLACEHOLDER_RE.finditer(text)
        if _lookup(m.group(1).strip(), env) is None
    ]


def resolve_request(request: Request, env: Environment | None) -> Request:
    """Copy of request with url, header values and body resolved.

    Header keys are not substituted. The given request is not modified.
    """
    return request.copy(
        url=resolve(request.url, env),
        headers={k: resolve(v, env) for k, v in request.headers.items()},
        body=resolve(request.body, env),
    )


def unresolved_variables(request: Request, env: Environment | None) -> list[str]:
    """Unique unresolved names across url, headers (keys and values) and body."""
    names: list[str] = list(find_unresolved(request.url, env))
    for key, value in request.headers.items():
        names.extend(find_unresolved(key, env))
        names.extend(find_unresolved(value, env))
    names.extend(find_unresolved(request.body, env))
    return list(dict.fromkeys(names))
