"""curlbridge models - requests, environments, settings, history records."""

from __future__ import annotations

import datetime
import uuid
from typing import Any

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")
BODYLESS_METHODS = ("GET", "HEAD", "OPTIONS")
BODY_METHODS = ("POST", "PUT", "PATCH")

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def generate_id() -> str:
    return uuid.uuid4().hex


class Request:
    """A stored HTTP request. May hold unresolved {{var}} placeholders."""

    def __init__(
        self,
        id: str | None = None,
        name: str = "",
        url: str = "",
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: str = "",
        description: str = "",
    ):
        self._id = id or generate_id()
        self.name = name
        self.url = url
        self.method = (method or "GET").upper()
        self.headers: dict[str, str] = dict(headers) if headers else {}
        self.body = body or ""
        self.description = description or ""

    @property
    def id(self) -> str:
        return self._id

    def copy(self, **changes: Any) -> Request:
        """Return a new Request with the same id and the given fields replaced."""
        data = self.to_dict()
        data.update(changes)
        return Request.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "method": self.method,
            "headers": dict(self.headers),
            "body": self.body,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Request:
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            url=data.get("url") or "",
            method=data.get("method") or "GET",
            headers={str(k): str(v) for k, v in (data.get("headers") or {}).items()},
            body=data.get("body") or "",
            description=data.get("description") or "",
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Request):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Request(id={self.id!r}, method={self.method!r}, url={self.url!r})"


class EnvironmentVariable:
    def __init__(self, key: str, value: str = "", description: str = ""):
        self.key = key
        self.value = value
        self.description = description

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "value": self.value, "description": self.description}


class Environment:
    """A named bag of {{variable}} values. Read-only from the dispatcher's view."""

    def __init__(
        self,
        id: str | None = None,
        name: str = "",
        description: str = "",
        variables: dict[str, EnvironmentVariable] | None = None,
    ):
        self.id = id or generate_id()
        self.name = name
        self.description = description
        self.variables: dict[str, EnvironmentVariable] = dict(variables) if variables else {}

    def get_variable(self, key: str) -> EnvironmentVariable | None:
        return self.variables.get(key)

    def get_variable_value(self, key: str) -> str | None:
        var = self.variables.get(key)
        return var.value if var else None

    def set_variable(self, key: str, value: str, description: str = "") -> None:
        self.variables[key] = EnvironmentVariable(key, value, description)

    def remove_variable(self, key: str) -> None:
        self.variables.pop(key, None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "variables": {k: v.to_dict() for k, v in self.variables.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Environment:
        """Build from a record. Variable entries may be dicts or bare values."""
        env = cls(
            id=data.get("id"),
            name=data.get("name") or "",
            description=data.get("description") or "",
        )
        for key, raw in (data.get("variables") or {}).items():
            if isinstance(raw, dict):
                value = raw.get("value")
                env.set_variable(
                    str(key),
                    "" if value is None else str(value),
                    raw.get("description") or "",
                )
            else:
                env.set_variable(str(key), "" if raw is None else str(raw))
        return env

    def __repr__(self) -> str:
        return f"Environment(name={self.name!r}, variables={sorted(self.variables)!r})"


class Settings:
    """Request defaults applied under explicit request values at dispatch."""

    def __init__(
        self,
        timeout: int = 30000,
        follow_redirects: bool = True,
        ssl_verification: bool = True,
        default_headers: dict[str, str] | None = None,
        max_history_items: int = 50,
        max_redirects: int = 5,
    ):
        self.timeout = timeout  # milliseconds
        self.follow_redirects = follow_redirects
        self.ssl_verification = ssl_verification
        self.default_headers: dict[str, str] = (
            dict(DEFAULT_HEADERS) if default_headers is None else dict(default_headers)
        )
        self.max_history_items = max_history_items
        self.max_redirects = max_redirects

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Settings:
        """Accept both snake_case (YAML config) and camelCase (stored settings) keys."""
        data = data or {}

        def pick(snake: str, camel: str, default: Any) -> Any:
            if snake in data and data[snake] is not None:
                return data[snake]
            if camel in data and data[camel] is not None:
                return data[camel]
            return default

        headers = pick("default_headers", "defaultHeaders", None)
        return cls(
            timeout=int(pick("timeout", "timeout", 30000)),
            follow_redirects=bool(pick("follow_redirects", "followRedirects", True)),
            ssl_verification=bool(pick("ssl_verification", "sslVerification", True)),
            default_headers=(
                {str(k): str(v) for k, v in headers.items()} if headers is not None else None
            ),
            max_history_items=int(pick("max_history_items", "maxHistoryItems", 50)),
            max_redirects=int(pick("max_redirects", "maxRedirects", 5)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timeout": self.timeout,
            "follow_redirects": self.follow_redirects,
            "ssl_verification": self.ssl_verification,
            "default_headers": dict(self.default_headers),
            "max_history_items": self.max_history_items,
            "max_redirects": self.max_redirects,
        }


class ResponseSummary:
    """Outcome of one dispatch. status_code 0 means no server response."""

    def __init__(
        self,
        status: str = "",
        status_code: int = 0,
        headers: dict[str, str] | None = None,
        body: Any = None,
        response_time: float = 0,
    ):
        self.status = status
        self.status_code = status_code
        self.headers: dict[str, str] = headers or {}
        self.body = body
        self.response_time = response_time

    @property
    def ok(self) -> bool:
        return self.status_code != 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "statusCode": self.status_code,
            "headers": dict(self.headers),
            "body": self.body,
            "responseTime": self.response_time,
        }


class HistoryEntry:
    """One dispatch attempt: the request as sent plus what came back."""

    def __init__(
        self,
        request: Request,
        response: dict[str, Any] | None = None,
        timestamp: datetime.datetime | None = None,
        id: str | None = None,
    ):
        self.id = id or generate_id()
        self.request = request
        self.response = response
        self.timestamp = timestamp or datetime.datetime.now(datetime.timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "request": self.request.to_dict(),
            "timestamp": self.timestamp.isoformat(),
            "response": self.response,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryEntry:
        ts = data.get("timestamp")
        timestamp = datetime.datetime.fromisoformat(ts) if ts else None
        return cls(
            request=Request.from_dict(data.get("request") or {}),
            response=data.get("response"),
            timestamp=timestamp,
            id=data.get("id"),
        )
