"""Tests for {{variable}} substitution and unresolved-placeholder detection."""

from curlbridge.models import Environment, Request
from curlbridge.templating import (
    find_unresolved,
    resolve,
    resolve_request,
    substitute,
    unresolved_variables,
)


def _env(**values):
    env = Environment(name="test")
    for k, v in values.items():
        env.set_variable(k, v)
    return env


class TestResolve:
    def test_all_resolved(self, api_env):
        assert resolve("https://{{host}}/{{path}}", api_env) == "https://api.x.com/v1"

    def test_missing_variable_left_verbatim(self):
        env = _env(host="api.x.com")
        assert resolve("https://{{host}}/{{path}}", env) == "https://api.x.com/{{path}}"

    def test_no_environment(self):
        assert resolve("https://{{host}}/", None) == "https://{{host}}/"

    def test_name_is_trimmed(self, api_env):
        assert resolve("{{ host }}", api_env) == "api.x.com"

    def test_adjacent_placeholders(self):
        assert resolve("{{a}}{{b}}", _env(a="1", b="2")) == "12"

    def test_empty_value_treated_as_missing(self):
        assert resolve("x={{blank}}", _env(blank="")) == "x={{blank}}"

    def test_repeated_placeholder(self):
        assert resolve("{{a}}-{{a}}", _env(a="z")) == "z-z"

    def test_value_containing_braces_not_rescanned(self):
        assert resolve("{{a}}", _env(a="{{b}}", b="no")) == "{{b}}"

    def test_non_string_passthrough(self, api_env):
        assert resolve(None, api_env) is None
        assert resolve(42, api_env) == 42

    def test_text_without_placeholders(self, api_env):
        assert resolve("plain", api_env) == "plain"

    def test_unclosed_placeholder_untouched(self, api_env):
        assert resolve("{{host", api_env) == "{{host"

    def test_env_is_not_modified(self, api_env):
        before = api_env.to_dict()
        resolve("{{host}} {{missing}}", api_env)
        assert api_env.to_dict() == before


class TestSubstitute:
    def test_reports_resolved_and_unresolved(self):
        result = substitute("{{a}}/{{b}}/{{a}}", _env(a="1"))
        assert result.text == "1/{{b}}/1"
        assert result.resolved == ["a", "a"]
        assert result.unresolved == ["b"]

    def test_empty_text(self, api_env):
        result = substitute("", api_env)
        assert result.text == ""
        assert result.resolved == []
        assert result.unresolved == []


class TestFindUnresolved:
    def test_no_environment_reports_everything(self):
        assert find_unresolved("{{a}} {{ b }}", None) == ["a", "b"]

    def test_only_missing_reported(self, api_env):
        assert find_unresolved("{{host}}/{{nope}}", api_env) == ["nope"]

    def test_empty_and_non_string(self, api_env):
        assert find_unresolved("", api_env) == []
        assert find_unresolved(None, api_env) == []


class TestResolveRequest:
    def test_url_header_values_and_body(self, api_env):
        req = Request(
            url="https://{{host}}/{{path}}/users",
            method="POST",
            headers={"Authorization": "Bearer {{token}}", "X-{{path}}": "1"},
            body='{"host": "{{host}}"}',
        )
        resolved = resolve_request(req, api_env)
        assert resolved.url == "https://api.x.com/v1/users"
        assert resolved.headers == {"Authorization": "Bearer s3cret", "X-{{path}}": "1"}
        assert resolved.body == '{"host": "api.x.com"}'
        assert resolved.id == req.id

    def test_stored_request_keeps_placeholders(self, api_env):
        req = Request(url="https://{{host}}/", headers={"A": "{{token}}"}, body="{{path}}")
        resolve_request(req, api_env)
        assert req.url == "https://{{host}}/"
        assert req.headers == {"A": "{{token}}"}
        assert req.body == "{{path}}"


class TestUnresolvedVariables:
    def test_collects_unique_names_in_order(self):
        req = Request(
            url="https://{{host}}/{{path}}",
            headers={"{{hdr}}": "{{token}}", "B": "{{host}}"},
            body="{{path}} {{extra}}",
        )
        env = _env(path="v1")
        assert unresolved_variables(req, env) == ["host", "hdr", "token", "extra"]

    def test_nothing_missing(self, api_env):
        req = Request(url="https://{{host}}/{{path}}")
        assert unresolved_variables(req, api_env) == []
