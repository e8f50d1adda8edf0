"""Tests for rendering requests as curl commands, and reading them back."""

import pytest

from curlbridge.curl import build_request, parse_curl, shell_escape, to_curl
from curlbridge.models import Request


class TestShellEscape:
    def test_plain_text_unchanged(self):
        assert shell_escape("abc def") == "abc def"

    def test_single_quote(self):
        assert shell_escape("it's") == "it'\\''s"

    def test_quoted_value(self):
        assert shell_escape('it\'s "quoted"') == "it'\\''s \"quoted\""

    def test_multiple_quotes(self):
        assert shell_escape("''") == "'\\'''\\''"


class TestToCurl:
    def test_get_only(self):
        req = Request(url="https://x/y")
        assert to_curl(req) == "curl -X GET 'https://x/y'"

    def test_full_layout(self):
        req = Request(url="https://x/y", method="POST", headers={"A": "1"}, body="a=1")
        assert to_curl(req) == ("curl -X POST 'https://x/y' \\\n  -H 'A: 1' \\\n  -d 'a=1'")

    def test_header_value_with_quotes(self):
        req = Request(url="https://x", headers={"X-Note": 'it\'s "quoted"'})
        assert "-H 'X-Note: it'\\''s \"quoted\"'" in to_curl(req)

    def test_headers_in_mapping_order(self):
        req = Request(url="https://x", headers={"B": "2", "A": "1"})
        out = to_curl(req)
        assert out.index("'B: 2'") < out.index("'A: 1'")

    def test_empty_header_key_or_value_skipped(self):
        req = Request(url="https://x", headers={"": "v", "X-Empty": "", "X-A": "1"})
        out = to_curl(req)
        assert "X-Empty" not in out
        assert "': v'" not in out
        assert out.count("-H") == 1

    @pytest.mark.parametrize("method", ["GET", "DELETE", "HEAD", "OPTIONS"])
    def test_body_omitted_for_non_body_methods(self, method):
        req = Request(url="https://x", method=method, body="stale")
        assert "-d" not in to_curl(req)

    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH"])
    def test_body_included_for_body_methods(self, method):
        req = Request(url="https://x", method=method, body="a=1")
        assert to_curl(req).endswith("-d 'a=1'")

    def test_empty_body_omitted(self):
        assert "-d" not in to_curl(Request(url="https://x", method="POST"))

    def test_url_with_quote_escaped(self):
        req = Request(url="https://x/it's")
        assert to_curl(req) == "curl -X GET 'https://x/it'\\''s'"

    def test_dispatch_config_mapping(self):
        config = {
            "url": "https://x/items",
            "method": "put",
            "headers": {"Content-Type": "application/json"},
            "data": {"qty": 2},
        }
        out = to_curl(config)
        assert out.startswith("curl -X PUT 'https://x/items'")
        assert "-d '{\"qty\": 2}'" in out

    def test_dispatch_config_string_data(self):
        out = to_curl({"url": "https://x", "method": "POST", "data": "raw"})
        assert out.endswith("-d 'raw'")

    def test_dispatch_config_defaults(self):
        assert to_curl({"url": "https://x"}) == "curl -X GET 'https://x'"


class TestRoundTrip:
    @pytest.mark.parametrize(
        "req",
        [
            Request(url="https://x/y"),
            Request(
                url="https://api.example.com/v1/users?q=1&sort=name",
                method="POST",
                headers={
                    "Authorization": "Bearer {{token}}",
                    "X-Note": 'it\'s "quoted"',
                },
                body='{"name": "O\'Brien", "tags": ["a", "b"]}',
            ),
            Request(url="https://x/y", method="PUT", body="line one\nline two $HOME `cmd`"),
            Request(url="https://x/y", method="POST", body="line one \\\nline two"),
            Request(url="{{base}}/items/1", method="PATCH", headers={"A": "x:y:z"}, body="a=1"),
            Request(url="https://x/y", method="DELETE", headers={"X-Trace": "1"}),
            Request(url="https://x/y", method="HEAD"),
            Request(url="https://x/y", method="OPTIONS"),
        ],
        ids=[
            "get",
            "post-quotes",
            "put-multiline",
            "post-backslash-newline",
            "patch-colons",
            "delete",
            "head",
            "options",
        ],
    )
    def test_semantic_round_trip(self, req):
        back = build_request(parse_curl(to_curl(req)))
        assert back.method == req.method
        assert back.url == req.url
        assert back.headers == req.headers
        if req.method in ("POST", "PUT", "PATCH"):
            assert back.body == req.body
