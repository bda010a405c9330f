"""Tests for the loop marker and the copy-on-write message helpers."""

from __future__ import annotations

import httpx

from reauth.auth.marker import SKIP_HEADER, SKIP_VALUE, is_marked, mark, unmark
from reauth.messages import detach_response, rebuild_request, with_header, without_headers


def _request(**kwargs) -> httpx.Request:
    return httpx.Request(
        "POST",
        "https://api.example.com/v1/items",
        headers=kwargs.pop("headers", {"Accept": "application/json"}),
        content=kwargs.pop("content", b'{"a": 1}'),
        **kwargs,
    )


class TestMarker:
    def test_mark_adds_sentinel(self) -> None:
        marked = mark(_request())
        assert is_marked(marked)
        assert marked.headers[SKIP_HEADER] == SKIP_VALUE

    def test_mark_does_not_touch_original(self) -> None:
        original = _request()
        mark(original)
        assert not is_marked(original)

    def test_mark_twice_keeps_one_entry(self) -> None:
        marked = mark(mark(_request()))
        assert marked.headers.get_list(SKIP_HEADER) == [SKIP_VALUE]

    def test_header_name_is_case_insensitive(self) -> None:
        request = _request(headers={"x-reauth-skip": "true"})
        assert is_marked(request)
        assert not is_marked(unmark(request))

    def test_unmark_keeps_everything_else(self) -> None:
        original = _request()
        restored = unmark(mark(original))
        assert not is_marked(restored)
        assert restored.method == original.method
        assert restored.url == original.url
        assert restored.headers["accept"] == "application/json"
        assert restored.read() == b'{"a": 1}'

    def test_unmark_unmarked_request_is_harmless(self) -> None:
        assert not is_marked(unmark(_request()))


class TestMessages:
    def test_rebuild_preserves_extensions(self) -> None:
        request = _request(extensions={"timeout": {"connect": 1.0}})
        copy = rebuild_request(request)
        assert copy is not request
        assert copy.extensions["timeout"] == {"connect": 1.0}

    def test_with_header_replaces_all_entries(self) -> None:
        request = _request(headers=[("X-A", "1"), ("X-A", "2")])
        assert with_header(request, "x-a", "3").headers.get_list("X-A") == ["3"]

    def test_without_headers_missing_name(self) -> None:
        copy = without_headers(_request(), ["X-Missing"])
        assert copy.headers["accept"] == "application/json"

    def test_detach_response_drops_framing_headers(self) -> None:
        response = httpx.Response(
            200,
            headers=[("Content-Length", "999"), ("X-Keep", "yes")],
            content=b"payload",
        )
        detached = detach_response(response, _request())
        assert detached.headers["x-keep"] == "yes"
        assert detached.headers["content-length"] == "7"
        assert detached.content == b"payload"
        assert detached.request.url.path == "/v1/items"

    def test_detach_response_without_request(self) -> None:
        detached = detach_response(httpx.Response(204))
        assert detached.status_code == 204
