"""Tests for the response formatting bridge."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from reauth.client.response import extract_response_data, format_api_response
from reauth.output import OutputManager, set_output


def _make_response(status_code: int = 200, **kwargs) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        request=httpx.Request("GET", "https://api.example.com/test"),
        **kwargs,
    )


@pytest.fixture
def mock_output() -> MagicMock:
    output = MagicMock(spec=OutputManager)
    set_output(output)
    return output


class TestFormatApiResponse:
    def test_json_body(self, mock_output: MagicMock) -> None:
        format_api_response(_make_response(json={"id": 1}))
        mock_output.info.assert_called_once_with("HTTP 200 OK")
        mock_output.format_response.assert_called_once_with({"id": 1}, "application/json")

    def test_headers_go_to_debug(self, mock_output: MagicMock) -> None:
        format_api_response(_make_response(headers={"X-Request-Id": "abc"}, text="hi"))
        debug_lines = [c.args[0] for c in mock_output.debug.call_args_list]
        assert "x-request-id: abc" in debug_lines

    def test_empty_body(self, mock_output: MagicMock) -> None:
        format_api_response(_make_response(204))
        mock_output.format_response.assert_not_called()

    def test_text_body_keeps_content_type(self, mock_output: MagicMock) -> None:
        format_api_response(_make_response(text="<p>hi</p>", headers={"Content-Type": "text/html"}))
        mock_output.format_response.assert_called_once_with("<p>hi</p>", "text/html")


class TestExtractResponseData:
    def test_json(self) -> None:
        assert extract_response_data(_make_response(json=[1, 2])) == [1, 2]

    def test_text(self) -> None:
        assert extract_response_data(_make_response(text="plain")) == "plain"

    def test_empty(self) -> None:
        assert extract_response_data(_make_response(content=b"")) is None
