"""Tests for the OpenRouter client against a stubbed HTTP layer."""

import json
from unittest.mock import MagicMock, patch

import requests

from _pr_review_agent.review_config import ReviewConfig
from _pr_review_agent.stage_4_openrouter_review import OPENROUTER_URL, run_openrouter_review


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_config(**overrides) -> ReviewConfig:
    values = {"api_key": "sk-test", "model": "test/model", "repo_full_name": "octo/repo"}
    values.update(overrides)
    return ReviewConfig(**values)


def _http_response(body) -> MagicMock:
    resp = MagicMock()
    resp.text = body if isinstance(body, str) else json.dumps(body)
    return resp


def _completion(content) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


POST = "_pr_review_agent.stage_4_openrouter_review.requests.post"


# ---------------------------------------------------------------------------
# Success path
# ---------------------------------------------------------------------------


class TestSuccess:
    def test_returns_message_content(self) -> None:
        with patch(POST, return_value=_http_response(_completion('{"review": "ok"}'))):
            result = run_openrouter_review("prompt", _make_config())

        assert result["success"] is True
        assert result["content"] == '{"review": "ok"}'
        assert result["error"] is None

    def test_request_shape(self) -> None:
        config = _make_config(temperature=0.3, max_tokens=123)

        with patch(POST, return_value=_http_response(_completion("x"))) as post:
            run_openrouter_review("review this", config)

        args, kwargs = post.call_args
        assert args[0] == OPENROUTER_URL
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["headers"]["HTTP-Referer"] == "https://github.com/octo/repo"
        assert kwargs["json"] == {
            "model": "test/model",
            "messages": [{"role": "user", "content": "review this"}],
            "temperature": 0.3,
            "max_tokens": 123,
        }

    def test_referer_defaults_without_repo(self) -> None:
        with patch(POST, return_value=_http_response(_completion("x"))) as post:
            run_openrouter_review("p", _make_config(repo_full_name=None))

        assert post.call_args.kwargs["headers"]["HTTP-Referer"] == "https://github.com/unknown/repo"

    def test_empty_string_content_is_success(self) -> None:
        with patch(POST, return_value=_http_response(_completion(""))):
            result = run_openrouter_review("p", _make_config())

        assert result["success"] is True
        assert result["content"] == ""

    def test_null_content_is_an_api_error(self) -> None:
        with patch(POST, return_value=_http_response(_completion(None))):
            result = run_openrouter_review("p", _make_config())

        assert result["success"] is False
        assert result["error"] == "Invalid API response format"
        assert result["error_code"] is None

    def test_null_content_carries_api_error_details(self) -> None:
        payload = _completion(None)
        payload["error"] = {"message": "Provider returned error", "code": 502}

        with patch(POST, return_value=_http_response(payload)):
            result = run_openrouter_review("p", _make_config())

        assert result["success"] is False
        assert result["error"] == "Provider returned error"
        assert result["error_code"] == "502"


# ---------------------------------------------------------------------------
# Failure paths
# ---------------------------------------------------------------------------


class TestFailures:
    def test_transport_failure(self) -> None:
        with patch(POST, side_effect=requests.ConnectionError("boom")):
            result = run_openrouter_review("p", _make_config())

        assert result["success"] is False
        assert result["error"] == "API call failed - no response received"

    def test_empty_body(self) -> None:
        with patch(POST, return_value=_http_response("")):
            result = run_openrouter_review("p", _make_config())

        assert result["error"] == "API call failed - no response received"

    def test_non_json_body(self) -> None:
        with patch(POST, return_value=_http_response("<html>502 Bad Gateway</html>")):
            result = run_openrouter_review("p", _make_config())

        assert result["success"] is False
        assert result["error"] == "Invalid JSON response from API"

    def test_api_error_payload(self) -> None:
        payload = {"error": {"message": "No auth credentials found", "code": 401}}

        with patch(POST, return_value=_http_response(payload)):
            result = run_openrouter_review("p", _make_config())

        assert result["success"] is False
        assert result["error"] == "No auth credentials found"
        assert result["error_code"] == "401"

    def test_missing_choices_without_error(self) -> None:
        with patch(POST, return_value=_http_response({"id": "gen-1"})):
            result = run_openrouter_review("p", _make_config())

        assert result["error"] == "Invalid API response format"
        assert result["error_code"] is None


# ---------------------------------------------------------------------------
# Retries
# ---------------------------------------------------------------------------


class TestRetries:
    def test_transport_failures_are_retried(self) -> None:
        responses = [requests.Timeout("slow"), _http_response(_completion("x"))]

        with patch(POST, side_effect=responses) as post, patch(
            "_pr_review_agent.stage_4_openrouter_review.time.sleep"
        ) as sleep:
            result = run_openrouter_review("p", _make_config(max_retries=2))

        assert result["success"] is True
        assert post.call_count == 2
        sleep.assert_called_once_with(1)

    def test_api_errors_are_not_retried(self) -> None:
        payload = {"error": {"message": "Model not found", "code": 404}}

        with patch(POST, return_value=_http_response(payload)) as post, patch(
            "_pr_review_agent.stage_4_openrouter_review.time.sleep"
        ):
            run_openrouter_review("p", _make_config(max_retries=3))

        assert post.call_count == 1
