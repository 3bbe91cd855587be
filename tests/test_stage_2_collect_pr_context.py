"""Tests for PR context collection against a stubbed GitHub API."""

from unittest.mock import MagicMock, patch

import requests

from _pr_review_agent.review_config import ReviewConfig
from _pr_review_agent.stage_2_collect_pr_context import (
    MAX_PREVIOUS_REVIEWS_CHARS,
    collect_pr_context,
)


BASE = "https://api.github.com/repos/octo/repo"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_config(**overrides) -> ReviewConfig:
    values = {
        "api_key": "k",
        "pr_number": "7",
        "repo_full_name": "octo/repo",
        "github_token": "ghs_token",
    }
    values.update(overrides)
    return ReviewConfig(**values)


def _response(payload, next_url=None) -> MagicMock:
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    resp.links = {"next": {"url": next_url}} if next_url else {}
    return resp


def _fake_github(routes: dict):
    def fake_get(url, headers=None, params=None, timeout=None):
        if url not in routes:
            raise requests.HTTPError(f"404 for {url}")
        return routes[url]

    return fake_get


COMMENTS = [
    {"body": "LGTM from a human", "created_at": "2026-01-01T00:00:00Z"},
    {"body": "## 🤖 AI Code Review\n\nFirst pass", "created_at": "2026-01-02T00:00:00Z"},
]
CHECK_RUNS = {
    "check_runs": [
        {"name": "tests", "status": "completed", "conclusion": "failure"},
        {"name": "lint", "status": "in_progress", "conclusion": None},
    ]
}
LABELS_PAGE_1 = [{"name": "bug", "description": "Something isn't working", "color": "d73a4a"}]
LABELS_PAGE_2 = [{"name": "chore", "description": None, "color": "ededed"}]


def _full_routes() -> dict:
    return {
        f"{BASE}/issues/7/comments": _response(COMMENTS),
        f"{BASE}/pulls/7": _response({"head": {"sha": "abc123"}}),
        f"{BASE}/commits/abc123/check-runs": _response(CHECK_RUNS),
        f"{BASE}/labels": _response(LABELS_PAGE_1, next_url=f"{BASE}/labels?page=2"),
        f"{BASE}/labels?page=2": _response(LABELS_PAGE_2),
    }


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


def test_skipped_without_pr_details() -> None:
    with patch("_pr_review_agent.stage_2_collect_pr_context.requests.get") as get:
        result = collect_pr_context(_make_config(github_token=None))

    get.assert_not_called()
    assert result["available"] is False
    assert result["previous_reviews"] == ""


def test_collects_all_context() -> None:
    with patch(
        "_pr_review_agent.stage_2_collect_pr_context.requests.get",
        side_effect=_fake_github(_full_routes()),
    ):
        result = collect_pr_context(_make_config())

    assert result["available"] is True
    assert result["errors"] == []
    assert result["previous_reviews"] == (
        "### Previous Review (2026-01-02T00:00:00Z):\n## 🤖 AI Code Review\n\nFirst pass\n---\n"
    )
    assert result["check_runs"] == (
        "- **tests**: completed (failure)\n- **lint**: in_progress"
    )
    assert result["available_labels"] == (
        "- **bug**: Something isn't working (color: #d73a4a)\n"
        "- **chore**: No description (color: #ededed)"
    )


def test_failures_are_non_blocking() -> None:
    routes = _full_routes()
    del routes[f"{BASE}/pulls/7"]

    with patch(
        "_pr_review_agent.stage_2_collect_pr_context.requests.get",
        side_effect=_fake_github(routes),
    ):
        result = collect_pr_context(_make_config())

    assert result["check_runs"] == ""
    assert len(result["errors"]) == 1
    assert "check runs" in result["errors"][0]
    assert result["available_labels"]


def test_previous_reviews_are_truncated() -> None:
    long_comment = {"body": "## 🤖 AI Code Review\n\n" + "x" * (MAX_PREVIOUS_REVIEWS_CHARS * 2)}
    routes = _full_routes()
    routes[f"{BASE}/issues/7/comments"] = _response([long_comment])

    with patch(
        "_pr_review_agent.stage_2_collect_pr_context.requests.get",
        side_effect=_fake_github(routes),
    ):
        result = collect_pr_context(_make_config())

    assert len(result["previous_reviews"]) == MAX_PREVIOUS_REVIEWS_CHARS


def test_requests_are_authenticated() -> None:
    with patch(
        "_pr_review_agent.stage_2_collect_pr_context.requests.get",
        side_effect=_fake_github(_full_routes()),
    ) as get:
        collect_pr_context(_make_config())

    headers = get.call_args_list[0].kwargs["headers"]
    assert headers["Authorization"] == "Bearer ghs_token"
