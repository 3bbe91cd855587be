"""
Stage 2: Collect PR Context — FAIR PR Review Agent

PURPOSE:
    Gather what the reviewer model should know beyond the diff itself:

    1. PREVIOUS REVIEWS: Earlier AI review comments on the same PR, so a
       re-review can say what was fixed instead of repeating itself.
    2. CHECK RUNS: The GitHub Actions status of the PR head commit, so the
       model can relate failing tests to the change.
    3. AVAILABLE LABELS: The repository's existing labels, so suggested
       labels reuse them instead of inventing near-duplicates.

    The results are injected into the review prompt by Stage 3.

CALLED BY:
    review_pipeline_main.py — passes the ReviewConfig.

DEPENDS ON:
    - GitHub REST API (via requests library)
    - The GITHUB_TOKEN automatically provided by GitHub Actions

DESIGN DECISIONS:
    - Every fetch is non-blocking. A failed context lookup should NOT block
      the review; the model can still review the diff without it. Failures
      are recorded in 'errors' and logged.
    - Previous reviews are identified by the comment header the pipeline
      itself writes, and capped at 50,000 characters so a long-lived PR does
      not crowd the diff out of the context window.

COST:
    $0 — 3-4 GitHub API reads per run with the free GITHUB_TOKEN.
"""

import logging

import requests

from .review_config import ReviewConfig
from .review_result import REVIEW_HEADER


logger = logging.getLogger(__name__)

MAX_PREVIOUS_REVIEWS_CHARS = 50000


def collect_pr_context(config: ReviewConfig) -> dict:
    """
    Fetch previous reviews, check runs and labels for the PR under review.

    This is the ONLY public function in this file.

    Args:
        config: The run's ReviewConfig. PR number, repository and token must
                all be set; otherwise nothing is fetched.

    Returns:
        dict with keys:
            - 'available' (bool): Whether the GitHub API was queried at all
            - 'previous_reviews' (str): Rendered earlier AI reviews ("" if none)
            - 'check_runs' (str): One "- **name**: status (conclusion)" per run
            - 'available_labels' (str): One "- **name**: description" per label
            - 'errors' (list[str]): Any API errors encountered (non-blocking)
    """
    result = {
        "available": False,
        "previous_reviews": "",
        "check_runs": "",
        "available_labels": "",
        "errors": [],
    }

    if not config.has_pr_context:
        logger.debug("PR_NUMBER, REPO_FULL_NAME or GITHUB_TOKEN not set; skipping PR context")
        return result

    result["available"] = True
    owner, _, repo = config.repo_full_name.partition("/")
    gh = GitHubAPI(owner, repo, config.github_token)
    pr_number = config.pr_number

    # -----------------------------------------------------------------------
    # FETCH 1: Previous AI review comments
    # -----------------------------------------------------------------------

    try:
        comments = gh.list_issue_comments(pr_number)
        result["previous_reviews"] = _format_previous_reviews(comments)
    except (requests.RequestException, ValueError) as e:
        result["errors"].append(f"Failed to fetch previous reviews: {e}")

    # -----------------------------------------------------------------------
    # FETCH 2: Check runs for the PR head commit
    # -----------------------------------------------------------------------

    try:
        head_sha = gh.get_pull_request_head_sha(pr_number)
        if head_sha:
            result["check_runs"] = _format_check_runs(gh.list_check_runs(head_sha))
    except (requests.RequestException, ValueError, KeyError) as e:
        result["errors"].append(f"Failed to fetch check runs: {e}")

    # -----------------------------------------------------------------------
    # FETCH 3: Repository labels
    # -----------------------------------------------------------------------

    logger.info("Fetching available labels from repository...")
    try:
        labels = gh.list_labels()
        result["available_labels"] = _format_labels(labels)
        if labels:
            logger.info("Successfully fetched %d labels from repository", len(labels))
        else:
            logger.info("No existing labels found in repository")
    except (requests.RequestException, ValueError) as e:
        result["errors"].append(f"Failed to fetch labels: {e}")

    for error in result["errors"]:
        logger.warning(error)

    return result


# ---------------------------------------------------------------------------
# GITHUB API HELPER CLASS
# ---------------------------------------------------------------------------
# Wraps the GitHub REST API calls needed by this stage. Read-only: posting
# the comment and applying labels is the workflow's job.
# ---------------------------------------------------------------------------


class GitHubAPI:
    """
    Thin wrapper around GitHub REST API for the reads we need.

    The GITHUB_TOKEN provided by Actions needs:
    - issues:read (comments, labels)
    - pull-requests:read (head SHA)
    - checks:read (check runs)
    """

    def __init__(self, owner: str, repo: str, token: str):
        self.owner = owner
        self.repo = repo
        self.base_url = f"https://api.github.com/repos/{owner}/{repo}"
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def list_issue_comments(self, issue_number) -> list:
        """List all comments on an issue or PR, oldest first."""
        return self._get_paginated(f"{self.base_url}/issues/{issue_number}/comments")

    def get_pull_request_head_sha(self, pr_number) -> str:
        """Get the SHA of the PR's head commit."""
        url = f"{self.base_url}/pulls/{pr_number}"
        resp = requests.get(url, headers=self.headers, timeout=30)
        resp.raise_for_status()
        return resp.json()["head"]["sha"]

    def list_check_runs(self, sha: str) -> list:
        """List check runs reported against a commit."""
        url = f"{self.base_url}/commits/{sha}/check-runs"
        resp = requests.get(url, headers=self.headers, params={"per_page": 100}, timeout=30)
        resp.raise_for_status()
        return resp.json().get("check_runs") or []

    def list_labels(self) -> list:
        """List every label defined in the repository."""
        return self._get_paginated(f"{self.base_url}/labels")

    def _get_paginated(self, url: str) -> list:
        items = []
        params = {"per_page": 100}
        while url:
            resp = requests.get(url, headers=self.headers, params=params, timeout=30)
            resp.raise_for_status()
            items.extend(resp.json())
            # The "next" link already carries the query string
            url = resp.links.get("next", {}).get("url")
            params = None
        return items


# ---------------------------------------------------------------------------
# PRIVATE HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def _format_previous_reviews(comments: list) -> str:
    parts = []
    for comment in comments:
        body = comment.get("body") or ""
        if not body.startswith(REVIEW_HEADER):
            continue
        created_at = comment.get("created_at", "unknown date")
        parts.append(f"### Previous Review ({created_at}):\n{body}\n---\n")
    return "".join(parts)[:MAX_PREVIOUS_REVIEWS_CHARS]


def _format_check_runs(check_runs: list) -> str:
    lines = []
    for run in check_runs:
        line = f"- **{run.get('name', 'unnamed')}**: {run.get('status', 'unknown')}"
        if run.get("conclusion"):
            line += f" ({run['conclusion']})"
        lines.append(line)
    return "\n".join(lines)


def _format_labels(labels: list) -> str:
    lines = []
    for label in labels:
        description = label.get("description") or "No description"
        lines.append(
            f"- **{label.get('name', '')}**: {description} (color: #{label.get('color', '')})"
        )
    return "\n".join(lines)
