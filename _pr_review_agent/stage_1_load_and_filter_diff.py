"""
Stage 1: Load & Filter Diff — FAIR PR Review Agent

PURPOSE:
    This is the first stage of the review pipeline. It takes the raw unified
    diff piped in by the workflow, drops files nobody wants reviewed (lock
    files, minified bundles), and checks that what is left is neither empty
    nor too large to send to the model.

    This stage acts as a cheap gatekeeper. If the diff fails these checks we
    never call the completion API. All checks here are pure Python with zero
    API calls and zero cost.

CALLED BY:
    review_pipeline_main.py — which passes the diff text read from stdin and
    the ReviewConfig.

DESIGN DECISIONS:
    - Files are dropped per "diff --git a/... b/..." section. A file matches
      when its path OR its basename matches one of the exclusion globs, so
      "yarn.lock" also catches "frontend/yarn.lock".
    - If the exclusions remove every file, the unfiltered diff is kept. A PR
      that only bumps a lock file still gets a (short) review instead of a
      confusing "no diff" error.
    - Size is measured in UTF-8 bytes after filtering, because the limit
      exists to bound what we pay to send.

RETURNS:
    A dict with the filtered diff + a list of validation errors (empty if valid).
"""

import fnmatch
import logging
import posixpath
import re

from .review_config import ReviewConfig
from .review_result import REVIEW_HEADER


logger = logging.getLogger(__name__)

_FILE_HEADER_RE = re.compile(r"^diff --git a/(.+?) b/(.+)$")


def load_and_filter_diff(diff_text: str, config: ReviewConfig) -> dict:
    """
    Filter excluded files out of the diff and validate what remains.

    Args:
        diff_text: The raw unified diff, as produced by `git diff` or the
                   GitHub ".diff" media type.
        config:    The run's ReviewConfig (exclusion globs, size limit).

    Returns:
        dict with keys:
            - 'valid' (bool): Whether the diff can be sent for review
            - 'errors' (list[str]): Validation error messages (empty if valid)
            - 'diff' (str): The filtered diff text
            - 'diff_size' (int): Size of the filtered diff in bytes
            - 'excluded_files' (list[str]): Paths removed by the exclusion globs
    """
    errors = []

    if not diff_text or not diff_text.strip():
        return {
            "valid": False,
            "errors": ["No diff content to analyze"],
            "diff": "",
            "diff_size": 0,
            "excluded_files": [],
        }

    # -----------------------------------------------------------------------
    # STEP 1: Drop excluded files
    # -----------------------------------------------------------------------

    diff = diff_text
    excluded_files = []
    if config.exclude_file_patterns:
        filtered, excluded_files = _filter_excluded_files(
            diff_text, config.exclude_file_patterns
        )
        if filtered.strip():
            diff = filtered
        else:
            logger.info("All files matched exclusion patterns; reviewing the full diff")
            excluded_files = []

    if excluded_files:
        logger.info("Excluded %d file(s) from review: %s",
                    len(excluded_files), ", ".join(excluded_files))

    # -----------------------------------------------------------------------
    # STEP 2: Validate size to prevent excessive API usage
    # -----------------------------------------------------------------------

    diff_size = len(diff.encode("utf-8"))
    if diff_size > config.max_diff_size:
        errors.append(
            f"Diff is too large ({diff_size} bytes, max: {config.max_diff_size} bytes)\n"
            "Please split this PR into smaller changes for review."
        )

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "diff": diff,
        "diff_size": diff_size,
        "excluded_files": excluded_files,
    }


def format_preflight_error(message: str) -> str:
    """Plain-text error printed instead of the JSON envelope."""
    return f"{REVIEW_HEADER}\n\n❌ **Error**: {message}"


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS (private to this module)
# ---------------------------------------------------------------------------


def _filter_excluded_files(diff_text: str, patterns) -> tuple:
    """
    Split the diff into per-file sections and drop the ones that match.

    Anything before the first "diff --git" header (e.g. a format-patch
    preamble) is kept as-is.

    Returns:
        (filtered_diff, excluded_paths)
    """
    kept = []
    excluded = []
    skipping = False

    for line in diff_text.splitlines(keepends=True):
        match = _FILE_HEADER_RE.match(line.rstrip("\r\n"))
        if match:
            path = match.group(2)
            skipping = _matches_any(path, patterns)
            if skipping:
                excluded.append(path)
        if not skipping:
            kept.append(line)

    return "".join(kept), excluded


def _matches_any(path: str, patterns) -> bool:
    basename = posixpath.basename(path)
    for pattern in patterns:
        if fnmatch.fnmatch(path, pattern) or fnmatch.fnmatch(basename, pattern):
            return True
    return False
