"""
Stage 5: Normalize Response — FAIR PR Review Agent

PURPOSE:
    Turn whatever text the model returned into exactly one well-formed
    ReviewResult. The workflow posts `review` as a PR comment no matter
    what, so this stage never fails. The worst case is an honest
    "uncertain" verdict carrying either the model's own text or a clear
    diagnostic message.

CALLED BY:
    review_pipeline_main.py — passes the message content from Stage 4, or
    the error details when Stage 4 failed.

THE LADDER (first stage that matches wins):
    1. Strip reasoning blocks (<think>, <thinking>, <reasoning>)
    2. Strip a leading ```json fence and its closing fence
    3. Trim; empty -> empty-response result (step 7)
    4. Strict parse: the whole text is a JSON object with a non-empty "review"
    5. Embedded recovery: the first flat {...} containing "review" in the text
    6. Plain-text wrap: the text itself becomes the review body
    7. Empty-response result

DESIGN DECISIONS:
    - Each ladder step is a private function returning a ReviewResult or
      None. normalize_response() tries them in order; there is no retry
      and no loop, so the stage runs in time linear in the input.
    - A JSON object whose "review" is missing, empty, or not a string is
      treated as a parse failure and falls through to recovery. An
      empty review is never emitted.
    - Embedded recovery only looks for a brace span with no nested braces.
      Reviews are flat objects; a lenient scan is enough, and a nested
      object in surrounding prose is far more likely to be an example in
      the model's reasoning than the answer.
    - Successfully parsed reviews get the attribution footer appended
      (once); only the fallbacks add the standard header, since a parsed
      review is already the model's own complete comment.
    - Labels are passed through exactly as the model wrote them; only
      non-string and blank entries are dropped.
    - JSON nested too deeply for the decoder counts as invalid JSON and
      falls through to the plain-text wrap.
"""

import json
import logging
import re
from typing import Optional

from .review_result import (
    EMPTY_RESPONSE_MESSAGE,
    REVIEW_HEADER,
    VERDICT_UNCERTAIN,
    VERDICTS,
    ReviewResult,
    ensure_footer,
    format_error_review,
)


logger = logging.getLogger(__name__)

_REASONING_BLOCK_RE = re.compile(
    r"<(think|thinking|reasoning)\b[^>]*>.*?</\1\s*>",
    re.IGNORECASE | re.DOTALL,
)
_JSON_FENCE_OPEN_RE = re.compile(r"\A\s*```json[^\S\n]*(?:\n|\Z)", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"^[^\S\n]*```[^\S\n]*$", re.MULTILINE)
_FLAT_REVIEW_OBJECT_RE = re.compile(r'\{[^{}]*"review"[^{}]*\}')


def normalize_response(raw: Optional[str]) -> ReviewResult:
    """
    Normalize raw model output into a ReviewResult.

    Args:
        raw: The message content returned by the model. May be None.

    Returns:
        A ReviewResult whose review is never empty.
    """
    raw = raw or ""
    logger.debug("Normalizing %d chars of model output; preview: %r", len(raw), raw[:500])

    if _REASONING_BLOCK_RE.search(raw):
        logger.info("Reasoning block detected; stripping it from the response")

    text = _strip_reasoning(raw)
    text = _strip_json_fence(text)
    text = text.strip()

    if not text:
        logger.warning("Model response is empty after stripping reasoning and fences")
        return _empty_response_result()

    for stage in (_strict_parse, _recover_embedded_json, _wrap_plain_text):
        result = stage(text)
        if result is not None:
            logger.debug("Response normalized by %s", stage.__name__)
            return result

    # _wrap_plain_text always matches non-empty text
    return _empty_response_result()


def build_upstream_error_result(message: str, code: Optional[str] = None) -> ReviewResult:
    """
    Build the result for a failed model call without running the ladder.

    Args:
        message: Human-readable error from Stage 4.
        code: Optional machine error code reported by the API.
    """
    return ReviewResult(
        review=format_error_review(message or "Unknown API error", code),
        verdict=VERDICT_UNCERTAIN,
        labels_added=[],
    )


# ---------------------------------------------------------------------------
# PRE-PROCESSING
# ---------------------------------------------------------------------------


def _strip_reasoning(text: str) -> str:
    return _REASONING_BLOCK_RE.sub("", text).lstrip()


def _strip_json_fence(text: str) -> str:
    """Keep only what sits between a leading ```json fence and its closing fence."""
    opening = _JSON_FENCE_OPEN_RE.match(text)
    if not opening:
        return text
    rest = text[opening.end():]
    closing = _FENCE_CLOSE_RE.search(rest)
    if closing:
        return rest[:closing.start()]
    return rest


# ---------------------------------------------------------------------------
# LADDER STAGES
# ---------------------------------------------------------------------------
# Each returns a ReviewResult when it matches, None otherwise.
# ---------------------------------------------------------------------------


def _strict_parse(text: str) -> Optional[ReviewResult]:
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        logger.info("Content is not valid JSON; attempting to extract embedded JSON")
        return None
    if not _has_review(data):
        logger.info("JSON missing required 'review' field")
        return None
    return _result_from_object(data)


def _recover_embedded_json(text: str) -> Optional[ReviewResult]:
    match = _FLAT_REVIEW_OBJECT_RE.search(text)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except (ValueError, RecursionError):
        return None
    if not _has_review(data):
        return None
    logger.info("Successfully extracted JSON embedded in the response")
    return _result_from_object(data)


def _wrap_plain_text(text: str) -> Optional[ReviewResult]:
    logger.warning("No usable JSON in the response; posting the raw text as the review")
    if not text.startswith(REVIEW_HEADER):
        text = f"{REVIEW_HEADER}\n\n{text}"
    return ReviewResult(
        review=ensure_footer(text),
        verdict=VERDICT_UNCERTAIN,
        labels_added=[],
    )


def _empty_response_result() -> ReviewResult:
    return ReviewResult(
        review=format_error_review(EMPTY_RESPONSE_MESSAGE),
        verdict=VERDICT_UNCERTAIN,
        labels_added=[],
    )


# ---------------------------------------------------------------------------
# FIELD NORMALIZATION
# ---------------------------------------------------------------------------


def _has_review(data) -> bool:
    if not isinstance(data, dict):
        return False
    review = data.get("review")
    return isinstance(review, str) and bool(review.strip())


def _result_from_object(data: dict) -> ReviewResult:
    return ReviewResult(
        review=ensure_footer(data["review"]),
        verdict=_normalize_verdict(data.get("fail_pass_workflow")),
        labels_added=_normalize_labels(data.get("labels_added")),
    )


def _normalize_verdict(value) -> str:
    if isinstance(value, str):
        verdict = value.strip().lower()
        if verdict in VERDICTS:
            return verdict
    return VERDICT_UNCERTAIN


def _normalize_labels(value) -> list:
    if not isinstance(value, list):
        return []
    return [label for label in value if isinstance(label, str) and label.strip()]
