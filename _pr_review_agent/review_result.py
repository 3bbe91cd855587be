"""
ReviewResult — FAIR PR Review Agent

The canonical record every run ends with, plus the fixed strings that frame
every review comment. The workflow reads the three wire keys produced by
ReviewResult.to_dict():

    review              markdown body posted as the PR comment
    fail_pass_workflow  "pass" | "fail" | "uncertain"
    labels_added        label names the workflow applies to the PR
"""

from dataclasses import dataclass, field
from typing import Optional


REVIEW_HEADER = "## 🤖 AI Code Review"

FOOTER_TEXT = (
    "*Review by [FAIR](https://github.com/LearningCircuit/Friendly-AI-Reviewer)"
    " - needs human verification*"
)
ATTRIBUTION_FOOTER = f"\n\n---\n{FOOTER_TEXT}"

VERDICT_PASS = "pass"
VERDICT_FAIL = "fail"
VERDICT_UNCERTAIN = "uncertain"
VERDICTS = (VERDICT_PASS, VERDICT_FAIL, VERDICT_UNCERTAIN)

EMPTY_RESPONSE_MESSAGE = "AI returned empty response after processing"


@dataclass(frozen=True)
class ReviewResult:
    review: str
    verdict: str = VERDICT_UNCERTAIN
    labels_added: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "review": self.review,
            "fail_pass_workflow": self.verdict,
            "labels_added": list(self.labels_added),
        }


def ensure_footer(text: str) -> str:
    """Append the attribution footer unless the text already carries it."""
    if FOOTER_TEXT in text:
        return text
    return text + ATTRIBUTION_FOOTER


def format_error_review(message: str, code: Optional[str] = None) -> str:
    """Render an error diagnostic as a complete review body."""
    body = f"{REVIEW_HEADER}\n\n❌ **Error**: {message}"
    if code:
        body += f"\n\nError code: `{code}`"
    return body + ATTRIBUTION_FOOTER
