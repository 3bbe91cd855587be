"""Tests for the JSON result emitter."""

import io
import json

from _pr_review_agent.review_result import ReviewResult
from _pr_review_agent.stage_6_emit_result import emit_result


def test_emits_single_json_line_with_wire_keys() -> None:
    stream = io.StringIO()

    emit_result(ReviewResult("## 🤖 body\n\nline", "fail", ["bug"]), stream)

    output = stream.getvalue()
    assert output.endswith("\n")
    assert output.count("\n") == 1
    assert json.loads(output) == {
        "review": "## 🤖 body\n\nline",
        "fail_pass_workflow": "fail",
        "labels_added": ["bug"],
    }


def test_non_ascii_is_preserved() -> None:
    stream = io.StringIO()

    emit_result(ReviewResult("🤖"), stream)

    assert "🤖" in stream.getvalue()
