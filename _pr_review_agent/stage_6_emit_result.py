"""
Stage 6: Emit Result — FAIR PR Review Agent

Write the ReviewResult to stdout as a single JSON object. The workflow
captures stdout and reads the three keys with jq, so nothing else may ever
be printed to stdout once the model has been called (logging goes to
stderr).
"""

import json
import sys

from .review_result import ReviewResult


def emit_result(result: ReviewResult, stream=None) -> str:
    """Serialize the result as one compact JSON line and write it to the stream."""
    if stream is None:
        stream = sys.stdout
    line = json.dumps(result.to_dict(), ensure_ascii=False)
    stream.write(line + "\n")
    stream.flush()
    return line
