"""
Review Pipeline Main — FAIR PR Review Agent

PURPOSE:
    Entry point invoked by the GitHub Actions workflow:

        git diff ... | OPENROUTER_API_KEY=... pr-review-agent

    Runs the stages in order and prints the outcome.

OUTPUT CONTRACT:
    - Pre-flight failures (missing API key, bad setting, empty diff, diff too
      large) print a plain-text error and exit 1. No JSON is printed; these
      happen before the model is called.
    - After that point, stdout always receives exactly one JSON object:
        {"review": ..., "fail_pass_workflow": ..., "labels_added": [...]}
      The exit code is 1 when the completion API call failed and 0
      otherwise, including every malformed-model-output case.
"""

import argparse
import logging
import sys

from .review_config import ConfigurationError, ReviewConfig, load_review_config
from .stage_1_load_and_filter_diff import format_preflight_error, load_and_filter_diff
from .stage_2_collect_pr_context import collect_pr_context
from .stage_3_build_review_prompt import build_review_prompt
from .stage_4_openrouter_review import run_openrouter_review
from .stage_5_normalize_response import build_upstream_error_result, normalize_response
from .stage_6_emit_result import emit_result


logger = logging.getLogger(__name__)


def run_review_pipeline(diff: str, config: ReviewConfig) -> tuple:
    """
    Run stages 2-5 for an already validated diff.

    Returns:
        (ReviewResult, exit_code)
    """
    pr_context = collect_pr_context(config)
    prompt = build_review_prompt(diff, pr_context)
    logger.info("Requesting review from %s (%d prompt chars)", config.model, len(prompt))

    model_result = run_openrouter_review(prompt, config)
    if not model_result["success"]:
        logger.error("Review request failed: %s", model_result["error"])
        result = build_upstream_error_result(
            model_result["error"], model_result.get("error_code")
        )
        return result, 1

    return normalize_response(model_result["content"]), 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="pr-review-agent",
        description="Review a pull request diff with an LLM and print the result as JSON.",
    )
    parser.add_argument(
        "--diff-file",
        help="Read the diff from this file instead of stdin.",
    )
    args = parser.parse_args(argv)

    try:
        config = load_review_config()
    except ConfigurationError as e:
        _configure_logging(debug=False)
        print(format_preflight_error(str(e)))
        return 1

    _configure_logging(config.debug)

    if args.diff_file:
        try:
            with open(args.diff_file, "r", encoding="utf-8", errors="replace") as f:
                diff_text = f.read()
        except OSError as e:
            print(format_preflight_error(f"Cannot read diff file: {e}"))
            return 1
    else:
        diff_text = sys.stdin.read()

    diff_result = load_and_filter_diff(diff_text, config)
    if not diff_result["valid"]:
        print(format_preflight_error(diff_result["errors"][0]))
        return 1

    try:
        result, exit_code = run_review_pipeline(diff_result["diff"], config)
    except Exception as e:
        # The workflow must still get a comment to post
        logger.exception("Review pipeline failed")
        result, exit_code = build_upstream_error_result(f"Review pipeline failed: {e}"), 1

    emit_result(result)
    logger.info("Review emitted with verdict '%s'", result.verdict)
    return exit_code


def _configure_logging(debug: bool):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if not debug:
        # Keep connection-pool chatter out of the Actions log
        logging.getLogger("urllib3").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
