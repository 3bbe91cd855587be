"""
Stage 3: Build Review Prompt — FAIR PR Review Agent

PURPOSE:
    Assemble the single user message sent to the completion API. The prompt
    includes:

    1. REVIEW INSTRUCTIONS: What to look for (security, performance, code
       quality, best practices)
    2. OUTPUT SCHEMA: The exact JSON object the model must return
    3. PR CONTEXT: Check-run status, available labels and previous AI reviews
       from Stage 2 (each section only when non-empty)
    4. THE DIFF: Always last, so truncation by the provider cuts the diff and
       never the instructions

CALLED BY:
    review_pipeline_main.py — passes the filtered diff from Stage 1 and the
    context dict from Stage 2.

DESIGN DECISIONS:
    - The schema is asked for in the prompt only. Providers behind OpenRouter
      do not agree on a JSON response mode, so Stage 5 has to cope with
      whatever comes back anyway.

COST:
    $0 — This stage is pure Python string assembly. No API calls.
"""


OUTPUT_SCHEMA = """{
  "review": "Detailed review in markdown format",
  "fail_pass_workflow": "pass",
  "labels_added": ["bug", "feature", "enhancement"]
}"""


def build_review_prompt(diff: str, pr_context: dict) -> str:
    """
    Assemble the complete review prompt.

    Args:
        diff: The filtered diff from Stage 1.
        pr_context: Output from Stage 2 — previous_reviews, check_runs,
                    available_labels (any of them may be empty).

    Returns:
        The complete prompt string ready to send to the model.
    """
    sections = [
        "Please analyze this code diff and provide a comprehensive review.",
        "Focus Areas:\n"
        "- Security: Look for hardcoded secrets, SQL injection, XSS, authentication issues, "
        "input validation problems\n"
        "- Performance: Check for inefficient algorithms, N+1 queries, missing indexes, "
        "memory issues, blocking operations\n"
        "- Code Quality: Evaluate readability, maintainability, proper error handling, "
        "naming conventions, documentation\n"
        "- Best Practices: Ensure adherence to coding standards, proper patterns, "
        "type safety, dead code removal",
        "IMPORTANT: Respond with valid JSON only using this exact format:\n" + OUTPUT_SCHEMA,
        "For the fail_pass_workflow field use \"pass\" when the change is safe to merge, "
        "\"fail\" when it has blocking problems, and \"uncertain\" when you cannot tell.",
        "For the labels_added field:\n"
        "- First check if any existing repository labels (listed below) are appropriate\n"
        "- Prefer existing labels over creating new ones when possible\n"
        "- Only suggest new labels when no existing ones fit the changes\n"
        "- Keep labels concise and descriptive",
        "Focus action items on critical fixes only, not trivial nitpicks.",
        "IMPORTANT: End your review with a clear final assessment section like:\n"
        "---\n"
        "## Final Assessment: APPROVED / CHANGES REQUESTED / NEEDS REVISION",
    ]

    check_runs = pr_context.get("check_runs", "")
    if check_runs:
        sections.append(
            "GitHub Actions Check Status:\n"
            f"{check_runs}\n\n"
            "Please consider any failed or pending checks in your review. If tests are "
            "failing, investigate whether the code changes might be the cause."
        )

    labels = pr_context.get("available_labels", "")
    if labels:
        sections.append(
            "Available Repository Labels:\n"
            "Please prefer using existing labels from this list over creating new ones:\n"
            f"{labels}\n\n"
            "If none of these labels are appropriate for the changes, you may suggest new ones."
        )

    previous_reviews = pr_context.get("previous_reviews", "")
    if previous_reviews:
        sections.append(
            "Previous AI Reviews (for context on what was already reviewed):\n"
            f"{previous_reviews}"
        )

    sections.append(f"Code diff to analyze:\n\n{diff}")

    return "\n\n".join(sections)
