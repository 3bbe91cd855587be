# FAIR - PR Review Agent Package
#
# This package contains the review pipeline that runs inside a GitHub
# Actions job for a single pull request. Each stage is in its own file
# following the one-function-per-file architecture pattern.
#
# The pipeline is orchestrated by review_pipeline_main.py. It reads the
# PR diff from stdin, gathers PR context from the GitHub API, calls the
# OpenRouter completion API once, and prints exactly one JSON object
# that the workflow turns into a PR comment, labels and a pass/fail gate.
#
# Stage flow:
#   1. Load & Filter Diff -> 2. Collect PR Context -> 3. Build Review Prompt
#   -> 4. OpenRouter Review -> 5. Normalize Response -> 6. Emit Result
