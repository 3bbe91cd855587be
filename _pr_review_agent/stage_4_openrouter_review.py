"""
Stage 4: OpenRouter Review — FAIR PR Review Agent

PURPOSE:
    Send the assembled review prompt to the configured model through the
    OpenRouter chat-completions API and hand the extracted message content to
    Stage 5. This is the only stage that costs money.

CALLED BY:
    review_pipeline_main.py — passes the prompt string from Stage 3.

EXTERNAL APIS USED:
    - OpenRouter chat completions (OpenAI-compatible), via requests
    - API key stored as GitHub Secret: OPENROUTER_API_KEY

DESIGN DECISIONS:
    - This stage does NOT parse the model's answer. It only separates
      "the API gave us message content" from "the API call itself failed".
      Everything about the shape of the content is Stage 5's problem.
    - Transport failures (connection errors, timeouts, empty bodies) are
      retried up to config.max_retries attempts with exponential backoff.
      The default is a single attempt. API-level error payloads (bad key,
      unknown model, quota) are never retried; retrying cannot fix them.
    - We never log the full API response on error, as it may echo request
      data. Only the error code is logged. The raw body of a non-JSON
      response is logged at debug level to diagnose provider outages.
    - A response without choices[0].message.content (missing or null) is an
      API error, reported with error.message and error.code when present.
      An empty-string content is a successful call; Stage 5 turns it into
      the empty-response review.
"""

import json
import logging
import time

import requests

from .review_config import ReviewConfig


logger = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"


def run_openrouter_review(prompt: str, config: ReviewConfig) -> dict:
    """
    Send the review prompt to OpenRouter and extract the message content.

    This is the ONLY public function in this file.

    Args:
        prompt: The complete prompt string from Stage 3
        config: The run's ReviewConfig (key, model, sampling settings)

    Returns:
        dict with keys:
            - 'success' (bool): Whether message content was obtained
            - 'content' (str): The raw message content ("" on failure)
            - 'model_used' (str): Which model was requested
            - 'error' (str or None): Error message if failed
            - 'error_code' (str or None): API error code, when the API gave one
    """
    referer = f"https://github.com/{config.repo_full_name or 'unknown/repo'}"
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {config.api_key}",
        "HTTP-Referer": referer,
    }
    payload = {
        "model": config.model,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
    }

    # -----------------------------------------------------------------------
    # Make the API call with retry logic
    # -----------------------------------------------------------------------

    body = ""
    for attempt in range(config.max_retries):
        try:
            resp = requests.post(
                OPENROUTER_URL,
                headers=headers,
                json=payload,
                timeout=config.request_timeout,
            )
            body = resp.text
        except requests.RequestException as e:
            logger.warning("OpenRouter request failed (attempt %d): %s", attempt + 1, e)
            body = ""

        if body:
            break
        if attempt < config.max_retries - 1:
            time.sleep(2 ** attempt)  # Exponential backoff: 1s, 2s, ...

    if not body:
        return _failure(config, "API call failed - no response received")

    # -----------------------------------------------------------------------
    # Parse the top-level API response
    # -----------------------------------------------------------------------

    try:
        data = json.loads(body)
    except ValueError:
        logger.debug("=== API DEBUG: Raw response from %s ===\n%s\n=== END API DEBUG ===",
                     config.model, body)
        return _failure(config, "Invalid JSON response from API")

    message = _extract_message(data)
    if message is None or message.get("content") is None:
        return _api_error(config, data)

    content = message["content"]
    if not isinstance(content, str):
        content = json.dumps(content)

    logger.debug(
        "=== CONTENT DEBUG: Extracted from %s ===\nContent length: %d\n"
        "Content preview (first 500 chars):\n%s\n=== END CONTENT DEBUG ===",
        config.model, len(content), content[:500],
    )

    return {
        "success": True,
        "content": content,
        "model_used": config.model,
        "error": None,
        "error_code": None,
    }


# ---------------------------------------------------------------------------
# PRIVATE HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def _extract_message(data):
    """Return choices[0].message, or None when the response has no choices."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict) or not isinstance(first.get("message"), dict):
        return None
    return first["message"]


def _api_error(config: ReviewConfig, data) -> dict:
    """Failure built from the API's error object, if it sent one."""
    error = data.get("error") if isinstance(data, dict) else None
    error = error if isinstance(error, dict) else {}
    error_msg = error.get("message") or "Invalid API response format"
    error_code = error.get("code")
    error_code = str(error_code) if error_code not in (None, "") else None
    if error_code:
        logger.error("API Error code: %s", error_code)
    return _failure(config, error_msg, error_code)


def _failure(config: ReviewConfig, error: str, error_code=None) -> dict:
    return {
        "success": False,
        "content": "",
        "model_used": config.model,
        "error": error,
        "error_code": error_code,
    }
