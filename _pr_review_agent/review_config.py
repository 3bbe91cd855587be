"""
Review Configuration — FAIR PR Review Agent

PURPOSE:
    Read every tunable of the pipeline from the environment exactly once, at
    process start, and freeze it into a ReviewConfig. Every stage receives the
    config object as an argument instead of reading os.environ itself.

CALLED BY:
    review_pipeline_main.py — before any other stage runs.

ENVIRONMENT:
    OPENROUTER_API_KEY     (required) OpenRouter credential
    AI_MODEL               model identifier, default moonshotai/kimi-k2-thinking
    AI_TEMPERATURE         sampling temperature, default 0.1
    AI_MAX_TOKENS          max output tokens, default 2000
    MAX_DIFF_SIZE          max diff size in bytes, default 800000 (~200K tokens)
    EXCLUDE_FILE_PATTERNS  comma-separated globs of files to drop from the diff
    DEBUG_MODE             "true"/"1"/"yes" turns on debug logging
    AI_REQUEST_TIMEOUT     seconds to wait for the completion API, default 300
    AI_MAX_RETRIES         attempts for transport failures, default 1
    PR_NUMBER, REPO_FULL_NAME, GITHUB_TOKEN
                           optional; PR context is only collected when all
                           three are present

DESIGN DECISIONS:
    - A missing credential or an unparseable number is a ConfigurationError.
      These are the only failures that happen before the JSON contract starts,
      so the caller prints them as plain text and exits non-zero.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


DEFAULT_MODEL = "moonshotai/kimi-k2-thinking"
DEFAULT_TEMPERATURE = 0.1
DEFAULT_MAX_TOKENS = 2000
DEFAULT_MAX_DIFF_SIZE = 800000
DEFAULT_EXCLUDE_FILE_PATTERNS = "*.lock,*.min.js,*.min.css,package-lock.json,yarn.lock"
DEFAULT_REQUEST_TIMEOUT = 300
DEFAULT_MAX_RETRIES = 1

_TRUTHY = ("1", "true", "yes", "on")


class ConfigurationError(Exception):
    """Raised for pre-flight problems detected before any model call."""


@dataclass(frozen=True)
class ReviewConfig:
    api_key: str
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    max_diff_size: int = DEFAULT_MAX_DIFF_SIZE
    exclude_file_patterns: tuple = ()
    debug: bool = False
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    pr_number: Optional[str] = None
    repo_full_name: Optional[str] = None
    github_token: Optional[str] = None

    @property
    def has_pr_context(self) -> bool:
        """True when enough is known to query the GitHub API for this PR."""
        return bool(self.pr_number and self.repo_full_name and self.github_token)


def load_review_config(environ: Optional[Mapping[str, str]] = None) -> ReviewConfig:
    """
    Build the ReviewConfig from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ; tests pass a
                 plain dict.

    Raises:
        ConfigurationError: API key missing, or a numeric setting is invalid.
    """
    if environ is None:
        environ = os.environ

    api_key = environ.get("OPENROUTER_API_KEY", "").strip()
    if not api_key:
        raise ConfigurationError("Missing OPENROUTER_API_KEY environment variable")

    patterns_raw = environ.get("EXCLUDE_FILE_PATTERNS", DEFAULT_EXCLUDE_FILE_PATTERNS)
    patterns = tuple(p.strip() for p in patterns_raw.split(",") if p.strip())

    return ReviewConfig(
        api_key=api_key,
        model=environ.get("AI_MODEL", "").strip() or DEFAULT_MODEL,
        temperature=_read_number(environ, "AI_TEMPERATURE", DEFAULT_TEMPERATURE, float),
        max_tokens=_read_number(environ, "AI_MAX_TOKENS", DEFAULT_MAX_TOKENS, int),
        max_diff_size=_read_number(environ, "MAX_DIFF_SIZE", DEFAULT_MAX_DIFF_SIZE, int),
        exclude_file_patterns=patterns,
        debug=environ.get("DEBUG_MODE", "").strip().lower() in _TRUTHY,
        request_timeout=_read_number(environ, "AI_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT, int),
        max_retries=max(1, _read_number(environ, "AI_MAX_RETRIES", DEFAULT_MAX_RETRIES, int)),
        pr_number=environ.get("PR_NUMBER", "").strip() or None,
        repo_full_name=environ.get("REPO_FULL_NAME", "").strip() or None,
        github_token=environ.get("GITHUB_TOKEN", "").strip() or None,
    )


def _read_number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}")
