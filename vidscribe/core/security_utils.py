"""
Security utilities for vidscribe.
- API key lookup (environment, read once at the program edge)
- Secret redaction for logs and diagnostics
- Filename sanitization for media handed to the transcriber
"""

import os
import re
import logging

from vidscribe.core.constants import (
    ENV_OPENAI_API_KEY, ENV_RAPIDAPI_KEY, ENV_TRANSCRIPT_API_KEY,
    UNSAFE_FILENAME_CHARS, MAX_FILENAME_LEN,
)

logger = logging.getLogger(__name__)


# ── API keys ──────────────────────────────────────────────────────────

def get_api_key(env_var: str) -> str | None:
    """Read one API key from the environment; blank values count as missing."""
    value = os.environ.get(env_var, "").strip()
    return value or None


def load_api_keys() -> dict:
    """
    Collect every collaborator key.  Only the command line (vidscribe.cli) calls this; the pipeline
    receives the resulting dict explicitly.
    """
    keys = {
        "openai_api_key": get_api_key(ENV_OPENAI_API_KEY),
        "rapidapi_key": get_api_key(ENV_RAPIDAPI_KEY),
        "transcript_api_key": get_api_key(ENV_TRANSCRIPT_API_KEY),
    }
    for name, value in keys.items():
        logger.debug("%s: %s", name, "set" if value else "missing")
    return keys


def redact_secret(value: str | None) -> str:
    """Show at most the last 4 characters of a secret."""
    if not value:
        return ""
    if len(value) <= 8:
        return "*" * len(value)
    return "*" * 8 + value[-4:]


# ── Filename safety ───────────────────────────────────────────────────

def sanitize_title(title: str, fallback: str = "video") -> str:
    """Reduce a media title to [A-Za-z0-9_] for use as an upload file name."""
    if not title:
        return fallback
    safe = re.sub(UNSAFE_FILENAME_CHARS, '_', title)
    # Collapse multiple underscores
    safe = re.sub(r'_+', '_', safe).strip('_')
    if len(safe) > MAX_FILENAME_LEN:
        safe = safe[:MAX_FILENAME_LEN].rstrip('_')
    return safe if safe else fallback
