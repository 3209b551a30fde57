"""
Diagnostics: library versions and collaborator configuration checks.
"""

import sys
import logging

import requests

from vidscribe.core.constants import APP_VERSION
from vidscribe.core.security_utils import redact_secret

logger = logging.getLogger(__name__)

_COLLABORATORS = {
    "openai_api_key": "speech-to-text + summarization",
    "rapidapi_key": "generic platform media resolution",
    "transcript_api_key": "delegated YouTube transcript API",
}


def check_api_keys(api_keys: dict | None) -> dict:
    """Report which collaborators are usable; key values are always redacted."""
    api_keys = api_keys or {}
    info = {}
    for name, purpose in _COLLABORATORS.items():
        value = api_keys.get(name)
        info[name] = {
            "configured": bool(value),
            "used_for": purpose,
            "hint": redact_secret(value),
        }
    return info


def get_diagnostics(config: dict | None = None, api_keys: dict | None = None) -> dict:
    """Gather all diagnostic information."""
    config = config or {}
    return {
        "app_version": APP_VERSION,
        "python_version": sys.version.split()[0],
        "requests_version": requests.__version__,
        "openai_base_url": config.get("openai_base_url"),
        "allow_generic_urls": bool(config.get("allow_generic_urls", False)),
        "api_keys": check_api_keys(api_keys),
    }
