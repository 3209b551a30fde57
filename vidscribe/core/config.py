"""
Application configuration manager.
Stores non-secret settings in a JSON file; API keys never live here.
"""

import json
import logging
from pathlib import Path

from vidscribe.core.constants import (
    CONFIG_PATH, OPENAI_API_BASE, TRANSCRIPTION_MODEL, SUMMARY_MODEL,
    MAX_COMPLETION_TOKENS, CAPTION_LANGUAGES,
    TRANSCRIPT_API_URL, TRANSCRIPT_API_HOST,
)

# Validation bounds
_TIMEOUT_MIN = 5
_TIMEOUT_MAX = 3600
_MAX_TOKENS_MIN = 16
_MAX_TOKENS_MAX = 16000

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'openai_base_url': OPENAI_API_BASE,
    'transcription_model': TRANSCRIPTION_MODEL,
    'summary_model': SUMMARY_MODEL,
    'max_completion_tokens': MAX_COMPLETION_TOKENS,
    'caption_languages': list(CAPTION_LANGUAGES),
    'request_timeout': None,          # None: transport default
    'allow_generic_urls': False,
    'transcript_api_url': TRANSCRIPT_API_URL,
    'transcript_api_host': TRANSCRIPT_API_HOST,
}


class AppConfig:
    """Manages application configuration stored as JSON."""

    def __init__(self, config_path: Path | None = None):
        self.path = config_path or CONFIG_PATH
        self._data: dict = {}
        self.load()

    def load(self):
        """Load config from disk, merging with defaults."""
        self._data = dict(_DEFAULTS)
        self._data['caption_languages'] = list(CAPTION_LANGUAGES)
        if self.path.exists():
            try:
                with open(self.path, 'r') as f:
                    saved = json.load(f)
                for key, value in saved.items():
                    self._data[key] = self._validate(key, value)
            except Exception as e:
                logger.warning("Failed to load config: %s", e)

    def save(self):
        """Persist config to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(self._data, f, indent=2)

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value):
        value = self._validate(key, value)
        self._data[key] = value
        self.save()

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key == 'request_timeout':
            if value is None:
                return None
            try:
                value = float(value)
            except (TypeError, ValueError):
                logger.warning("Invalid request_timeout %r, using transport default", value)
                return None
            return max(_TIMEOUT_MIN, min(_TIMEOUT_MAX, value))

        if key == 'max_completion_tokens':
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid max_completion_tokens %r, using default", value)
                return MAX_COMPLETION_TOKENS
            return max(_MAX_TOKENS_MIN, min(_MAX_TOKENS_MAX, value))

        if key == 'caption_languages':
            if isinstance(value, str):
                value = [v.strip() for v in value.split(',')]
            if not isinstance(value, (list, tuple)):
                logger.warning("Invalid caption_languages %r, using default", value)
                return list(CAPTION_LANGUAGES)
            langs = [str(v).strip() for v in value if str(v).strip()]
            return langs or list(CAPTION_LANGUAGES)

        if key == 'allow_generic_urls':
            return bool(value)

        if key == 'openai_base_url':
            value = str(value or OPENAI_API_BASE).rstrip('/')

        return value

    def as_dict(self) -> dict:
        return dict(self._data)

    @property
    def allow_generic_urls(self) -> bool:
        return self._data.get('allow_generic_urls', False)

    @allow_generic_urls.setter
    def allow_generic_urls(self, value: bool):
        self._data['allow_generic_urls'] = bool(value)
        self.save()

    @property
    def request_timeout(self) -> float | None:
        return self._data.get('request_timeout')
