"""
Summarization collaborator (OpenAI-compatible /chat/completions).
Builds the system/user messages around a transcript or follow-up prompt.
"""

import json
import logging
import requests

from vidscribe.core.error_codes import PipelineError, upstream_error
from vidscribe.core.http_client import send
from vidscribe.core.constants import (
    ErrorCode, Platform, SourceStrategy,
    OPENAI_API_BASE, SUMMARY_MODEL, MAX_COMPLETION_TOKENS,
)
from vidscribe.core.models import Transcript

logger = logging.getLogger(__name__)

SERVICE_NAME = "OpenAI API"

_SYSTEM_SUFFIX = "Provide clear, concise, and well-structured responses."

FOLLOW_UP_SYSTEM = (
    "You are a helpful assistant that analyzes and answers questions about media "
    "transcripts and previous analyses. Provide clear, concise, and well-structured "
    "responses based on the conversation history provided."
)


def system_message_for(transcript: Transcript, platform: str | None = None) -> str:
    if transcript.source_strategy == SourceStrategy.AUDIO_UPLOAD:
        subject = "audio and video transcripts"
    elif platform and platform not in (Platform.YOUTUBE, Platform.GENERIC):
        subject = f"video transcripts from {platform}"
    elif transcript.source_strategy == SourceStrategy.GENERIC_MEDIA:
        subject = "video transcripts"
    else:
        subject = "YouTube video transcripts"
    return f"You are a helpful assistant that analyzes {subject}. {_SYSTEM_SUFFIX}"


def default_prompt_for(transcript: Transcript, platform: str | None = None) -> str:
    if transcript.source_strategy == SourceStrategy.AUDIO_UPLOAD:
        return "Summarize this audio/video content"
    if platform and platform not in (Platform.YOUTUBE, Platform.GENERIC):
        return f"Summarize this {platform} video content"
    return "Summarize this video"


def build_summary_messages(transcript: Transcript, prompt: str | None = None,
                           context: str | None = None,
                           platform: str | None = None) -> list[dict]:
    user_prompt = (prompt or "").strip() or default_prompt_for(transcript, platform)
    user_message = f"{user_prompt}\n\nTranscript:\n{transcript.text}"
    if context and context.strip():
        user_message = f"{context.strip()}\n\n{user_message}"
    return [
        {"role": "system", "content": system_message_for(transcript, platform)},
        {"role": "user", "content": user_message},
    ]


def build_follow_up_messages(prompt: str, context: str | None = None) -> list[dict]:
    if not prompt or not prompt.strip():
        raise PipelineError(ErrorCode.INVALID_REQUEST, "Prompt is required")

    if context and context.strip():
        user_message = (f"{context}\n\n"
                        "Based on the above conversation history, please answer "
                        "this follow-up question:\n\n")
    else:
        user_message = "Please answer this question:\n\n"
    user_message += prompt
    return [
        {"role": "system", "content": FOLLOW_UP_SYSTEM},
        {"role": "user", "content": user_message},
    ]


class Summarizer:
    """Sends transcripts and follow-up prompts to the chat completion endpoint."""

    def __init__(self, config: dict | None = None, api_keys: dict | None = None,
                 session=None):
        config = config or {}
        api_keys = api_keys or {}
        self.api_key = api_keys.get('openai_api_key')
        self.base_url = (config.get('openai_base_url') or OPENAI_API_BASE).rstrip('/')
        self.model = config.get('summary_model') or SUMMARY_MODEL
        self.max_tokens = config.get('max_completion_tokens') or MAX_COMPLETION_TOKENS
        self.timeout = config.get('request_timeout')
        self.session = session or requests.Session()

    def summarize(self, transcript: Transcript, prompt: str | None = None,
                  context: str | None = None, platform: str | None = None) -> str:
        messages = build_summary_messages(transcript, prompt, context, platform)
        return self._complete(messages)

    def follow_up(self, prompt: str, context: str | None = None) -> str:
        messages = build_follow_up_messages(prompt, context)
        logger.info("Follow-up prompt, context length %d", len(context or ""))
        return self._complete(messages)

    def _complete(self, messages: list[dict]) -> str:
        if not self.api_key:
            raise PipelineError(ErrorCode.CONFIGURATION_MISSING,
                                "OPENAI_API_KEY is not configured")

        logger.info("Calling %s (%s)...", SERVICE_NAME, self.model)
        try:
            resp = send(
                self.session, "POST", f"{self.base_url}/chat/completions", SERVICE_NAME,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.model,
                    "messages": messages,
                    "max_completion_tokens": self.max_tokens,
                },
                timeout=self.timeout,
            )
        except PipelineError as e:
            raise _with_api_message(e)

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise upstream_error(SERVICE_NAME, resp.status_code, resp.text,
                                 message="Failed to parse OpenAI API response")

        logger.info("Successfully generated AI response")
        return (content or "").strip()


def _with_api_message(error: PipelineError) -> PipelineError:
    """Prefer the API's own error.message when the body carries one."""
    if not error.detail:
        return error
    try:
        message = json.loads(error.detail).get("error", {}).get("message")
    except (ValueError, AttributeError):
        return error
    if not message:
        return error
    return PipelineError(error.code, f"OpenAI API error ({error.status}): {message}",
                         status=error.status, detail=error.detail)
