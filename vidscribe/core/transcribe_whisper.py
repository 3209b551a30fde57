"""
Speech-to-text integration (OpenAI-compatible /audio/transcriptions).
Validates size and type locally, then submits one multipart request
asking for plain-text output.
"""

import logging
import requests

from vidscribe.core.error_codes import PipelineError
from vidscribe.core.constants import (
    ErrorCode, OPENAI_API_BASE, TRANSCRIPTION_MODEL, TRANSCRIPTION_LANGUAGE,
    MAX_UPLOAD_BYTES, MAX_AUDIO_DURATION_HOURS,
    SUPPORTED_MIME_TYPES, SUPPORTED_EXTENSIONS,
    M4A_MIME_TYPES, M4A_NORMALIZED_MIME,
)
from vidscribe.core.models import TranscriptionRequest

logger = logging.getLogger(__name__)

SERVICE_NAME = "Speech-to-text service"

# Best-effort classification of upstream error bodies.  The wording is not a
# stable contract; unmatched bodies fall through to the generic message.
_ERROR_HINTS = [
    (("invalid file format", "unsupported file", "could not be decoded", "invalid_file_format"),
     "The file format is not supported by the transcription service. "
     "Try converting it to MP3 or WAV."),
    (("maximum content size", "too large", "file size", "413"),
     "The file is too large for the transcription service (maximum 25MB)."),
    (("duration", "too long", "audio length"),
     f"The audio is longer than the transcription service allows "
     f"(about {MAX_AUDIO_DURATION_HOURS} hours)."),
]


def classify_upstream_error(status: int, body: str) -> str:
    """Map a non-2xx transcription response to a human-readable message."""
    lowered = (body or "").lower()
    for needles, message in _ERROR_HINTS:
        if any(n in lowered for n in needles):
            return message
    return f"Transcription failed ({status})"


def normalize_mime_type(file_name: str, mime_type: str) -> str:
    """M4A is always submitted as audio/mp4; the raw x-m4a label is rejected upstream."""
    mime = (mime_type or "").lower().split(';')[0].strip()
    if file_name.lower().endswith('.m4a') or mime in M4A_MIME_TYPES:
        return M4A_NORMALIZED_MIME
    return mime


def is_supported_type(file_name: str, mime_type: str) -> bool:
    mime = (mime_type or "").lower().split(';')[0].strip()
    ext = file_name.lower().rsplit('.', 1)[-1] if '.' in file_name else ''
    return mime in SUPPORTED_MIME_TYPES or ext in SUPPORTED_EXTENSIONS


def validate_request(request: TranscriptionRequest):
    """Size first, then type.  Raises before any network call."""
    if request.size_bytes > MAX_UPLOAD_BYTES:
        raise PipelineError(
            ErrorCode.FILE_TOO_LARGE,
            f"File size {request.size_bytes / (1024 * 1024):.1f}MB exceeds 25MB limit",
        )
    if not is_supported_type(request.file_name, request.mime_type):
        raise PipelineError(
            ErrorCode.UNSUPPORTED_FILE_TYPE,
            f"Unsupported file type: {request.mime_type or 'unknown'} ({request.file_name})",
        )


class AudioTranscriber:
    """Submits audio bytes to the speech-to-text collaborator."""

    def __init__(self, api_key: str | None, session=None, base_url: str = OPENAI_API_BASE,
                 model: str = TRANSCRIPTION_MODEL, language: str = TRANSCRIPTION_LANGUAGE,
                 timeout: float | None = None):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.language = language
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/audio/transcriptions"

    def transcribe(self, audio_bytes: bytes, file_name: str, mime_type: str) -> str:
        """
        Transcribe audio bytes and return plain text.
        Raises PipelineError(FILE_TOO_LARGE | UNSUPPORTED_FILE_TYPE |
        CONFIGURATION_MISSING | UPSTREAM_SERVICE_ERROR | TRANSCRIPTION_EMPTY).
        """
        request = TranscriptionRequest(file_bytes=audio_bytes, file_name=file_name,
                                       mime_type=mime_type)
        return self.transcribe_request(request)

    def transcribe_request(self, request: TranscriptionRequest) -> str:
        validate_request(request)

        if not self.api_key:
            raise PipelineError(ErrorCode.CONFIGURATION_MISSING,
                                "OPENAI_API_KEY is not configured")

        mime = normalize_mime_type(request.file_name, request.mime_type)
        logger.info("Transcribing %s (%d bytes, %s)", request.file_name, request.size_bytes, mime)

        try:
            resp = self.session.post(
                self.endpoint,
                headers={"Authorization": f"Bearer {self.api_key}"},
                files={"file": (request.file_name, request.file_bytes, mime)},
                data={
                    "model": self.model,
                    "response_format": "text",
                    "language": self.language,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise PipelineError(ErrorCode.UPSTREAM_SERVICE_ERROR,
                                f"{SERVICE_NAME} request timed out")
        except requests.exceptions.ConnectionError:
            raise PipelineError(ErrorCode.UPSTREAM_SERVICE_ERROR,
                                f"Network error connecting to {SERVICE_NAME}")
        except requests.exceptions.RequestException as e:
            raise PipelineError(ErrorCode.UPSTREAM_SERVICE_ERROR,
                                f"{SERVICE_NAME} request failed: {e}")

        if not 200 <= resp.status_code < 300:
            # Sanitize error message (never log API key)
            error_body = resp.text[:300] if resp.text else "No response body"
            logger.warning("%s returned %s: %s", SERVICE_NAME, resp.status_code, error_body)
            raise PipelineError(ErrorCode.UPSTREAM_SERVICE_ERROR,
                                classify_upstream_error(resp.status_code, error_body),
                                status=resp.status_code, detail=error_body)

        text = (resp.text or "").strip()
        if not text:
            raise PipelineError(ErrorCode.TRANSCRIPTION_EMPTY,
                                "No transcript generated from the audio file")

        logger.info("Transcription complete, %d chars", len(text))
        return text
