"""
Transcript pipeline.
Resolves a video reference (or wraps uploaded bytes) and extracts a
transcript, always finishing in DONE or FAILED.
"""

import logging
from typing import Callable, Optional

from vidscribe.core.constants import (
    ErrorCode, Platform, Stage, SourceStrategy,
    OPENAI_API_BASE, TRANSCRIPTION_MODEL,
)
from vidscribe.core.error_codes import PipelineError
from vidscribe.core.models import (
    PipelineResult, Transcript, TranscriptionRequest, VideoReference,
)
from vidscribe.core.url_parse import resolve
from vidscribe.core.captions_fetch import fetch_transcript
from vidscribe.core.media_resolve import MediaResolver
from vidscribe.core.transcribe_whisper import AudioTranscriber
from vidscribe.core.security_utils import sanitize_title
from vidscribe.core.http_client import new_session

logger = logging.getLogger(__name__)


class TranscriptPipeline:
    """
    Orchestrates IDLE → RESOLVING → EXTRACTING → DONE | FAILED.
    Holds configuration only; every run gets its own session (closed when
    the run ends) and state.
    """

    def __init__(self, config: dict | None = None, api_keys: dict | None = None,
                 session_factory: Callable[[], object] | None = None):
        self.config = config or {}
        self.api_keys = api_keys or {}
        self.session_factory = session_factory or new_session

        # Callbacks
        self.on_stage_changed: Optional[Callable[[str], None]] = None

    # ── Config helpers ────────────────────────────────────────────────

    @property
    def allow_generic(self) -> bool:
        return bool(self.config.get('allow_generic_urls', False))

    @property
    def request_timeout(self) -> float | None:
        return self.config.get('request_timeout')

    def _transcriber(self, session) -> AudioTranscriber:
        return AudioTranscriber(
            api_key=self.api_keys.get('openai_api_key'),
            session=session,
            base_url=self.config.get('openai_base_url') or OPENAI_API_BASE,
            model=self.config.get('transcription_model') or TRANSCRIPTION_MODEL,
            timeout=self.request_timeout,
        )

    # ── Public entry points ───────────────────────────────────────────

    def run_url(self, url: str) -> PipelineResult:
        """Resolve a video URL and extract its transcript."""
        result = PipelineResult()
        session = self.session_factory()

        def _work():
            self._set_stage(result, Stage.RESOLVING)
            ref = resolve(url, allow_generic=self.allow_generic)
            result.reference = ref
            logger.info("Resolved %s → %s/%s", url, ref.platform, ref.id)

            self._set_stage(result, Stage.EXTRACTING)
            if ref.platform == Platform.YOUTUBE:
                return fetch_transcript(ref, session=session, config=self.config,
                                        api_keys=self.api_keys)
            return self._transcribe_generic(ref, session)

        return self._run(result, _work, session)

    def run_file(self, file_bytes: bytes, file_name: str, mime_type: str) -> PipelineResult:
        """Transcribe uploaded audio/video bytes."""
        result = PipelineResult()
        session = self.session_factory()

        def _work():
            self._set_stage(result, Stage.RESOLVING)
            if not file_bytes or not file_name:
                raise PipelineError(ErrorCode.INVALID_REQUEST,
                                    "File data, name, and mime type are required")
            request = TranscriptionRequest(file_bytes=file_bytes, file_name=file_name,
                                           mime_type=mime_type or "")

            self._set_stage(result, Stage.EXTRACTING)
            text = self._transcriber(session).transcribe_request(request)
            return Transcript(text=text, source_strategy=SourceStrategy.AUDIO_UPLOAD,
                              video_title=file_name)

        return self._run(result, _work, session)

    # ── Internals ─────────────────────────────────────────────────────

    def _transcribe_generic(self, ref: VideoReference, session) -> Transcript:
        """Non-YouTube path: resolve media URL → download → speech-to-text."""
        resolver = MediaResolver(session, self.api_keys.get('rapidapi_key'),
                                 timeout=self.request_timeout)
        info = resolver.resolve_media(ref)
        media = resolver.download_media(info)

        file_name = f"{sanitize_title(info.title)}.mp4"
        text = self._transcriber(session).transcribe(media, file_name, "video/mp4")
        return Transcript(text=text, source_strategy=SourceStrategy.GENERIC_MEDIA,
                          video_title=info.title)

    def _run(self, result: PipelineResult, work: Callable[[], Transcript],
             session) -> PipelineResult:
        try:
            result.transcript = work()
            self._set_stage(result, Stage.DONE)
            logger.info("Transcript ready: %d chars via %s",
                        len(result.transcript.text), result.transcript.source_strategy)
        except PipelineError as e:
            logger.warning("Pipeline failed in %s: %s", result.stage, e)
            result.error = e
            self._set_stage(result, Stage.FAILED)
        except Exception as e:
            logger.error("Unexpected pipeline error: %s", e, exc_info=True)
            result.error = PipelineError(ErrorCode.UNEXPECTED,
                                         f"An unexpected error occurred: {e}"[:2000])
            self._set_stage(result, Stage.FAILED)
        finally:
            session.close()
        return result

    def _set_stage(self, result: PipelineResult, stage: str):
        result.stage = stage
        if self.on_stage_changed:
            try:
                self.on_stage_changed(stage)
            except Exception as e:
                logger.warning("on_stage_changed callback failed: %s", e)
