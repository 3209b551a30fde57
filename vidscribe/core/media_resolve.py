"""
Generic-platform media resolution.
Turns a non-YouTube video URL into a directly downloadable media URL using a
primary video-info API and a social-media-downloader fallback, then downloads
the media for transcription.
"""

import logging

from vidscribe.core.error_codes import PipelineError
from vidscribe.core.http_client import send
from vidscribe.core.constants import (
    ErrorCode, Platform, MAX_UPLOAD_BYTES, DOWNLOAD_CHUNK_SIZE,
    MEDIA_PRIMARY_URL, MEDIA_PRIMARY_HOST,
    MEDIA_ALTERNATIVE_URL, MEDIA_ALTERNATIVE_HOST,
)
from vidscribe.core.models import MediaInfo, VideoReference

logger = logging.getLogger(__name__)

YOUTUBE_GUIDANCE = (
    "Please use the YouTube path for YouTube videos - "
    "it's faster and more reliable for YouTube content."
)


def _pick_primary_link(links) -> str:
    """Audio link first, then video, then whatever comes first."""
    if not isinstance(links, list) or not links:
        return ""
    entries = [l for l in links if isinstance(l, dict)]

    def _is(kind: str, entry: dict) -> bool:
        mime = entry.get('mime') or entry.get('mimeType') or ''
        return entry.get('type') == kind or kind in str(mime)

    for kind in ('audio', 'video'):
        for entry in entries:
            if _is(kind, entry) and entry.get('link'):
                return entry['link']
    for entry in entries:
        if entry.get('link'):
            return entry['link']
    return ""


class MediaResolver:
    """Resolves and downloads media for non-YouTube platforms."""

    def __init__(self, session, rapidapi_key: str | None, timeout: float | None = None,
                 max_bytes: int = MAX_UPLOAD_BYTES):
        self.session = session
        self.rapidapi_key = rapidapi_key
        self.timeout = timeout
        self.max_bytes = max_bytes

    def _headers(self, host: str) -> dict:
        return {
            "x-rapidapi-key": self.rapidapi_key,
            "x-rapidapi-host": host,
            "content-type": "application/json",
        }

    def resolve_media(self, ref: VideoReference) -> MediaInfo:
        """
        Return a MediaInfo with a direct download URL.
        Raises PipelineError(INVALID_REFERENCE | CONFIGURATION_MISSING |
        UPSTREAM_SERVICE_ERROR | MEDIA_UNAVAILABLE).
        """
        if ref.platform == Platform.YOUTUBE:
            raise PipelineError(ErrorCode.INVALID_REFERENCE, YOUTUBE_GUIDANCE)

        if not self.rapidapi_key:
            raise PipelineError(ErrorCode.CONFIGURATION_MISSING,
                                "Video processing service is not configured (RAPIDAPI_KEY)")

        logger.info("Resolving media for %s (%s)", ref.raw_url, ref.platform)
        try:
            info = self._resolve_primary(ref)
        except PipelineError as e:
            logger.info("Primary media API failed (%s), trying alternative...", e.message)
            info = self._resolve_alternative(ref)

        if not info.download_url:
            raise PipelineError(
                ErrorCode.MEDIA_UNAVAILABLE,
                f"Unable to process this {ref.platform} video. It might be private, "
                f"geo-restricted, or in an unsupported format.",
            )
        return info

    def _resolve_primary(self, ref: VideoReference) -> MediaInfo:
        resp = send(self.session, "POST", MEDIA_PRIMARY_URL, "Video info API",
                    headers=self._headers(MEDIA_PRIMARY_HOST),
                    json={"id": ref.raw_url}, timeout=self.timeout)
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        return MediaInfo(
            download_url=_pick_primary_link(data.get('link')),
            title=data.get('title') or 'Unknown Video',
            provider="primary",
        )

    def _resolve_alternative(self, ref: VideoReference) -> MediaInfo:
        try:
            resp = send(self.session, "POST", MEDIA_ALTERNATIVE_URL, "Social media downloader API",
                        headers=self._headers(MEDIA_ALTERNATIVE_HOST),
                        json={"url": ref.raw_url}, timeout=self.timeout)
        except PipelineError as e:
            raise PipelineError(
                ErrorCode.UPSTREAM_SERVICE_ERROR,
                f"Could not extract video from {ref.platform}. "
                f"The video might be private or geo-restricted.",
                status=e.status, detail=e.detail,
            )

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        links = data.get('links')
        download_url = ""
        if isinstance(links, list) and links and isinstance(links[0], dict):
            download_url = links[0].get('link') or ""

        return MediaInfo(
            download_url=download_url,
            title=data.get('title') or f"{ref.platform} video",
            provider="alternative",
        )

    def download_media(self, info: MediaInfo) -> bytes:
        """
        Stream the resolved media into memory, stopping as soon as it
        exceeds max_bytes.  The response is always closed.
        Raises PipelineError(UPSTREAM_SERVICE_ERROR | FILE_TOO_LARGE).
        """
        logger.info("Downloading media from %s provider...", info.provider)
        with send(self.session, "GET", info.download_url, "Media download",
                  stream=True, timeout=self.timeout) as resp:
            declared = resp.headers.get('Content-Length') if resp.headers else None
            if declared and declared.isdigit() and int(declared) > self.max_bytes:
                raise _too_large()

            chunks = []
            total = 0
            for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if not chunk:
                    continue
                total += len(chunk)
                if total > self.max_bytes:
                    logger.warning("Media download passed %d bytes, aborting", self.max_bytes)
                    raise _too_large()
                chunks.append(chunk)

        logger.info("Media downloaded, %d bytes", total)
        return b"".join(chunks)


def _too_large() -> PipelineError:
    return PipelineError(ErrorCode.FILE_TOO_LARGE,
                         "Audio file is too large for transcription (max 25MB)")
