"""
YouTube caption acquisition: an ordered chain of extraction strategies.

    1. direct         - public timed-text endpoint, en / en-US / en-GB
    2. page_structured - watch page, embedded ytInitialPlayerResponse
    3. page_raw       - watch page, bare "captionTracks" array literal
    4. delegated_api  - paid third-party transcript API (only with a key)

Strategies run one after another and the first usable transcript wins.
Transport failures are swallowed for every strategy but the last.
"""

import json
import re
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from vidscribe.core.captions_parse import parse_caption_xml, join_segments
from vidscribe.core.constants import (
    ErrorCode, Platform, SourceStrategy,
    YOUTUBE_TIMEDTEXT_URL, YOUTUBE_WATCH_URL, CAPTION_LANGUAGES,
    PREFERRED_LANGUAGE_PREFIX, BROWSER_USER_AGENT, BROWSER_ACCEPT_LANGUAGE,
    PLAYER_RESPONSE_MARKER, CAPTION_TRACKS_MARKER, MIN_CAPTION_TEXT_LEN,
    TRANSCRIPT_API_URL, TRANSCRIPT_API_HOST,
)
from vidscribe.core.error_codes import PipelineError
from vidscribe.core.http_client import send, new_session
from vidscribe.core.models import CaptionTrack, Transcript, VideoReference

logger = logging.getLogger(__name__)

_PLAYER_RESPONSE_RE = re.compile(re.escape(PLAYER_RESPONSE_MARKER) + r'\s*=\s*')
_DECODER = json.JSONDecoder()

Strategy = Callable[[VideoReference, "FetchContext"], Optional[Transcript]]


@dataclass
class FetchContext:
    """
    Per-invocation state shared by the strategies of one chain run.
    Holds the HTTP session and memoizes the watch page so strategies 2 and 3
    fetch it at most once.
    """
    session: object
    languages: list = field(default_factory=lambda: list(CAPTION_LANGUAGES))
    timeout: float | None = None
    transcript_api_key: str | None = None
    transcript_api_url: str = TRANSCRIPT_API_URL
    transcript_api_host: str = TRANSCRIPT_API_HOST

    _page_html: str | None = field(default=None, repr=False)
    _page_error: PipelineError | None = field(default=None, repr=False)
    player_response: dict | None = field(default=None, repr=False)

    def watch_page(self, ref: VideoReference) -> str:
        if self._page_error is not None:
            raise self._page_error
        if self._page_html is None:
            try:
                resp = send(
                    self.session, "GET", YOUTUBE_WATCH_URL, "YouTube watch page",
                    params={"v": ref.id},
                    headers=_browser_headers(),
                    timeout=self.timeout,
                )
            except PipelineError as e:
                self._page_error = e
                raise
            self._page_html = resp.text or ""
        return self._page_html


def _browser_headers() -> dict:
    return {
        "User-Agent": BROWSER_USER_AGENT,
        "Accept-Language": BROWSER_ACCEPT_LANGUAGE,
    }


def is_usable_caption_text(text: str) -> bool:
    return len(text.strip()) > MIN_CAPTION_TEXT_LEN


# ── Page-scrape helpers ───────────────────────────────────────────────

def extract_player_response(html: str) -> dict | None:
    """Decode the first ytInitialPlayerResponse object literal in the page."""
    for m in _PLAYER_RESPONSE_RE.finditer(html or ""):
        try:
            obj, _ = _DECODER.raw_decode(html, m.end())
        except ValueError:
            continue
        if isinstance(obj, dict):
            return obj
    return None


def extract_caption_tracks_literal(html: str) -> list | None:
    """Decode the first "captionTracks": [...] array found anywhere in the page."""
    if not html:
        return None
    start = 0
    while True:
        idx = html.find(CAPTION_TRACKS_MARKER, start)
        if idx < 0:
            return None
        pos = idx + len(CAPTION_TRACKS_MARKER)
        while pos < len(html) and html[pos].isspace():
            pos += 1
        try:
            obj, _ = _DECODER.raw_decode(html, pos)
        except ValueError:
            obj = None
        if isinstance(obj, list):
            return obj
        start = pos


def caption_tracks_from_player_response(player_response: dict) -> list:
    captions = player_response.get("captions")
    if not isinstance(captions, dict):
        return []
    renderer = captions.get("playerCaptionsTracklistRenderer")
    if not isinstance(renderer, dict):
        return []
    tracks = renderer.get("captionTracks")
    return tracks if isinstance(tracks, list) else []


def to_caption_tracks(raw_tracks: list) -> list[CaptionTrack]:
    tracks = []
    for raw in raw_tracks or []:
        if not isinstance(raw, dict):
            continue
        base_url = raw.get("baseUrl")
        if not isinstance(base_url, str) or not base_url:
            continue
        name = raw.get("name")
        if isinstance(name, dict):
            name = name.get("simpleText") or "".join(
                r.get("text", "") for r in name.get("runs", []) if isinstance(r, dict)
            ) or None
        elif not isinstance(name, str):
            name = None
        tracks.append(CaptionTrack(
            language_code=str(raw.get("languageCode") or ""),
            base_url=base_url,
            name=name,
            kind=raw.get("kind"),
        ))
    return tracks


def select_caption_track(tracks: list[CaptionTrack],
                         prefix: str = PREFERRED_LANGUAGE_PREFIX) -> CaptionTrack | None:
    """English track if one exists, else the first track."""
    if not tracks:
        return None
    for track in tracks:
        if track.language_code.lower().startswith(prefix):
            return track
    return tracks[0]


def _video_title(player_response: dict | None) -> str | None:
    if not isinstance(player_response, dict):
        return None
    details = player_response.get("videoDetails")
    if isinstance(details, dict) and isinstance(details.get("title"), str):
        return details["title"]
    return None


def _fetch_track_text(ctx: FetchContext, track: CaptionTrack) -> str:
    url = track.base_url
    if url.startswith("/"):
        url = "https://www.youtube.com" + url
    resp = send(ctx.session, "GET", url, "YouTube caption track",
                headers=_browser_headers(), timeout=ctx.timeout)
    return parse_caption_xml(resp.text or "")


def _transcript_from_tracks(ctx: FetchContext, raw_tracks: list, source: str,
                            title: str | None = None) -> Transcript | None:
    track = select_caption_track(to_caption_tracks(raw_tracks))
    if track is None:
        logger.info("No caption tracks listed (%s)", source)
        return None

    logger.info("Using caption track %r (%s)", track.language_code, source)
    text = _fetch_track_text(ctx, track)
    if not is_usable_caption_text(text):
        return None
    return Transcript(text=text, source_strategy=source, video_title=title)


# ── Strategies ────────────────────────────────────────────────────────

def fetch_timedtext(ref: VideoReference, ctx: FetchContext) -> Transcript | None:
    """Strategy 1: query the public timed-text endpoint per language."""
    last_error = None
    transport_failures = 0

    for lang in ctx.languages:
        try:
            resp = send(ctx.session, "GET", YOUTUBE_TIMEDTEXT_URL, "YouTube timedtext",
                        params={"v": ref.id, "lang": lang}, timeout=ctx.timeout)
        except PipelineError as e:
            logger.info("timedtext lang=%s failed: %s", lang, e.message)
            last_error = e
            transport_failures += 1
            continue

        body = resp.text or ""
        if "<text" not in body:
            continue
        text = parse_caption_xml(body)
        if is_usable_caption_text(text):
            return Transcript(text=text, source_strategy=SourceStrategy.DIRECT)

    if last_error is not None and transport_failures == len(ctx.languages):
        raise last_error
    return None


def fetch_from_player_response(ref: VideoReference, ctx: FetchContext) -> Transcript | None:
    """Strategy 2: embedded player-state JSON on the watch page."""
    html = ctx.watch_page(ref)
    ctx.player_response = extract_player_response(html)

    if ctx.player_response is None:
        logger.info("No parsable %s on watch page for %s", PLAYER_RESPONSE_MARKER, ref.id)
        return None

    raw_tracks = caption_tracks_from_player_response(ctx.player_response)
    return _transcript_from_tracks(ctx, raw_tracks, SourceStrategy.PAGE_STRUCTURED,
                                   _video_title(ctx.player_response))


def fetch_from_caption_tracks(ref: VideoReference, ctx: FetchContext) -> Transcript | None:
    """Strategy 3: raw "captionTracks" literal, only when strategy 2 had no blob."""
    if ctx.player_response is not None:
        return None

    html = ctx.watch_page(ref)
    raw_tracks = extract_caption_tracks_literal(html)
    if raw_tracks is None:
        logger.info("No captionTracks literal on watch page for %s", ref.id)
        return None
    return _transcript_from_tracks(ctx, raw_tracks, SourceStrategy.PAGE_RAW)


def _segments_from_payload(payload) -> list | None:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("transcript", "segments", "content"):
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return None


def fetch_from_delegated_api(ref: VideoReference, ctx: FetchContext) -> Transcript | None:
    """Strategy 4: third-party transcript API (billed, so always last)."""
    if not ctx.transcript_api_key:
        return None

    resp = send(
        ctx.session, "GET", ctx.transcript_api_url, "Transcript API",
        params={"videoId": ref.id},
        headers={
            "x-rapidapi-key": ctx.transcript_api_key,
            "x-rapidapi-host": ctx.transcript_api_host,
        },
        timeout=ctx.timeout,
    )
    try:
        payload = resp.json()
    except ValueError:
        logger.warning("Transcript API returned non-JSON body for %s", ref.id)
        return None

    text = join_segments(_segments_from_payload(payload))
    if not text.strip():
        return None
    return Transcript(text=text.strip(), source_strategy=SourceStrategy.DELEGATED_API)


# ── Chain ─────────────────────────────────────────────────────────────

class StrategyChain:
    """
    Fixed-order evaluator over (name, strategy) pairs.
    Stops at the first strategy that returns a Transcript.
    """

    def __init__(self, strategies: list[tuple[str, Strategy]]):
        self.strategies = list(strategies)

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.strategies]

    def run(self, ref: VideoReference, ctx: FetchContext) -> Transcript:
        last_idx = len(self.strategies) - 1

        for idx, (name, strategy) in enumerate(self.strategies):
            logger.info("Trying caption strategy %s for %s", name, ref.id)
            try:
                transcript = strategy(ref, ctx)
            except PipelineError as e:
                if idx == last_idx:
                    raise
                logger.warning("Caption strategy %s failed for %s: %s", name, ref.id, e.message)
                continue

            if transcript is not None:
                logger.info("Caption strategy %s succeeded for %s (%d chars)",
                            name, ref.id, len(transcript.text))
                return transcript

        raise PipelineError(
            ErrorCode.NO_CAPTIONS_AVAILABLE,
            "No captions available for this video. Please ensure the video has "
            "English captions or auto-generated subtitles enabled.",
        )


def build_youtube_chain(use_delegated_api: bool = False) -> StrategyChain:
    strategies = [
        (SourceStrategy.DIRECT, fetch_timedtext),
        (SourceStrategy.PAGE_STRUCTURED, fetch_from_player_response),
        (SourceStrategy.PAGE_RAW, fetch_from_caption_tracks),
    ]
    if use_delegated_api:
        strategies.append((SourceStrategy.DELEGATED_API, fetch_from_delegated_api))
    return StrategyChain(strategies)


def fetch_transcript(ref: VideoReference, session=None, config: dict | None = None,
                     api_keys: dict | None = None) -> Transcript:
    """
    Run the YouTube strategy chain for one reference.
    Raises PipelineError(NO_CAPTIONS_AVAILABLE | UPSTREAM_SERVICE_ERROR).
    """
    if ref.platform != Platform.YOUTUBE:
        raise PipelineError(ErrorCode.INVALID_REFERENCE,
                            f"Caption chain only handles YouTube, got {ref.platform}")

    config = config or {}
    api_keys = api_keys or {}
    key = api_keys.get("transcript_api_key")

    ctx = FetchContext(
        session=session or new_session(),
        languages=list(config.get("caption_languages") or CAPTION_LANGUAGES),
        timeout=config.get("request_timeout"),
        transcript_api_key=key,
        transcript_api_url=config.get("transcript_api_url") or TRANSCRIPT_API_URL,
        transcript_api_host=config.get("transcript_api_host") or TRANSCRIPT_API_HOST,
    )
    return build_youtube_chain(use_delegated_api=bool(key)).run(ref, ctx)
