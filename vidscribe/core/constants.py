"""
Shared constants for vidscribe.
Imported by every other module.
"""

import pathlib

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "vidscribe"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
HOME = pathlib.Path.home()

APP_CONFIG_DIR = HOME / ".config" / APP_NAME
APP_CACHE_DIR = HOME / ".cache" / APP_NAME
LOG_DIR = APP_CACHE_DIR / "logs"
CONFIG_PATH = APP_CONFIG_DIR / "config.json"

# ── Environment variables holding secrets ────────────────────────────
ENV_OPENAI_API_KEY = "OPENAI_API_KEY"
ENV_RAPIDAPI_KEY = "RAPIDAPI_KEY"
ENV_TRANSCRIPT_API_KEY = "TRANSCRIPT_API_KEY"

# ── Pipeline stages (ordered) ────────────────────────────────────────
class Stage:
    IDLE = "IDLE"
    RESOLVING = "RESOLVING"
    EXTRACTING = "EXTRACTING"
    DONE = "DONE"
    FAILED = "FAILED"


# ── Platforms ────────────────────────────────────────────────────────
class Platform:
    YOUTUBE = "youtube"
    VIMEO = "vimeo"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    DAILYMOTION = "dailymotion"
    TWITCH = "twitch"
    GENERIC = "generic"

# First match wins; youtube must stay first.
PLATFORM_MARKERS = [
    (Platform.YOUTUBE, ("youtube.com", "youtu.be", "youtube-nocookie.com")),
    (Platform.VIMEO, ("vimeo.com",)),
    (Platform.TIKTOK, ("tiktok.com",)),
    (Platform.INSTAGRAM, ("instagram.com",)),
    (Platform.TWITTER, ("twitter.com", "x.com")),
    (Platform.FACEBOOK, ("facebook.com", "fb.watch")),
    (Platform.DAILYMOTION, ("dailymotion.com", "dai.ly")),
    (Platform.TWITCH, ("twitch.tv",)),
]

_ID = r'([^&\n?#/]+)'

# Prioritized id matchers per platform.  Non-youtube platforms additionally
# fall back to the last path segment.
VIDEO_ID_PATTERNS = {
    Platform.YOUTUBE: [
        r'youtube(?:-nocookie)?\.com/watch\?(?:[^#\n]*&)?v=' + _ID,
        r'youtu\.be/' + _ID,
        r'youtube(?:-nocookie)?\.com/embed/' + _ID,
        r'youtube\.com/v/' + _ID,
        r'youtube\.com/shorts/' + _ID,
        r'youtube\.com/live/' + _ID,
    ],
    Platform.VIMEO: [
        r'vimeo\.com/(?:video/)?(\d+)',
    ],
    Platform.TIKTOK: [
        r'tiktok\.com/@[^/]+/video/(\d+)',
    ],
    Platform.INSTAGRAM: [
        r'instagram\.com/(?:p|reel|reels|tv)/([\w-]+)',
    ],
    Platform.TWITTER: [
        r'(?:twitter|x)\.com/[^/]+/status/(\d+)',
    ],
    Platform.FACEBOOK: [
        r'facebook\.com/.*?/videos/(?:[^/]+/)?(\d+)',
        r'facebook\.com/watch/?\?(?:[^#\n]*&)?v=(\d+)',
        r'fb\.watch/([\w-]+)',
    ],
    Platform.DAILYMOTION: [
        r'dailymotion\.com/video/([a-zA-Z0-9]+)',
        r'dai\.ly/([a-zA-Z0-9]+)',
    ],
    Platform.TWITCH: [
        r'twitch\.tv/videos/(\d+)',
        r'clips\.twitch\.tv/([\w-]+)',
        r'twitch\.tv/[^/]+/clip/([\w-]+)',
    ],
}

# ── Transcript sources ───────────────────────────────────────────────
class SourceStrategy:
    DIRECT = "direct"
    PAGE_STRUCTURED = "page_structured"
    PAGE_RAW = "page_raw"
    DELEGATED_API = "delegated_api"
    AUDIO_UPLOAD = "audio_upload"
    GENERIC_MEDIA = "generic_media"

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    INVALID_REFERENCE = "ERR_INVALID_REFERENCE"
    NO_CAPTIONS_AVAILABLE = "ERR_NO_CAPTIONS_AVAILABLE"
    FILE_TOO_LARGE = "ERR_FILE_TOO_LARGE"
    UNSUPPORTED_FILE_TYPE = "ERR_UNSUPPORTED_FILE_TYPE"
    TRANSCRIPTION_EMPTY = "ERR_TRANSCRIPTION_EMPTY"
    CONFIGURATION_MISSING = "ERR_CONFIGURATION_MISSING"
    MEDIA_UNAVAILABLE = "ERR_MEDIA_UNAVAILABLE"
    INVALID_REQUEST = "ERR_INVALID_REQUEST"
    UNEXPECTED = "ERR_UNEXPECTED"

    # Retryable
    UPSTREAM_SERVICE_ERROR = "ERR_UPSTREAM_SERVICE"

RETRYABLE_ERRORS = {
    ErrorCode.UPSTREAM_SERVICE_ERROR,
}

# ── YouTube endpoints ─────────────────────────────────────────────────
YOUTUBE_TIMEDTEXT_URL = "https://www.youtube.com/api/timedtext"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch"
CAPTION_LANGUAGES = ["en", "en-US", "en-GB"]
PREFERRED_LANGUAGE_PREFIX = "en"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
BROWSER_ACCEPT_LANGUAGE = "en-US,en;q=0.9"

PLAYER_RESPONSE_MARKER = "ytInitialPlayerResponse"
CAPTION_TRACKS_MARKER = '"captionTracks":'

# Caption text must be longer than this to count as a transcript.
MIN_CAPTION_TEXT_LEN = 10

# ── Delegated transcript API ──────────────────────────────────────────
TRANSCRIPT_API_URL = "https://youtube-transcript3.p.rapidapi.com/api/transcript"
TRANSCRIPT_API_HOST = "youtube-transcript3.p.rapidapi.com"

# ── Generic media resolution (RapidAPI) ───────────────────────────────
MEDIA_PRIMARY_URL = "https://ytstream-download-youtube-videos.p.rapidapi.com/dl"
MEDIA_PRIMARY_HOST = "ytstream-download-youtube-videos.p.rapidapi.com"
MEDIA_ALTERNATIVE_URL = "https://social-media-video-downloader.p.rapidapi.com/smvd/get/all"
MEDIA_ALTERNATIVE_HOST = "social-media-video-downloader.p.rapidapi.com"

# ── Speech-to-text / LLM (OpenAI-compatible) ──────────────────────────
OPENAI_API_BASE = "https://api.openai.com/v1"
TRANSCRIPTION_MODEL = "whisper-1"
TRANSCRIPTION_LANGUAGE = "en"
SUMMARY_MODEL = "gpt-4o-mini"
MAX_COMPLETION_TOKENS = 1000

MAX_UPLOAD_BYTES = 25 * 1024 * 1024      # speech-to-text hard ceiling
MAX_AUDIO_DURATION_HOURS = 3
DOWNLOAD_CHUNK_SIZE = 64 * 1024

SUPPORTED_MIME_TYPES = {
    "audio/mpeg", "audio/mp3",
    "audio/wav", "audio/x-wav", "audio/wave",
    "audio/mp4", "audio/x-m4a", "audio/m4a",
    "video/mp4", "video/quicktime", "video/x-msvideo", "video/webm",
}
SUPPORTED_EXTENSIONS = {"mp3", "wav", "m4a", "mp4", "mov", "avi", "webm"}
M4A_MIME_TYPES = {"audio/x-m4a", "audio/m4a"}
M4A_NORMALIZED_MIME = "audio/mp4"

# ── Conversation context ──────────────────────────────────────────────
MAX_CONTEXT_ITEMS = 10
CONTEXT_TRANSCRIPT_PREVIEW = 500

# ── Misc ──────────────────────────────────────────────────────────────
UNSAFE_FILENAME_CHARS = r'[^a-zA-Z0-9]'
MAX_FILENAME_LEN = 120
