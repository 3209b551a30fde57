"""
Video URL parsing and validation.
Turns user-supplied URLs into VideoReference values.
"""

import re
from urllib.parse import urlparse, parse_qs

from vidscribe.core.constants import (
    ErrorCode, Platform, PLATFORM_MARKERS, VIDEO_ID_PATTERNS,
)
from vidscribe.core.error_codes import PipelineError
from vidscribe.core.models import VideoReference


def _parse(url: str):
    """urlparse that tolerates a missing scheme ("youtu.be/abc")."""
    if '://' not in url:
        url = "https://" + url
    try:
        return urlparse(url)
    except ValueError:
        return None


def _host(url: str) -> str:
    parsed = _parse(url)
    if parsed is None:
        return ""
    host = (parsed.hostname or "").lower()
    if ' ' in host or '.' not in host:
        return ""
    return host


def detect_platform(url: str) -> str | None:
    """
    Return the platform tag for a URL, Platform.GENERIC for any other
    well-formed web URL, or None when the string is not a URL at all.
    """
    host = _host(url.strip())
    if not host:
        return None

    for platform, markers in PLATFORM_MARKERS:
        for marker in markers:
            if host == marker or host.endswith('.' + marker):
                return platform
    return Platform.GENERIC


def extract_video_id(url: str, platform: str | None = None) -> str | None:
    """
    Extract the platform-specific video id from a URL.
    Returns None if no matcher captures a non-empty id.
    """
    url = url.strip()
    if not url:
        return None

    if platform is None:
        platform = detect_platform(url)
    if platform is None:
        return None

    for pattern in VIDEO_ID_PATTERNS.get(platform, []):
        m = re.search(pattern, url, re.IGNORECASE)
        if m and m.group(1):
            return m.group(1)

    parsed = _parse(url)
    if parsed is None:
        return None

    if platform == Platform.YOUTUBE:
        # Fallback: parse query string for 'v' parameter
        v = parse_qs(parsed.query).get('v', [None])[0]
        return v or None

    segments = [s for s in parsed.path.split('/') if s]
    if segments:
        return segments[-1]
    return None


def resolve(url: str, allow_generic: bool = False) -> VideoReference:
    """
    Resolve a URL into a VideoReference.
    Raises PipelineError(INVALID_REFERENCE) if the URL is unusable.
    """
    if not isinstance(url, str) or not url.strip():
        raise PipelineError(ErrorCode.INVALID_REFERENCE, "A video URL is required")

    url = url.strip()
    platform = detect_platform(url)
    if platform is None:
        raise PipelineError(ErrorCode.INVALID_REFERENCE, f"Not a valid video URL: {url}")
    if platform == Platform.GENERIC and not allow_generic:
        raise PipelineError(ErrorCode.INVALID_REFERENCE,
                            f"Unsupported video platform: {_host(url)}")

    video_id = extract_video_id(url, platform)
    if not video_id:
        raise PipelineError(ErrorCode.INVALID_REFERENCE,
                            f"Could not find a video id in {platform} URL: {url}")

    return VideoReference(platform=platform, id=video_id, raw_url=url)


def is_youtube_url(url: str) -> bool:
    """Quick check if a string looks like a YouTube video URL."""
    return (detect_platform(url) == Platform.YOUTUBE
            and extract_video_id(url, Platform.YOUTUBE) is not None)


def parse_input_lines(text: str, allow_generic: bool = False) -> list[str]:
    """
    Parse pasted text into a list of resolvable video URLs.
    - Trims whitespace
    - Ignores empty lines
    - Skips anything that does not resolve
    """
    urls = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            resolve(line, allow_generic=allow_generic)
        except PipelineError:
            continue
        urls.append(line)
    return urls
