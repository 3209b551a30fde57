"""
Timed-text caption parsing → plain text.
Pulls every <text> span out of a caption document, decodes entities,
strips markup, collapses whitespace.
"""

import re
import logging

logger = logging.getLogger(__name__)

# Tag matching only; surrounding markup may be malformed.
_TEXT_SPAN_RE = re.compile(r'<text\b[^>]*>(.*?)</text>', re.DOTALL | re.IGNORECASE)
_HTML_TAG_RE = re.compile(r'<[^>]+>')
_WHITESPACE_RE = re.compile(r'\s+')

# &amp; goes first so double-escaped captions ("it&amp;#39;s") fully decode.
_ENTITIES = [
    ('&amp;', '&'),
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
    ('&#39;', "'"),
    ('&apos;', "'"),
    ('&nbsp;', ' '),
]


def decode_entities(text: str) -> str:
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text


def clean_caption_text(text: str) -> str:
    """
    Clean a single caption span: decode entities, then strip nested tags,
    then collapse newlines and runs of whitespace.
    """
    text = decode_entities(text)
    text = _HTML_TAG_RE.sub('', text)
    text = text.replace('\n', ' ')
    return _WHITESPACE_RE.sub(' ', text).strip()


def parse_caption_xml(xml: str) -> str:
    """
    Convert a caption XML document to plain text.
    Never raises; returns "" when nothing usable is found.
    """
    if not isinstance(xml, str) or not xml:
        return ""

    try:
        parts = []
        for match in _TEXT_SPAN_RE.finditer(xml):
            text = clean_caption_text(match.group(1))
            if text:
                parts.append(text)
        return ' '.join(parts)
    except Exception as e:
        logger.warning("Caption XML parse failed: %s", e)
        return ""


def join_segments(segments) -> str:
    """
    Join a delegated-API segment list into one string.
    Accepts dicts with a 'text' key or bare strings; anything else is skipped.
    """
    if not isinstance(segments, list):
        return ""

    parts = []
    for seg in segments:
        if isinstance(seg, dict):
            text = seg.get('text')
        else:
            text = seg
        if not isinstance(text, str):
            continue
        text = clean_caption_text(text)
        if text:
            parts.append(text)
    return ' '.join(parts)
