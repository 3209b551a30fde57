#!/usr/bin/env python3
"""
Unit tests for vidscribe core modules.
Tests cover: URL resolution, caption parsing, error codes, config,
security utils, conversation history, diagnostics.
"""

import sys
import os
import json
import tempfile
from pathlib import Path
from unittest.mock import patch

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import unittest

import requests

from vidscribe.core.constants import (
    ErrorCode, Platform, RETRYABLE_ERRORS, CAPTION_LANGUAGES, MAX_CONTEXT_ITEMS,
)
from vidscribe.core.url_parse import (
    detect_platform, extract_video_id, resolve, is_youtube_url, parse_input_lines,
)
from vidscribe.core.captions_parse import (
    parse_caption_xml, clean_caption_text, decode_entities, join_segments,
)
from vidscribe.core.error_codes import PipelineError, is_retryable, upstream_error
from vidscribe.core.config import AppConfig
from vidscribe.core.security_utils import (
    sanitize_title, redact_secret, load_api_keys, get_api_key,
)
from vidscribe.core.context import ConversationHistory, ItemKind
from vidscribe.core.diagnostics import get_diagnostics


class TestURLParsing(unittest.TestCase):
    """Test video URL resolution."""

    def test_standard_url(self):
        ref = resolve("https://www.youtube.com/watch?v=abc123XYZ")
        self.assertEqual(ref.platform, Platform.YOUTUBE)
        self.assertEqual(ref.id, "abc123XYZ")
        self.assertEqual(ref.raw_url, "https://www.youtube.com/watch?v=abc123XYZ")

    def test_short_url(self):
        self.assertEqual(
            extract_video_id("https://youtu.be/dQw4w9WgXcQ?t=10"),
            "dQw4w9WgXcQ",
        )

    def test_short_url_without_scheme(self):
        ref = resolve("youtu.be/dQw4w9WgXcQ")
        self.assertEqual(ref.platform, Platform.YOUTUBE)
        self.assertEqual(ref.id, "dQw4w9WgXcQ")

    def test_embed_shorts_live_urls(self):
        for url in (
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "https://www.youtube.com/shorts/dQw4w9WgXcQ",
            "https://www.youtube.com/live/dQw4w9WgXcQ",
            "https://www.youtube-nocookie.com/embed/dQw4w9WgXcQ",
        ):
            self.assertEqual(extract_video_id(url), "dQw4w9WgXcQ", url)

    def test_uppercase_host_keeps_id_case(self):
        ref = resolve("https://YOUTU.BE/abc123XYZ")
        self.assertEqual(ref.platform, Platform.YOUTUBE)
        self.assertEqual(ref.id, "abc123XYZ")
        self.assertEqual(extract_video_id("HTTPS://WWW.YOUTUBE.COM/watch?v=dQw4w9WgXcQ"),
                         "dQw4w9WgXcQ")
        self.assertEqual(resolve("https://Vimeo.com/123456789").id, "123456789")

    def test_mobile_url(self):
        self.assertEqual(
            extract_video_id("https://m.youtube.com/watch?v=dQw4w9WgXcQ"),
            "dQw4w9WgXcQ",
        )

    def test_url_with_params(self):
        self.assertEqual(
            extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=120"),
            "dQw4w9WgXcQ",
        )
        self.assertEqual(
            extract_video_id("https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ"),
            "dQw4w9WgXcQ",
        )

    def test_youtube_without_id_is_rejected(self):
        with self.assertRaises(PipelineError) as ctx:
            resolve("https://www.youtube.com/channel/UCabcdef")
        self.assertEqual(ctx.exception.code, ErrorCode.INVALID_REFERENCE)

    def test_other_platforms(self):
        cases = [
            ("https://vimeo.com/123456789", Platform.VIMEO, "123456789"),
            ("https://www.tiktok.com/@someone/video/7234567890", Platform.TIKTOK, "7234567890"),
            ("https://x.com/someone/status/1789", Platform.TWITTER, "1789"),
            ("https://twitter.com/someone/status/42", Platform.TWITTER, "42"),
            ("https://www.instagram.com/reel/Cabc123/", Platform.INSTAGRAM, "Cabc123"),
            ("https://www.twitch.tv/videos/998877", Platform.TWITCH, "998877"),
        ]
        for url, platform, video_id in cases:
            ref = resolve(url)
            self.assertEqual(ref.platform, platform, url)
            self.assertEqual(ref.id, video_id, url)

    def test_host_suffix_does_not_leak(self):
        # "x.com" must not claim netflix.com
        self.assertEqual(detect_platform("https://www.netflix.com/watch/123"), Platform.GENERIC)

    def test_generic_requires_opt_in(self):
        with self.assertRaises(PipelineError) as ctx:
            resolve("https://videos.example.com/clips/intro")
        self.assertEqual(ctx.exception.code, ErrorCode.INVALID_REFERENCE)

        ref = resolve("https://videos.example.com/clips/intro", allow_generic=True)
        self.assertEqual(ref.platform, Platform.GENERIC)
        self.assertEqual(ref.id, "intro")

    def test_invalid_url(self):
        self.assertIsNone(detect_platform("not a url"))
        self.assertIsNone(extract_video_id("not a url"))
        self.assertIsNone(extract_video_id(""))
        for bad in ("", "   ", "not a url", None):
            with self.assertRaises(PipelineError) as ctx:
                resolve(bad)
            self.assertEqual(ctx.exception.code, ErrorCode.INVALID_REFERENCE)

    def test_is_youtube_url(self):
        self.assertTrue(is_youtube_url("https://www.youtube.com/watch?v=dQw4w9WgXcQ"))
        self.assertFalse(is_youtube_url("https://www.google.com"))
        self.assertFalse(is_youtube_url("https://vimeo.com/123"))

    def test_parse_input_lines(self):
        text = """
        https://www.youtube.com/watch?v=dQw4w9WgXcQ
        https://youtu.be/abc123def45

        not a url
        https://vimeo.com/123456789
        https://www.google.com/search
        """
        self.assertEqual(len(parse_input_lines(text)), 3)
        self.assertEqual(len(parse_input_lines(text, allow_generic=True)), 4)

    def test_parse_input_lines_empty(self):
        self.assertEqual(parse_input_lines(""), [])
        self.assertEqual(parse_input_lines("   \n\n  "), [])


class TestCaptionsParsing(unittest.TestCase):
    """Test timed-text caption parsing."""

    def test_parse_basic(self):
        xml = (
            '<?xml version="1.0" encoding="utf-8" ?><transcript>'
            '<text start="0" dur="2.5">Hello, welcome to this video.</text>'
            '<text start="2.5" dur="3">Today we&#39;ll be\ntalking about Python.</text>'
            '</transcript>'
        )
        self.assertEqual(
            parse_caption_xml(xml),
            "Hello, welcome to this video. Today we'll be talking about Python.",
        )

    def test_spans_joined_with_single_space(self):
        self.assertEqual(parse_caption_xml("<text>A &amp; B</text><text>C</text>"), "A & B C")

    def test_entities_and_nested_markup(self):
        xml = '<transcript><text start="0">&lt;b&gt;Bold&lt;/b&gt; &quot;quoted&quot; &amp; more</text></transcript>'
        self.assertEqual(parse_caption_xml(xml), 'Bold "quoted" & more')

    def test_double_escaped_entities_decode_fully(self):
        self.assertEqual(decode_entities("a &amp;lt; b"), "a < b")
        self.assertEqual(decode_entities("it&amp;#39;s"), "it's")
        xml = '<text start="0">it&amp;#39;s a &amp;quot;test&amp;quot;</text>'
        self.assertEqual(parse_caption_xml(xml), 'it\'s a "test"')

    def test_double_escaped_markup_stripped(self):
        self.assertEqual(clean_caption_text("&amp;lt;i&amp;gt;music&amp;lt;/i&amp;gt;"), "music")

    def test_empty_and_invalid_input(self):
        self.assertEqual(parse_caption_xml(""), "")
        self.assertEqual(parse_caption_xml(None), "")
        self.assertEqual(parse_caption_xml("<html>no captions here</html>"), "")
        self.assertEqual(parse_caption_xml("<text>unterminated"), "")

    def test_blank_spans_skipped(self):
        xml = '<transcript><text start="0">  </text><text start="1">words</text></transcript>'
        self.assertEqual(parse_caption_xml(xml), "words")

    def test_clean_is_idempotent(self):
        raw = "  It&#39;s   <i>fine</i>\n\n really "
        once = clean_caption_text(raw)
        self.assertEqual(once, "It's fine really")
        self.assertEqual(clean_caption_text(once), once)

    def test_join_segments(self):
        segments = [{"text": "first"}, "second", {"offset": 1}, 3, {"text": "it&#39;s"}]
        self.assertEqual(join_segments(segments), "first second it's")
        self.assertEqual(join_segments({"text": "nope"}), "")
        self.assertEqual(join_segments(None), "")


class TestErrorCodes(unittest.TestCase):
    """Test error code handling."""

    def test_retryable_errors(self):
        self.assertTrue(is_retryable(ErrorCode.UPSTREAM_SERVICE_ERROR))
        self.assertEqual(RETRYABLE_ERRORS, {ErrorCode.UPSTREAM_SERVICE_ERROR})

    def test_non_retryable_errors(self):
        for code in (ErrorCode.INVALID_REFERENCE, ErrorCode.NO_CAPTIONS_AVAILABLE,
                     ErrorCode.FILE_TOO_LARGE, ErrorCode.UNSUPPORTED_FILE_TYPE,
                     ErrorCode.TRANSCRIPTION_EMPTY, ErrorCode.CONFIGURATION_MISSING):
            self.assertFalse(is_retryable(code), code)

    def test_pipeline_error_auto_retryable(self):
        self.assertTrue(PipelineError(ErrorCode.UPSTREAM_SERVICE_ERROR, "x").retryable)
        self.assertFalse(PipelineError(ErrorCode.INVALID_REFERENCE, "x").retryable)
        self.assertTrue(PipelineError(ErrorCode.INVALID_REFERENCE, "x", retryable=True).retryable)

    def test_str_and_dict(self):
        err = PipelineError(ErrorCode.FILE_TOO_LARGE, "too big", status=413)
        self.assertEqual(str(err), "[ERR_FILE_TOO_LARGE] too big")
        self.assertEqual(err.as_dict()["status"], 413)
        self.assertEqual(err.as_dict()["code"], ErrorCode.FILE_TOO_LARGE)

    def test_upstream_error(self):
        err = upstream_error("Transcript API", 503, "x" * 1000)
        self.assertEqual(err.code, ErrorCode.UPSTREAM_SERVICE_ERROR)
        self.assertEqual(err.status, 503)
        self.assertEqual(err.message, "Transcript API returned 503")
        self.assertEqual(len(err.detail), 300)

        unreachable = upstream_error("Transcript API", None)
        self.assertEqual(unreachable.message, "Could not reach Transcript API")
        self.assertIsNone(unreachable.detail)


class TestConfig(unittest.TestCase):
    """Test JSON config defaults, validation and persistence."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "config.json"

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_defaults(self):
        config = AppConfig(self.path)
        self.assertIsNone(config.request_timeout)
        self.assertFalse(config.allow_generic_urls)
        self.assertEqual(config.get('caption_languages'), CAPTION_LANGUAGES)
        self.assertEqual(config.get('summary_model'), "gpt-4o-mini")
        self.assertFalse(self.path.exists())

    def test_timeout_clamped(self):
        config = AppConfig(self.path)
        config.set('request_timeout', 1)
        self.assertEqual(config.request_timeout, 5)
        config.set('request_timeout', 99999)
        self.assertEqual(config.request_timeout, 3600)
        config.set('request_timeout', "abc")
        self.assertIsNone(config.request_timeout)

    def test_languages_coerced(self):
        config = AppConfig(self.path)
        config.set('caption_languages', "en, de ,")
        self.assertEqual(config.get('caption_languages'), ["en", "de"])
        config.set('caption_languages', 42)
        self.assertEqual(config.get('caption_languages'), CAPTION_LANGUAGES)

    def test_base_url_trailing_slash(self):
        config = AppConfig(self.path)
        config.set('openai_base_url', "http://localhost:8080/v1/")
        self.assertEqual(config.get('openai_base_url'), "http://localhost:8080/v1")

    def test_persistence(self):
        config = AppConfig(self.path)
        config.allow_generic_urls = True
        config.set('max_completion_tokens', 500)

        reloaded = AppConfig(self.path)
        self.assertTrue(reloaded.allow_generic_urls)
        self.assertEqual(reloaded.get('max_completion_tokens'), 500)

    def test_corrupt_file_falls_back_to_defaults(self):
        self.path.write_text("{not json")
        config = AppConfig(self.path)
        self.assertEqual(config.as_dict()['caption_languages'], CAPTION_LANGUAGES)

    def test_saved_values_validated_on_load(self):
        self.path.write_text(json.dumps({'request_timeout': 0, 'max_completion_tokens': 10**6}))
        config = AppConfig(self.path)
        self.assertEqual(config.request_timeout, 5)
        self.assertEqual(config.get('max_completion_tokens'), 16000)


class TestSecurityUtils(unittest.TestCase):
    """Test security utilities."""

    def test_sanitize_title_basic(self):
        self.assertEqual(sanitize_title("Hello World!"), "Hello_World")

    def test_sanitize_title_path_traversal(self):
        result = sanitize_title("../../../etc/passwd")
        self.assertNotIn('..', result)
        self.assertNotIn('/', result)
        self.assertEqual(result, "etc_passwd")

    def test_sanitize_title_empty(self):
        self.assertEqual(sanitize_title(""), "video")
        self.assertEqual(sanitize_title("..."), "video")
        self.assertEqual(sanitize_title(None, fallback="clip"), "clip")

    def test_sanitize_title_long(self):
        self.assertLessEqual(len(sanitize_title("A" * 300)), 120)

    def test_redact_secret(self):
        self.assertEqual(redact_secret("sk-1234567890abcd"), "********abcd")
        self.assertEqual(redact_secret("short"), "*****")
        self.assertEqual(redact_secret(None), "")

    def test_load_api_keys(self):
        env = {"OPENAI_API_KEY": "sk-test", "RAPIDAPI_KEY": "rapid", "TRANSCRIPT_API_KEY": "   "}
        with patch.dict(os.environ, env):
            keys = load_api_keys()
        self.assertEqual(keys["openai_api_key"], "sk-test")
        self.assertEqual(keys["rapidapi_key"], "rapid")
        self.assertIsNone(keys["transcript_api_key"])

    def test_get_api_key_missing(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertIsNone(get_api_key("OPENAI_API_KEY"))


class TestConversationHistory(unittest.TestCase):
    """Test the in-memory follow-up context."""

    def test_empty_context(self):
        self.assertEqual(ConversationHistory().build_context(), "")

    def test_bounded(self):
        history = ConversationHistory()
        for i in range(MAX_CONTEXT_ITEMS + 2):
            history.add_follow_up(f"q{i}", f"a{i}")
        self.assertEqual(len(history.items), MAX_CONTEXT_ITEMS)
        self.assertEqual(history.items[0].prompt, "q2")

    def test_context_format(self):
        history = ConversationHistory()
        history.add_transcription("youtube", "https://youtu.be/abc", "Summarize",
                                  "A short summary", "t" * 600)
        history.add_follow_up("Who speaks?", "One person")
        context = history.build_context()

        self.assertTrue(context.startswith("Previous conversation history:\n\n"))
        self.assertIn("1. [YOUTUBE ANALYSIS: https://youtu.be/abc]", context)
        self.assertIn('User asked: "Summarize"', context)
        self.assertIn("Analysis result: A short summary", context)
        self.assertIn("Original transcript: " + "t" * 500 + "...", context)
        self.assertNotIn("t" * 501, context)
        self.assertIn("2. [FOLLOW-UP QUESTION]", context)
        self.assertIn("Response: One person", context)

    def test_short_transcript_not_ellipsized(self):
        history = ConversationHistory()
        history.add_transcription("file", "talk.mp3", "Summarize", "ok", "brief")
        self.assertIn("Original transcript: brief\n", history.build_context())

    def test_recent_and_latest(self):
        history = ConversationHistory()
        history.add_transcription("file", "a.mp3", "p1", "r1", "t1")
        history.add_follow_up("p2", "r2")
        history.add_follow_up("p3", "r3")

        recent = history.recent(2)
        self.assertEqual([item.prompt for item in recent], ["p3", "p2"])
        self.assertEqual(history.recent(0), [])

        latest = history.latest_transcription()
        self.assertEqual(latest.kind, ItemKind.TRANSCRIPTION)
        self.assertEqual(latest.source_name, "a.mp3")

        history.clear()
        self.assertIsNone(history.latest_transcription())
        self.assertEqual(history.build_context(), "")


class TestDiagnostics(unittest.TestCase):
    """Test diagnostics reporting."""

    def test_keys_redacted(self):
        info = get_diagnostics({'allow_generic_urls': True},
                               {"openai_api_key": "sk-abcdefghijkl"})
        self.assertEqual(info["requests_version"], requests.__version__)
        self.assertTrue(info["allow_generic_urls"])
        self.assertTrue(info["api_keys"]["openai_api_key"]["configured"])
        self.assertFalse(info["api_keys"]["rapidapi_key"]["configured"])
        self.assertNotIn("sk-abcdefghijkl", json.dumps(info))


if __name__ == "__main__":
    unittest.main()
