#!/usr/bin/env python3
"""
Tests for the vidscribe command line.
The pipeline and summarizer are patched out; no network access.
"""

import sys
import io
import json
import tempfile
from pathlib import Path
from unittest.mock import patch

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import unittest

from vidscribe import cli
from vidscribe.core.config import AppConfig
from vidscribe.core.constants import APP_VERSION, ErrorCode, Platform, Stage, SourceStrategy
from vidscribe.core.error_codes import PipelineError
from vidscribe.core.models import PipelineResult, Transcript, VideoReference


def done_result(text="hello world", platform=Platform.YOUTUBE):
    return PipelineResult(
        stage=Stage.DONE,
        transcript=Transcript(text=text, source_strategy=SourceStrategy.DIRECT),
        reference=VideoReference(platform=platform, id="dQw4w9WgXcQ",
                                 raw_url="https://youtu.be/dQw4w9WgXcQ"),
    )


class TestCommandLine(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.config = AppConfig(Path(self.tmpdir) / "config.json")

    def _run(self, argv, api_keys=None):
        args = cli.build_parser().parse_args(argv)
        with patch("sys.stdout", new_callable=io.StringIO) as out, \
                patch("sys.stderr", new_callable=io.StringIO) as err:
            code = cli.run(args, self.config, api_keys or {})
        return code, out.getvalue(), err.getvalue()

    def test_diagnostics_prints_json(self):
        code, out, _ = self._run(["--diagnostics"], {"openai_api_key": "sk-abcdefgh1234"})
        self.assertEqual(code, 0)
        report = json.loads(out)
        self.assertEqual(report["app_version"], APP_VERSION)
        self.assertNotIn("sk-abcdefgh1234", out)

    def test_no_input_is_error(self):
        code, out, err = self._run([])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("--file", err)

    def test_missing_file_is_error(self):
        code, _, err = self._run(["--file", str(Path(self.tmpdir) / "nope.mp3")])
        self.assertEqual(code, 1)
        self.assertIn("File not found", err)

    @patch("vidscribe.cli.TranscriptPipeline")
    def test_transcript_only_prints_text(self, pipeline_cls):
        pipeline_cls.return_value.run_url.return_value = done_result("the transcript")
        code, out, _ = self._run(["https://youtu.be/dQw4w9WgXcQ", "--transcript-only"])
        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), "the transcript")
        pipeline_cls.return_value.run_url.assert_called_once_with("https://youtu.be/dQw4w9WgXcQ")

    @patch("vidscribe.cli.TranscriptPipeline")
    def test_allow_generic_reaches_pipeline(self, pipeline_cls):
        pipeline_cls.return_value.run_url.return_value = done_result()
        self._run(["https://example.com/v.mp4", "--allow-generic", "--transcript-only"])
        settings = pipeline_cls.call_args.kwargs["config"]
        self.assertTrue(settings["allow_generic_urls"])

    @patch("vidscribe.cli.TranscriptPipeline")
    def test_failed_run_prints_message(self, pipeline_cls):
        pipeline_cls.return_value.run_url.return_value = PipelineResult(
            stage=Stage.FAILED,
            error=PipelineError(ErrorCode.NO_CAPTIONS_AVAILABLE, "No captions available"),
        )
        code, out, err = self._run(["https://youtu.be/dQw4w9WgXcQ"])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("No captions available", err)

    @patch("vidscribe.cli.TranscriptPipeline")
    def test_file_mime_guessed_from_name(self, pipeline_cls):
        pipeline_cls.return_value.run_file.return_value = PipelineResult(
            stage=Stage.DONE,
            transcript=Transcript(text="spoken", source_strategy=SourceStrategy.AUDIO_UPLOAD),
        )
        path = Path(self.tmpdir) / "talk.mp3"
        path.write_bytes(b"ID3data")
        code, out, _ = self._run(["--file", str(path), "--transcript-only"])
        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), "spoken")
        data, name, mime = pipeline_cls.return_value.run_file.call_args.args
        self.assertEqual((data, name), (b"ID3data", "talk.mp3"))
        self.assertEqual(mime, "audio/mpeg")

    @patch("vidscribe.cli.Summarizer")
    @patch("vidscribe.cli.TranscriptPipeline")
    def test_summary_and_follow_up(self, pipeline_cls, summarizer_cls):
        pipeline_cls.return_value.run_url.return_value = done_result()
        summarizer = summarizer_cls.return_value
        summarizer.summarize.return_value = "short summary"
        summarizer.follow_up.return_value = "follow-up answer"

        code, out, _ = self._run(["https://youtu.be/dQw4w9WgXcQ", "--prompt", "Key points?",
                                  "--follow-up", "And then?"])
        self.assertEqual(code, 0)
        self.assertIn("short summary", out)
        self.assertIn("follow-up answer", out)
        summarizer.summarize.assert_called_once()
        self.assertEqual(summarizer.summarize.call_args.kwargs["prompt"], "Key points?")
        question, context = summarizer.follow_up.call_args.args
        self.assertEqual(question, "And then?")
        self.assertIn("short summary", context)

    @patch("vidscribe.cli.Summarizer")
    @patch("vidscribe.cli.TranscriptPipeline")
    def test_summary_error_exit_code(self, pipeline_cls, summarizer_cls):
        pipeline_cls.return_value.run_url.return_value = done_result()
        summarizer_cls.return_value.summarize.side_effect = PipelineError(
            ErrorCode.CONFIGURATION_MISSING, "OpenAI API key is not configured")
        code, _, err = self._run(["https://youtu.be/dQw4w9WgXcQ"])
        self.assertEqual(code, 1)
        self.assertIn("OpenAI API key is not configured", err)


class TestMain(unittest.TestCase):

    @patch("vidscribe.cli.load_api_keys", return_value={})
    @patch("vidscribe.cli.AppConfig")
    @patch("vidscribe.cli.setup_logging")
    def test_main_returns_run_exit_code(self, setup_logging, config_cls, _keys):
        config_cls.return_value.as_dict.return_value = {}
        with patch("sys.stdout", new_callable=io.StringIO):
            self.assertEqual(cli.main(["--diagnostics"]), 0)
        setup_logging.assert_called_once_with(False)

    @patch("vidscribe.cli.load_api_keys", return_value={})
    @patch("vidscribe.cli.AppConfig")
    @patch("vidscribe.cli.setup_logging")
    def test_main_reports_fatal_error(self, _logging, _config, _keys):
        with patch("vidscribe.cli.run", side_effect=RuntimeError("boom")), \
                patch("sys.stderr", new_callable=io.StringIO) as err:
            self.assertEqual(cli.main(["https://youtu.be/dQw4w9WgXcQ"]), 1)
        self.assertIn("Fatal error: boom", err.getvalue())


if __name__ == "__main__":
    unittest.main()
