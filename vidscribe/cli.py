"""
vidscribe command line.
Fetches a transcript for a video URL (or transcribes a local file) and
optionally summarizes it.
"""

import sys
import json
import logging
import argparse
import mimetypes
from pathlib import Path
from datetime import datetime

from vidscribe.core.constants import APP_NAME, APP_VERSION, LOG_DIR
from vidscribe.core.config import AppConfig
from vidscribe.core.context import ConversationHistory
from vidscribe.core.diagnostics import get_diagnostics
from vidscribe.core.error_codes import PipelineError
from vidscribe.core.pipeline import TranscriptPipeline
from vidscribe.core.security_utils import load_api_keys
from vidscribe.core.summarize import Summarizer

logger = logging.getLogger(APP_NAME)


def setup_logging(verbose: bool = False):
    """File log always (~/.cache/vidscribe/logs/app.log); stderr with --verbose."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    handlers = [logging.FileHandler(LOG_DIR / "app.log", encoding="utf-8")]
    if verbose:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME,
                                     description="Video and audio transcript extraction")
    parser.add_argument("url", nargs="?", help="Video URL (YouTube or a supported platform)")
    parser.add_argument("--file", type=Path, help="Local audio/video file to transcribe")
    parser.add_argument("--mime", help="MIME type of --file (guessed from the name if omitted)")
    parser.add_argument("--prompt", help="Question or instruction for the summary")
    parser.add_argument("--follow-up", action="append", default=[], metavar="PROMPT",
                        help="Follow-up question answered with the previous results as context")
    parser.add_argument("--transcript-only", action="store_true",
                        help="Print the transcript without summarizing")
    parser.add_argument("--allow-generic", action="store_true",
                        help="Accept URLs from unrecognized hosts")
    parser.add_argument("--diagnostics", action="store_true",
                        help="Print configuration diagnostics and exit")
    parser.add_argument("--verbose", action="store_true", help="Log to stderr as well")
    return parser


def _report_stage(stage: str):
    logger.info("Stage → %s", stage)


def run(args, config: AppConfig, api_keys: dict) -> int:
    settings = config.as_dict()
    if args.allow_generic:
        settings['allow_generic_urls'] = True

    if args.diagnostics:
        print(json.dumps(get_diagnostics(settings, api_keys), indent=2))
        return 0

    pipeline = TranscriptPipeline(config=settings, api_keys=api_keys)
    pipeline.on_stage_changed = _report_stage

    if args.file:
        if not args.file.is_file():
            print(f"File not found: {args.file}", file=sys.stderr)
            return 1
        mime = args.mime or mimetypes.guess_type(args.file.name)[0] or ""
        result = pipeline.run_file(args.file.read_bytes(), args.file.name, mime)
        source_kind, source_name = "file", args.file.name
    elif args.url:
        result = pipeline.run_url(args.url)
        source_kind = result.reference.platform if result.reference else "video"
        source_name = args.url
    else:
        print("Provide a video URL or --file PATH", file=sys.stderr)
        return 1

    if not result.ok:
        print(f"Error: {result.error.message}", file=sys.stderr)
        return 1

    transcript = result.transcript
    if args.transcript_only:
        print(transcript.text)
        return 0

    summarizer = Summarizer(config=settings, api_keys=api_keys)
    history = ConversationHistory()
    platform = result.reference.platform if result.reference else None
    try:
        summary = summarizer.summarize(transcript, prompt=args.prompt, platform=platform)
        print(summary)
        history.add_transcription(source_kind, source_name, args.prompt or "Summarize",
                                  summary, transcript.text)

        for question in args.follow_up:
            answer = summarizer.follow_up(question, history.build_context())
            print()
            print(answer)
            history.add_follow_up(question, answer)
    except PipelineError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    logger.info("=" * 60)
    logger.info("%s v%s starting at %s", APP_NAME, APP_VERSION, datetime.now().isoformat())
    logger.info("=" * 60)

    try:
        return run(args, AppConfig(), load_api_keys())
    except Exception as e:
        logger.critical("Fatal error: %s: %s", type(e).__name__, e, exc_info=True)
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1

