"""
Pipeline data models (plain dataclasses) for vidscribe.
"""

from dataclasses import dataclass, field
from typing import Optional

from vidscribe.core.constants import Stage
from vidscribe.core.error_codes import PipelineError


@dataclass(frozen=True)
class VideoReference:
    platform: str                    # Platform.*
    id: str
    raw_url: str


@dataclass(frozen=True)
class CaptionTrack:
    language_code: str
    base_url: str
    name: Optional[str] = None
    kind: Optional[str] = None       # "asr" for auto-generated tracks


@dataclass
class Transcript:
    text: str
    source_strategy: str             # SourceStrategy.*
    video_title: Optional[str] = None


@dataclass
class TranscriptionRequest:
    file_bytes: bytes = field(repr=False)
    file_name: str
    mime_type: str

    @property
    def size_bytes(self) -> int:
        return len(self.file_bytes)

    @property
    def extension(self) -> str:
        name = self.file_name.lower()
        return name.rsplit('.', 1)[-1] if '.' in name else ''


@dataclass
class MediaInfo:
    download_url: str
    title: str
    provider: str


@dataclass
class PipelineResult:
    stage: str = Stage.IDLE
    transcript: Optional[Transcript] = None
    error: Optional[PipelineError] = None
    reference: Optional[VideoReference] = None

    @property
    def ok(self) -> bool:
        return self.stage == Stage.DONE and self.transcript is not None
