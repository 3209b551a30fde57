"""
In-memory conversation history for follow-up prompts.
Builds the context text handed to the summarizer; nothing is persisted.
"""

import time
import uuid
import logging
from dataclasses import dataclass, field
from typing import Optional

from vidscribe.core.constants import MAX_CONTEXT_ITEMS, CONTEXT_TRANSCRIPT_PREVIEW

logger = logging.getLogger(__name__)


class ItemKind:
    TRANSCRIPTION = "transcription"
    FOLLOW_UP = "follow-up"


@dataclass
class ConversationItem:
    kind: str                        # ItemKind.*
    prompt: str
    result: str
    source_kind: Optional[str] = None    # "youtube" | "file" | platform tag
    source_name: Optional[str] = None    # URL or file name
    transcript: Optional[str] = None
    id: str = field(default_factory=lambda: f"item_{uuid.uuid4().hex[:12]}")
    timestamp: float = field(default_factory=time.time)


class ConversationHistory:
    """Bounded list of analyses and follow-ups, oldest evicted first."""

    def __init__(self, max_items: int = MAX_CONTEXT_ITEMS):
        self.max_items = max_items
        self.items: list[ConversationItem] = []
        self.session_id = f"session_{uuid.uuid4().hex[:12]}"

    def _append(self, item: ConversationItem) -> str:
        self.items.append(item)
        if len(self.items) > self.max_items:
            self.items = self.items[-self.max_items:]
        return item.id

    def add_transcription(self, source_kind: str, source_name: str, prompt: str,
                          result: str, transcript: str) -> str:
        return self._append(ConversationItem(
            kind=ItemKind.TRANSCRIPTION, prompt=prompt, result=result,
            source_kind=source_kind, source_name=source_name, transcript=transcript,
        ))

    def add_follow_up(self, prompt: str, result: str) -> str:
        return self._append(ConversationItem(kind=ItemKind.FOLLOW_UP, prompt=prompt,
                                             result=result))

    def build_context(self) -> str:
        """Numbered history text for the LLM; "" when empty."""
        if not self.items:
            return ""

        lines = ["Previous conversation history:", ""]
        for idx, item in enumerate(self.items, start=1):
            if item.kind == ItemKind.TRANSCRIPTION:
                source = (item.source_kind or "").upper()
                lines.append(f"{idx}. [{source} ANALYSIS: {item.source_name}]")
                lines.append(f'User asked: "{item.prompt}"')
                lines.append(f"Analysis result: {item.result}")
                if item.transcript:
                    preview = item.transcript[:CONTEXT_TRANSCRIPT_PREVIEW]
                    if len(item.transcript) > CONTEXT_TRANSCRIPT_PREVIEW:
                        preview += "..."
                    lines.append(f"Original transcript: {preview}")
            else:
                lines.append(f"{idx}. [FOLLOW-UP QUESTION]")
                lines.append(f'User asked: "{item.prompt}"')
                lines.append(f"Response: {item.result}")
            lines.append("")

        return "\n".join(lines)

    def latest_transcription(self) -> ConversationItem | None:
        for item in reversed(self.items):
            if item.kind == ItemKind.TRANSCRIPTION:
                return item
        return None

    def recent(self, limit: int = 5) -> list[ConversationItem]:
        """Most recent first."""
        if limit <= 0:
            return []
        return list(reversed(self.items[-limit:]))

    def clear(self):
        self.items = []
        logger.debug("Cleared conversation history %s", self.session_id)
