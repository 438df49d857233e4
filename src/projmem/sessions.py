"""Chat sessions scoped to a project's chat directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from projmem.memory.transcript import ROLE_USER, Transcript, TranscriptFormat, parse_transcript

if TYPE_CHECKING:
    from projmem.core import Project

logger = logging.getLogger(__name__)


@dataclass
class ChatSession:
    """Handle the chat runtime holds for one open conversation."""

    name: str
    project: Project
    transcript: Transcript = field(default_factory=Transcript)
    closed: bool = False

    def close(self) -> None:
        self.closed = True


class ChatSessionManager:
    """Open saved sessions of one project, or start new ones in its chat directory.

    Only files inside the project's chat directory are selectable, so one
    project's conversations never leak into another's context.
    """

    def __init__(self, project: Project, transcript_format: str = "markdown") -> None:
        self.project = project
        self.transcript_format = TranscriptFormat(transcript_format)

    def list_sessions(self) -> list[str]:
        return [p.stem for p in self.project.store.list_transcripts()]

    def _find(self, name: str) -> Path | None:
        candidate = Path(name).expanduser()
        if candidate.is_absolute():
            if candidate.is_file() and self.project.store.owns(candidate):
                return candidate
            return None
        for path in self.project.store.list_transcripts():
            if name in (path.name, path.stem):
                return path
        return None

    def open_or_create(self, name: str, initial_content: str = "") -> ChatSession:
        existing = self._find(name)
        if existing is not None:
            logger.info("Opened session %s", existing)
            return ChatSession(
                name=existing.stem, project=self.project, transcript=parse_transcript(existing)
            )

        transcript = Transcript(format=self.transcript_format)
        if initial_content.strip():
            transcript.add_turn(ROLE_USER, initial_content)
        logger.info("New session %r in %s", name, self.project.store.chat_dir)
        return ChatSession(name=name, project=self.project, transcript=transcript)
