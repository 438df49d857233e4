"""File-backed project documents: summary, description and saved transcripts.

Plain text files in the project's chat directory are the source of truth.
Nothing is cached, so every read reflects what is on disk right now.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

MISSING = "None"

TRANSCRIPT_SUFFIXES = (".md", ".org")


class StorageError(OSError):
    """The chat directory or one of its files could not be created or written."""


class DocumentStore:
    """Read/write access to one project's chat directory."""

    def __init__(
        self,
        chat_dir: Path,
        summary_filename: str = "summary.txt",
        description_filename: str = "project-description.txt",
    ) -> None:
        self.chat_dir = chat_dir
        self.summary_path = chat_dir / summary_filename
        self.description_path = chat_dir / description_filename

    # ── Directory ─────────────────────────────────────────────

    def ensure_directory(self) -> None:
        """Create the chat directory and its parents. Idempotent."""
        try:
            self.chat_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"cannot create {self.chat_dir}: {e}") from e

    def owns(self, path: Path) -> bool:
        """True if ``path`` lives inside this chat directory."""
        try:
            path.resolve().relative_to(self.chat_dir.resolve())
        except ValueError:
            return False
        return True

    # ── Documents ─────────────────────────────────────────────

    def read_summary(self) -> str:
        return self._read_or_missing(self.summary_path)

    def read_description(self) -> str:
        return self._read_or_missing(self.description_path)

    def write_summary(self, text: str) -> None:
        """Overwrite the summary in full."""
        self._atomic_write(self.summary_path, text)
        logger.info("Summary written: %s (%d chars)", self.summary_path, len(text))

    def _read_or_missing(self, path: Path) -> str:
        """File text exactly as written, line endings included.

        Hand-edited files need not be UTF-8; undecodable bytes become U+FFFD.
        """
        if not path.exists():
            return MISSING
        with open(path, encoding="utf-8", errors="replace", newline="") as handle:
            return handle.read()

    # ── Transcripts ───────────────────────────────────────────

    def write_transcript(self, path: Path, text: str) -> None:
        self._atomic_write(path, text)

    def list_transcripts(self) -> list[Path]:
        """Saved transcripts in the chat directory, sorted by name."""
        if not self.chat_dir.is_dir():
            return []
        documents = {self.summary_path.name, self.description_path.name}
        return sorted(
            p
            for p in self.chat_dir.iterdir()
            if p.is_file() and p.suffix in TRANSCRIPT_SUFFIXES and p.name not in documents
        )

    # ── Writes ────────────────────────────────────────────────

    def _atomic_write(self, path: Path, text: str) -> None:
        """Write to a scratch file beside ``path``, then rename over it."""
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise StorageError(f"cannot write {path}: {e}") from e
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.remove(tmp_name)
