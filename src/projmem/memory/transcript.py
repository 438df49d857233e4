"""Transcript model and on-disk rendering.

A transcript is the list of turns in one chat session. It is written as
markdown (YAML front matter + ``### User`` / ``### Assistant`` sections) or
as org (``#+KEYWORD:`` header + ``* User`` / ``* Assistant`` headings).
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import frontmatter

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

_ROLE_TITLES = {ROLE_USER: "User", ROLE_ASSISTANT: "Assistant"}
_TITLE_ROLES = {v.lower(): k for k, v in _ROLE_TITLES.items()}

_MD_HEADING = re.compile(r"^### (User|Assistant)\s*$", re.MULTILINE)
_ORG_HEADING = re.compile(r"^\* (User|Assistant)\s*$", re.MULTILINE)
_ORG_KEYWORD = re.compile(r"^#\+(\w+):\s*(.*)$")

# A turn line that would read as a heading gets one more escape char on render.
_MD_ESCAPABLE = re.compile(r"^(\\*### (?:User|Assistant)[^\S\n]*)$", re.MULTILINE)
_ORG_ESCAPABLE = re.compile(r"^(,*\* (?:User|Assistant)[^\S\n]*)$", re.MULTILINE)
_MD_ESCAPED = re.compile(r"^\\(\\*### (?:User|Assistant)[^\S\n]*)$", re.MULTILINE)
_ORG_ESCAPED = re.compile(r"^,(,*\* (?:User|Assistant)[^\S\n]*)$", re.MULTILINE)


class TranscriptFormat(str, enum.Enum):
    ORG = "org"
    MARKDOWN = "markdown"

    @property
    def extension(self) -> str:
        return ".org" if self is TranscriptFormat.ORG else ".md"

    @classmethod
    def from_path(cls, path: Path) -> "TranscriptFormat":
        return cls.ORG if path.suffix == ".org" else cls.MARKDOWN


class NamingState(str, enum.Enum):
    UNNAMED = "unnamed"
    NAMING = "naming"
    NAMED = "named"


@dataclass
class Turn:
    role: str
    text: str


@dataclass
class Transcript:
    """One chat session's content plus its naming state.

    ``path`` is None until the transcript is named; after that it never
    changes.
    """

    format: TranscriptFormat = TranscriptFormat.MARKDOWN
    turns: list[Turn] = field(default_factory=list)
    path: Path | None = None
    state: NamingState = NamingState.UNNAMED
    created: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))
    model: str | None = None

    @property
    def is_named(self) -> bool:
        return self.state is NamingState.NAMED

    @property
    def content(self) -> str:
        """The conversation as plain text in this transcript's format, no header."""
        return render_body(self.turns, self.format)

    def add_turn(self, role: str, text: str) -> None:
        self.turns.append(Turn(role=role, text=text.strip()))

    def begin_naming(self) -> bool:
        if self.state is not NamingState.UNNAMED:
            return False
        self.state = NamingState.NAMING
        return True

    def mark_named(self, path: Path) -> None:
        if self.state is NamingState.NAMED:
            raise RuntimeError(f"Transcript already named: {self.path}")
        self.path = path
        self.state = NamingState.NAMED

    def reset_naming(self) -> None:
        if self.state is NamingState.NAMING:
            self.state = NamingState.UNNAMED

    def render(self, title: str | None = None) -> str:
        """Full file text: metadata header followed by the turns."""
        updated = datetime.now().isoformat(timespec="seconds")
        if self.format is TranscriptFormat.ORG:
            if title is None:
                title = self.path.stem if self.path else ""
            header = [f"#+TITLE: {title}", f"#+CREATED: {self.created}", f"#+UPDATED: {updated}"]
            if self.model:
                header.append(f"#+MODEL: {self.model}")
            return "\n".join(header) + "\n\n" + self.content

        metadata = {"created": self.created, "updated": updated}
        if self.model:
            metadata["model"] = self.model
        post = frontmatter.Post(self.content, **metadata)
        return frontmatter.dumps(post) + "\n"


def render_body(turns: list[Turn], fmt: TranscriptFormat) -> str:
    if fmt is TranscriptFormat.ORG:
        marker, escapable, escape = "*", _ORG_ESCAPABLE, r",\1"
    else:
        marker, escapable, escape = "###", _MD_ESCAPABLE, r"\\\1"
    sections = [
        f"{marker} {_ROLE_TITLES.get(t.role, t.role.title())}\n{escapable.sub(escape, t.text)}\n"
        for t in turns
    ]
    return "\n".join(sections)


def parse_turns(body: str, fmt: TranscriptFormat) -> list[Turn]:
    """Split a rendered body back into turns. Text before the first heading is a user turn."""
    if fmt is TranscriptFormat.ORG:
        pattern, escaped = _ORG_HEADING, _ORG_ESCAPED
    else:
        pattern, escaped = _MD_HEADING, _MD_ESCAPED
    turns: list[Turn] = []
    matches = list(pattern.finditer(body))

    preamble = body[: matches[0].start()] if matches else body
    if preamble.strip():
        turns.append(Turn(role=ROLE_USER, text=escaped.sub(r"\1", preamble.strip())))

    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(body)
        text = escaped.sub(r"\1", body[match.end() : end].strip())
        turns.append(Turn(role=_TITLE_ROLES[match.group(1).lower()], text=text))
    return turns


def parse_transcript(path: Path) -> Transcript:
    """Load a saved transcript. The result is already named at ``path``."""
    fmt = TranscriptFormat.from_path(path)
    raw = path.read_text(encoding="utf-8")

    if fmt is TranscriptFormat.ORG:
        meta: dict[str, str] = {}
        lines = raw.splitlines()
        body_start = 0
        for i, line in enumerate(lines):
            m = _ORG_KEYWORD.match(line)
            if not m:
                if line.strip():
                    break
                body_start = i + 1
                continue
            meta[m.group(1).upper()] = m.group(2).strip()
            body_start = i + 1
        body = "\n".join(lines[body_start:])
        created = meta.get("CREATED")
        model = meta.get("MODEL")
    else:
        try:
            post = frontmatter.loads(raw)
            body, metadata = post.content, dict(post.metadata)
        except Exception:
            body, metadata = raw, {}
        created = metadata.get("created")
        model = metadata.get("model")

    transcript = Transcript(
        format=fmt,
        turns=parse_turns(body, fmt),
        path=path,
        state=NamingState.NAMED,
        model=model,
    )
    if created:
        transcript.created = str(created)
    return transcript
