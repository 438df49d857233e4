"""Tests for the transcript model and its on-disk formats."""

from __future__ import annotations

import pytest
from pathlib import Path

from projmem.memory.transcript import (
    ROLE_ASSISTANT,
    ROLE_USER,
    NamingState,
    Transcript,
    TranscriptFormat,
    parse_transcript,
    parse_turns,
)


def make_transcript(fmt: TranscriptFormat = TranscriptFormat.MARKDOWN) -> Transcript:
    t = Transcript(format=fmt)
    t.add_turn(ROLE_USER, "How do we ship v1?")
    t.add_turn(ROLE_ASSISTANT, "Cut scope, then tag.\n\nTwo paragraphs.")
    return t


class TestFormat:
    def test_extensions(self):
        assert TranscriptFormat.MARKDOWN.extension == ".md"
        assert TranscriptFormat.ORG.extension == ".org"

    def test_from_path(self):
        assert TranscriptFormat.from_path(Path("a.org")) is TranscriptFormat.ORG
        assert TranscriptFormat.from_path(Path("a.md")) is TranscriptFormat.MARKDOWN

    def test_from_config_string(self):
        assert TranscriptFormat("org") is TranscriptFormat.ORG


class TestContent:
    def test_markdown_body(self):
        content = make_transcript().content
        assert content.startswith("### User\nHow do we ship v1?")
        assert "### Assistant\nCut scope, then tag." in content

    def test_org_body(self):
        content = make_transcript(TranscriptFormat.ORG).content
        assert content.startswith("* User\nHow do we ship v1?")
        assert "* Assistant\n" in content

    def test_markdown_render_has_front_matter(self):
        t = make_transcript()
        t.model = "claude-sonnet-4-5"
        text = t.render()
        assert text.startswith("---\n")
        assert "created:" in text
        assert "model: claude-sonnet-4-5" in text
        assert "### User" in text

    def test_org_render_has_keywords(self):
        text = make_transcript(TranscriptFormat.ORG).render(title="Ship plan")
        assert text.startswith("#+TITLE: Ship plan\n")
        assert "#+CREATED:" in text


class TestParse:
    @pytest.mark.parametrize("fmt", [TranscriptFormat.MARKDOWN, TranscriptFormat.ORG])
    def test_saved_transcript_reopens_with_same_turns(self, tmp_path: Path, fmt: TranscriptFormat):
        t = make_transcript(fmt)
        path = tmp_path / f"Ship plan{fmt.extension}"
        path.write_text(t.render(), encoding="utf-8")

        loaded = parse_transcript(path)
        assert loaded.turns == t.turns
        assert loaded.format is fmt
        assert loaded.path == path
        assert loaded.is_named
        assert loaded.created == t.created

    @pytest.mark.parametrize(
        "fmt, lines",
        [
            (TranscriptFormat.MARKDOWN, ["### User", "### Assistant ", "\\### User"]),
            (TranscriptFormat.ORG, ["* User", "* Assistant", ",* User"]),
        ],
    )
    def test_heading_lines_inside_a_turn(self, tmp_path: Path, fmt: TranscriptFormat, lines: list[str]):
        t = Transcript(format=fmt)
        t.add_turn(ROLE_USER, "Show me the file layout")
        t.add_turn(ROLE_ASSISTANT, "Each turn starts with:\n" + "\n".join(lines) + "\nand so on.")
        path = tmp_path / f"Layout{fmt.extension}"
        path.write_text(t.render(), encoding="utf-8")

        loaded = parse_transcript(path)
        assert loaded.turns == t.turns

    def test_plain_markdown_without_front_matter(self, tmp_path: Path):
        path = tmp_path / "hand written.md"
        path.write_text("### User\nhello\n\n### Assistant\nhi\n", encoding="utf-8")
        loaded = parse_transcript(path)
        assert [(x.role, x.text) for x in loaded.turns] == [(ROLE_USER, "hello"), (ROLE_ASSISTANT, "hi")]

    def test_preamble_becomes_user_turn(self):
        turns = parse_turns("loose text\n\n### Assistant\nreply\n", TranscriptFormat.MARKDOWN)
        assert [(x.role, x.text) for x in turns] == [(ROLE_USER, "loose text"), (ROLE_ASSISTANT, "reply")]


class TestNamingState:
    def test_new_transcript_is_unnamed(self):
        t = Transcript()
        assert t.state is NamingState.UNNAMED
        assert t.path is None
        assert not t.is_named

    def test_begin_naming_only_from_unnamed(self):
        t = Transcript()
        assert t.begin_naming() is True
        assert t.state is NamingState.NAMING
        assert t.begin_naming() is False

    def test_reset_returns_to_unnamed(self):
        t = Transcript()
        t.begin_naming()
        t.reset_naming()
        assert t.state is NamingState.UNNAMED

    def test_named_at_most_once(self, tmp_path: Path):
        t = Transcript()
        t.begin_naming()
        t.mark_named(tmp_path / "first.md")
        with pytest.raises(RuntimeError, match="already named"):
            t.mark_named(tmp_path / "second.md")
        assert t.path == tmp_path / "first.md"

    def test_reset_does_not_unname(self, tmp_path: Path):
        t = Transcript()
        t.begin_naming()
        t.mark_named(tmp_path / "first.md")
        t.reset_naming()
        assert t.is_named
