"""Tests for the CLI chat host."""

from __future__ import annotations

import pytest
from pathlib import Path

from projmem.config import MemoryConfig
from projmem.connectors.base import ChatHost
from projmem.connectors.cli import CLIChatHost
from projmem.core import FeatureContext, Project
from projmem.engines.base import Failure, Success
from projmem.memory.transcript import ROLE_ASSISTANT, ROLE_USER


class MockEngine:
    def __init__(self, *results):
        self._results = list(results)
        self.calls: list[dict] = []

    @property
    def name(self) -> str:
        return "mock"

    async def send(self, message, *, system_prompt=None, context=None, model=None):
        self.calls.append(
            {"message": message, "system_prompt": system_prompt, "context": context, "model": model}
        )
        return self._results.pop(0)

    async def health_check(self) -> bool:
        return True


@pytest.fixture
def project(tmp_path: Path) -> Project:
    return Project(tmp_path / "project", MemoryConfig(directive_template="S={summary}"), engine=None)


class TestHost:
    def test_is_chat_host(self, project: Project):
        host = CLIChatHost(MockEngine(), project.sessions.open_or_create("scratch"))
        assert isinstance(host, ChatHost)
        assert host.directive is None
        assert host.post_response_hooks == []


class TestSendTurn:
    @pytest.mark.asyncio
    async def test_appends_turns_and_fires_hooks(self, project: Project):
        engine = MockEngine(Success(text="Hi!", model="claude-sonnet-4-5"))
        session = project.sessions.open_or_create("scratch")
        host = CLIChatHost(engine, session)
        fired = []
        host.post_response_hooks.append(fired.append)

        result = await host.send_turn("Hello")

        assert result.ok
        assert [(t.role, t.text) for t in session.transcript.turns] == [
            (ROLE_USER, "Hello"),
            (ROLE_ASSISTANT, "Hi!"),
        ]
        assert session.transcript.model == "claude-sonnet-4-5"
        assert fired == [session]

    @pytest.mark.asyncio
    async def test_static_directive(self, project: Project):
        engine = MockEngine(Success(text="ok"))
        host = CLIChatHost(engine, project.sessions.open_or_create("scratch"), model="haiku")
        host.directive = "Be brief."

        await host.send_turn("Hello")

        assert engine.calls[0]["system_prompt"] == "Be brief."
        assert engine.calls[0]["model"] == "haiku"
        assert engine.calls[0]["context"] is None

    @pytest.mark.asyncio
    async def test_history_sent_as_context(self, project: Project):
        engine = MockEngine(Success(text="first answer"), Success(text="second answer"))
        host = CLIChatHost(engine, project.sessions.open_or_create("scratch"))

        await host.send_turn("first")
        await host.send_turn("second")

        assert engine.calls[1]["message"] == "second"
        assert "first answer" in engine.calls[1]["context"]

    @pytest.mark.asyncio
    async def test_failure_drops_user_turn(self, project: Project):
        engine = MockEngine(Failure(status="HTTP 500"))
        session = project.sessions.open_or_create("scratch")
        host = CLIChatHost(engine, session)
        fired = []
        host.post_response_hooks.append(fired.append)

        result = await host.send_turn("Hello")

        assert isinstance(result, Failure)
        assert session.transcript.turns == []
        assert fired == []

    @pytest.mark.asyncio
    async def test_with_project_memory(self, tmp_path: Path):
        engine = MockEngine(
            Success(text="Sure."),
            Success(text="Greeting chat"),
            Success(text="User says hello."),
            Success(text="Again."),
        )
        project = Project(tmp_path / "p", MemoryConfig(directive_template="S={summary}"), engine)
        session = project.sessions.open_or_create("scratch")
        host = CLIChatHost(engine, session)
        feature = FeatureContext(host, project)
        feature.activate()

        await host.send_turn("Hello")
        await feature.drain()
        await host.send_turn("Hello again")
        await feature.drain()

        assert engine.calls[0]["system_prompt"] == "S=None"
        assert engine.calls[3]["system_prompt"] == "S=User says hello."
        assert session.transcript.path == project.store.chat_dir / "Greeting chat.md"
        assert "Hello again" in session.transcript.path.read_text(encoding="utf-8")


class TestReplyAndStop:
    def test_reply_success(self, project: Project, capsys):
        host = CLIChatHost(MockEngine(), project.sessions.open_or_create("scratch"))
        host.reply(Success(text="Answer", cost_usd=0.0012))
        out, err = capsys.readouterr()
        assert "Assistant: Answer" in out
        assert "$0.0012" in err

    def test_reply_failure(self, project: Project, capsys):
        host = CLIChatHost(MockEngine(), project.sessions.open_or_create("scratch"))
        host.reply(Failure(status="timeout"))
        _, err = capsys.readouterr()
        assert "Request failed: timeout" in err

    @pytest.mark.asyncio
    async def test_stop_closes_session(self, project: Project):
        session = project.sessions.open_or_create("scratch")
        host = CLIChatHost(MockEngine(), session)
        await host.stop()
        assert session.closed
