"""Project memory orchestration.

Responsibilities:
1. Project aggregate — one DocumentStore, directive composer, namer and
   summary updater per project root
2. Turn hook — after each completed assistant turn: name new sessions,
   autosave, fold the first named turn into the summary
3. Feature context — install/remove the directive provider and turn hook on
   a chat host, restoring whatever directive was there before
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from projmem.config import EngineConfig, MemoryConfig
from projmem.engines.base import CANCELLED
from projmem.memory.directive import DirectiveComposer
from projmem.memory.namer import TranscriptNamer
from projmem.memory.store import DocumentStore, StorageError
from projmem.memory.summary import SummaryUpdater
from projmem.memory.transcript import NamingState
from projmem.sessions import ChatSessionManager

if TYPE_CHECKING:
    from projmem.connectors.base import ChatHost, Directive
    from projmem.engines.base import Engine
    from projmem.sessions import ChatSession

logger = logging.getLogger(__name__)


def find_project_root(cwd: str | Path, chat_dir: str = ".gptel-chats") -> Path:
    """Walk up from cwd: highest dir holding the chat dir, else nearest .git, else cwd."""
    start = Path(cwd).resolve()
    root = None
    git_root = None
    p = start
    while True:
        if (p / chat_dir).is_dir():
            root = p
        if git_root is None and (p / ".git").exists():
            git_root = p
        if p == p.parent:
            break
        p = p.parent
    return root or git_root or start


def build_engine(config: EngineConfig) -> Engine:
    if config.name == "anthropic_api":
        from projmem.engines.anthropic_api import AnthropicAPIEngine

        if config.model:
            return AnthropicAPIEngine(
                model=config.model, max_tokens=config.max_tokens, timeout=config.timeout
            )
        return AnthropicAPIEngine(max_tokens=config.max_tokens, timeout=config.timeout)
    elif config.name == "claude_cli":
        from projmem.engines.claude_cli import ClaudeCLIEngine

        return ClaudeCLIEngine(model=config.model, timeout=config.timeout)
    else:
        raise ValueError(f"Unknown engine: {config.name}")


class Project:
    """Aggregate root for everything stored under one project's chat directory."""

    def __init__(self, root: Path, config: MemoryConfig, engine: Engine) -> None:
        self.root = root
        self.config = config
        self.store = DocumentStore(
            root / config.chat_dir,
            summary_filename=config.summary_filename,
            description_filename=config.description_filename,
        )
        self.composer = DirectiveComposer(self.store, config.directive_template)
        self.namer = TranscriptNamer(
            self.store, engine, config.naming_system_prompt, model=config.naming_model
        )
        self.updater = SummaryUpdater(
            self.store, engine, config.summary_system_prompt, model=config.summary_model
        )
        self.sessions = ChatSessionManager(self, transcript_format=config.transcript_format)

    def __repr__(self) -> str:
        return f"Project({self.root})"


class ProjectRegistry:
    """Projects by resolved root path, so concurrent sessions share one summary lane."""

    def __init__(self, config: MemoryConfig, engine: Engine) -> None:
        self.config = config
        self.engine = engine
        self._projects: dict[Path, Project] = {}

    def get(self, root: str | Path) -> Project:
        key = Path(root).resolve()
        if key not in self._projects:
            self._projects[key] = Project(key, self.config, self.engine)
        return self._projects[key]

    def for_cwd(self, cwd: str | Path) -> Project:
        return self.get(find_project_root(cwd, self.config.chat_dir))


class TurnHook:
    """Runs the naming -> persist -> summarize pipeline after each assistant turn."""

    def __init__(self, feature: FeatureContext) -> None:
        self.feature = feature
        self._tasks: set[asyncio.Task] = set()

    def __call__(self, session: ChatSession) -> asyncio.Task:
        return self.fire(session)

    def fire(self, session: ChatSession) -> asyncio.Task:
        """Schedule the pipeline for ``session`` and return without waiting."""
        task = asyncio.get_running_loop().create_task(self.run(session))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    @property
    def pending(self) -> set[asyncio.Task]:
        return set(self._tasks)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Turn hook failed: %s", exc, exc_info=exc)
            self.feature.notify(f"Project memory error: {exc}")

    def _still_valid(self, session: ChatSession) -> bool:
        return self.feature.active and not session.closed

    async def run(self, session: ChatSession) -> None:
        config = session.project.config
        transcript = session.transcript

        if transcript.state is NamingState.NAMING:
            logger.debug("Naming already in flight for %r, skipping turn", session.name)
            return

        if transcript.is_named:
            if config.autosave:
                self._persist(session)
            return

        result = await session.project.namer.name_and_persist(
            transcript, still_valid=lambda: self._still_valid(session)
        )
        if not result.ok:
            if result.status != CANCELLED:
                self.feature.notify(f"Could not name chat session: {result.status}")
            return

        session.name = transcript.path.stem
        self.feature.notify(f"Chat saved as {transcript.path.name}")
        if config.autosave:
            self._persist(session)

        if config.auto_summary:
            summary = await session.project.updater.update(
                transcript, still_valid=lambda: self._still_valid(session)
            )
            if not summary.ok and summary.status != CANCELLED:
                self.feature.notify(f"Could not update project summary: {summary.status}")

    def _persist(self, session: ChatSession) -> None:
        if not self._still_valid(session):
            return
        transcript = session.transcript
        try:
            session.project.store.write_transcript(transcript.path, transcript.render())
        except StorageError as e:
            logger.error("Autosave failed: %s", e)
            self.feature.notify(f"Could not save chat session: {e}")


class FeatureContext:
    """Enable/disable project memory on one chat host."""

    def __init__(self, host: ChatHost, project: Project) -> None:
        self.host = host
        self.project = project
        self.hook = TurnHook(self)
        self._active = False
        self._prior_directive: Directive = None

    @property
    def active(self) -> bool:
        return self._active

    def activate(self) -> None:
        if self._active:
            return
        self._prior_directive = self.host.directive
        self.host.directive = self.project.composer.compose
        self.host.post_response_hooks.append(self.hook)
        self._active = True
        logger.info("Project memory enabled for %s", self.project.root)

    def deactivate(self) -> None:
        if not self._active:
            return
        if self.hook in self.host.post_response_hooks:
            self.host.post_response_hooks.remove(self.hook)
        self.host.directive = self._prior_directive
        self._prior_directive = None
        self._active = False
        logger.info("Project memory disabled for %s", self.project.root)

    def notify(self, message: str) -> None:
        self.host.notify(message)

    async def drain(self) -> None:
        """Wait for in-flight turn hooks to finish."""
        pending = self.hook.pending
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
