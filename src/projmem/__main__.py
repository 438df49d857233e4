"""Entry point: python -m projmem [chat [SESSION] | sessions | summary | summarize SESSION]

- No args / "chat": Interactive chat in the current project, memory enabled
- "sessions":       List saved chat sessions of the current project
- "summary":        Show the project summary and description
- "summarize":      Fold one saved session into the project summary now
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

from projmem.config import ProjmemConfig, load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _registry(config: ProjmemConfig):
    from projmem.core import ProjectRegistry, build_engine

    return ProjectRegistry(config.memory, build_engine(config.engine))


async def _chat(config: ProjmemConfig, name: str) -> None:
    from projmem.connectors.cli import CLIChatHost
    from projmem.core import FeatureContext

    registry = _registry(config)
    project = registry.for_cwd(Path.cwd())
    session = project.sessions.open_or_create(name)

    host = CLIChatHost(registry.engine, session, model=config.engine.model)
    feature = FeatureContext(host, project)
    feature.activate()
    try:
        await host.run()
    finally:
        await feature.drain()
        feature.deactivate()
        await host.stop()


def _run_chat(config: ProjmemConfig, args: list[str]) -> None:
    name = args[0] if args else f"chat-{datetime.now():%Y%m%d-%H%M%S}"
    try:
        asyncio.run(_chat(config, name))
    except KeyboardInterrupt:
        pass


def _run_sessions(config: ProjmemConfig) -> None:
    from projmem.core import Project, find_project_root

    # Listing needs no engine.
    root = find_project_root(Path.cwd(), config.memory.chat_dir)
    project = Project(root, config.memory, engine=None)
    for name in project.sessions.list_sessions():
        print(name)


def _run_summary(config: ProjmemConfig) -> None:
    from projmem.core import Project, find_project_root

    root = find_project_root(Path.cwd(), config.memory.chat_dir)
    project = Project(root, config.memory, engine=None)
    print(f"# Description ({project.store.description_path})\n{project.store.read_description()}\n")
    print(f"# Summary ({project.store.summary_path})\n{project.store.read_summary()}")


def _run_summarize(config: ProjmemConfig, args: list[str]) -> None:
    if not args:
        print("Usage: python -m projmem summarize SESSION", file=sys.stderr)
        sys.exit(1)

    project = _registry(config).for_cwd(Path.cwd())
    if args[0] not in project.sessions.list_sessions():
        print(f"No saved session named {args[0]!r} in {project.store.chat_dir}", file=sys.stderr)
        sys.exit(1)
    session = project.sessions.open_or_create(args[0])

    result = asyncio.run(project.updater.update(session.transcript))
    if not result.ok:
        print(f"Summary update failed: {result.status}", file=sys.stderr)
        sys.exit(1)
    print(f"Summary updated: {project.store.summary_path}")


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "chat"
    args = sys.argv[2:]

    config = load_config()
    _setup_logging(config.log_level)

    if cmd in ("chat", "repl"):
        _run_chat(config, args)
    elif cmd == "sessions":
        _run_sessions(config)
    elif cmd == "summary":
        _run_summary(config)
    elif cmd == "summarize":
        _run_summarize(config, args)
    else:
        print(f"Usage: python -m projmem [chat [SESSION]|sessions|summary|summarize SESSION]")
        print(f"  chat       — Interactive chat with project memory (default)")
        print(f"  sessions   — List saved chat sessions")
        print(f"  summary    — Show project summary and description")
        print(f"  summarize  — Fold a saved session into the summary")
        sys.exit(1)


if __name__ == "__main__":
    main()
