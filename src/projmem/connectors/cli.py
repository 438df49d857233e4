"""Local CLI REPL chat host for one project session."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from projmem.connectors.base import resolve_directive
from projmem.engines.base import Success
from projmem.memory.transcript import ROLE_ASSISTANT, ROLE_USER

if TYPE_CHECKING:
    from projmem.connectors.base import Directive, TurnCallback
    from projmem.engines.base import Engine, RemoteResult
    from projmem.sessions import ChatSession

logger = logging.getLogger(__name__)


class CLIChatHost:
    """Interactive REPL host — reads from stdin, writes to stdout."""

    def __init__(self, engine: Engine, session: ChatSession, model: str | None = None) -> None:
        self.engine = engine
        self.session = session
        self.model = model
        self.directive: Directive = None
        self.post_response_hooks: list[TurnCallback] = []
        self._running = False

    def notify(self, message: str) -> None:
        print(f"  [{message}]", file=sys.stderr)

    async def send_turn(self, text: str) -> RemoteResult:
        """One user -> assistant exchange; fires the turn hooks on success."""
        transcript = self.session.transcript
        history = transcript.content
        transcript.add_turn(ROLE_USER, text)

        result = await self.engine.send(
            text,
            system_prompt=resolve_directive(self.directive),
            context=history or None,
            model=self.model,
        )
        if not isinstance(result, Success):
            transcript.turns.pop()
            return result

        transcript.add_turn(ROLE_ASSISTANT, result.text)
        if result.model:
            transcript.model = result.model
        for hook in list(self.post_response_hooks):
            hook(self.session)
        return result

    async def run(self) -> None:
        self._running = True
        loop = asyncio.get_event_loop()

        print(f"projmem chat — {self.session.name} (type 'exit' or Ctrl+C to quit)")
        print("-" * 48)

        while self._running:
            try:
                line = await loop.run_in_executor(None, self._read_input)
            except (EOFError, KeyboardInterrupt):
                print("\nBye!")
                break

            if line is None or line.strip().lower() in ("exit", "quit"):
                print("Bye!")
                break

            text = line.strip()
            if not text:
                continue

            result = await self.send_turn(text)
            self.reply(result)

    def _read_input(self) -> str | None:
        try:
            sys.stdout.write("\nYou: ")
            sys.stdout.flush()
            raw = sys.stdin.buffer.readline()
            if not raw:
                return None
            return raw.decode("utf-8", errors="replace").rstrip("\n")
        except EOFError:
            return None

    async def stop(self) -> None:
        self._running = False
        self.session.close()

    def reply(self, result: RemoteResult) -> None:
        if not isinstance(result, Success):
            self.notify(f"Request failed: {result.status}")
            return
        print(f"\nAssistant: {result.text}")
        if result.cost_usd is not None:
            print(f"  [cost: ${result.cost_usd:.4f}]", file=sys.stderr)
