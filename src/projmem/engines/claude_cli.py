"""Claude CLI engine — wraps `claude -p` using a Claude Code subscription."""

from __future__ import annotations

import asyncio
import json
import logging
import subprocess
from dataclasses import dataclass

from projmem.engines.base import Failure, RemoteResult, Success

logger = logging.getLogger(__name__)


@dataclass
class ClaudeCLIEngine:
    """Subprocess wrapper around `claude -p --output-format json`.

    Uses your Claude Code subscription — no API key needed.
    """

    model: str | None = None
    timeout: int = 300

    @property
    def name(self) -> str:
        return "claude_cli"

    async def send(
        self,
        message: str,
        *,
        system_prompt: str | None = None,
        context: str | None = None,
        model: str | None = None,
    ) -> RemoteResult:
        cmd = ["claude", "-p", "--output-format", "json", "--no-session-persistence"]

        model = model or self.model
        if model:
            cmd.extend(["--model", model])
        if system_prompt:
            cmd.extend(["--system-prompt", system_prompt])

        full_prompt = f"<context>\n{context}\n</context>\n\n{message}" if context else message
        cmd.append(full_prompt)

        logger.debug("Running: %s", " ".join(cmd[:4]) + " ...")

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return Failure(status=f"timeout after {self.timeout}s")
        except FileNotFoundError:
            return Failure(status="`claude` CLI not found. Is Claude Code installed?")

        if result.returncode != 0:
            stderr = result.stderr.strip()
            logger.error("claude CLI error (rc=%d): %s", result.returncode, stderr)
            return Failure(status=f"claude CLI error (rc={result.returncode}): {stderr or 'unknown error'}")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            # Fallback: treat raw stdout as plain text
            text = result.stdout.strip()
            return Success(text=text) if text else Failure(status="empty response")

        if data.get("is_error"):
            return Failure(status=str(data.get("result") or data.get("subtype") or "error"))

        text = (data.get("result") or "").strip()
        if not text:
            return Failure(status="empty response")

        return Success(
            text=text,
            cost_usd=data.get("cost_usd") or data.get("total_cost_usd"),
            model=data.get("model"),
        )

    async def health_check(self) -> bool:
        try:
            result = await asyncio.to_thread(
                subprocess.run,
                ["claude", "--version"],
                capture_output=True,
                text=True,
                timeout=10,
            )
            return result.returncode == 0
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return False
