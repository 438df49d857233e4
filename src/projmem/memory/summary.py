"""Fold a conversation into the project's running summary."""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from projmem.engines.base import CANCELLED, Failure, RemoteRequest, RemoteResult, Success, dispatch
from projmem.memory.store import StorageError

if TYPE_CHECKING:
    from projmem.engines.base import Engine
    from projmem.memory.store import DocumentStore
    from projmem.memory.transcript import Transcript

logger = logging.getLogger(__name__)

SUMMARY_REQUEST_TEMPLATE = """\
<existing_summary>
{summary}
</existing_summary>

<conversation>
{conversation}
</conversation>

Merge the conversation into the existing summary and reply with the updated summary."""


class SummaryState(str, enum.Enum):
    IDLE = "idle"
    UPDATING = "updating"


def build_summary_prompt(summary: str, conversation: str) -> str:
    return SUMMARY_REQUEST_TEMPLATE.format(summary=summary, conversation=conversation)


class SummaryUpdater:
    """Read-merge-write of one project's summary, one update at a time."""

    def __init__(
        self,
        store: DocumentStore,
        engine: Engine,
        system_prompt: str,
        model: str | None = None,
    ) -> None:
        self.store = store
        self.engine = engine
        self.system_prompt = system_prompt
        self.model = model
        self.state = SummaryState.IDLE
        self.last_updated: datetime | None = None
        self._lane = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lane.locked()

    async def update(
        self,
        transcript: Transcript,
        still_valid: Callable[[], bool] | None = None,
    ) -> RemoteResult:
        """Merge ``transcript`` into the summary. The prior summary survives any failure."""
        async with self._lane:
            self.state = SummaryState.UPDATING
            try:
                return await self._update(transcript, still_valid)
            finally:
                self.state = SummaryState.IDLE

    async def _update(
        self,
        transcript: Transcript,
        still_valid: Callable[[], bool] | None,
    ) -> RemoteResult:
        # Read inside the lane so a queued update sees the previous one's result.
        request = RemoteRequest(
            prompt=build_summary_prompt(self.store.read_summary(), transcript.content),
            system_prompt=self.system_prompt,
            model=self.model,
        )
        result = await dispatch(self.engine, request)

        if still_valid is not None and not still_valid():
            logger.debug("Summary result discarded: session no longer active")
            return Failure(status=CANCELLED)

        if not isinstance(result, Success):
            logger.warning("Summary request failed: %s", result.status)
            return result

        try:
            self.store.ensure_directory()
            self.store.write_summary(result.text)
        except StorageError as e:
            logger.error("Could not write summary: %s", e)
            return Failure(status=f"storage: {e}")

        self.last_updated = datetime.now()
        return result
