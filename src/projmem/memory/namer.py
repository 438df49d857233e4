"""Derive a filename for an unnamed transcript and save it there."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from projmem.engines.base import CANCELLED, Failure, RemoteRequest, RemoteResult, Success, dispatch
from projmem.memory.store import StorageError

if TYPE_CHECKING:
    from projmem.engines.base import Engine
    from projmem.memory.store import DocumentStore
    from projmem.memory.transcript import Transcript

logger = logging.getLogger(__name__)

MAX_NAME_CHARS = 80

_ILLEGAL = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_MODEL_EXTENSIONS = (".md", ".org", ".txt", ".markdown")


def sanitize_name(text: str) -> str:
    """Reduce a model reply to a bare filename stem. Spaces are kept."""
    line = next((ln for ln in text.splitlines() if ln.strip()), "")
    name = line.strip().strip("`'\"*").strip()
    for ext in _MODEL_EXTENSIONS:
        if name.lower().endswith(ext):
            name = name[: -len(ext)]
            break
    name = _ILLEGAL.sub("", name)
    name = re.sub(r"\s+", " ", name).strip(" .")
    return name[:MAX_NAME_CHARS].rstrip(" .")


class TranscriptNamer:
    """Owns the Unnamed -> Naming -> Named transition of a transcript."""

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

    def _destination(self, name: str, extension: str) -> Path:
        """Path for ``name`` in the chat directory, suffixed -2, -3... on collision."""
        path = self.store.chat_dir / f"{name}{extension}"
        counter = 2
        while path.exists():
            path = self.store.chat_dir / f"{name}-{counter}{extension}"
            counter += 1
        return path

    async def name_and_persist(
        self,
        transcript: Transcript,
        still_valid: Callable[[], bool] | None = None,
    ) -> RemoteResult:
        """Name ``transcript`` and write it to its new path.

        On any failure the transcript goes back to Unnamed so the next turn
        can retry from scratch.
        """
        if not transcript.begin_naming():
            return Failure(status=f"transcript is {transcript.state.value}, not unnamed")

        request = RemoteRequest(
            prompt=transcript.content,
            system_prompt=self.system_prompt,
            model=self.model,
        )
        try:
            result = await dispatch(self.engine, request)
        except BaseException:
            transcript.reset_naming()
            raise

        if still_valid is not None and not still_valid():
            transcript.reset_naming()
            logger.debug("Naming result discarded: session no longer active")
            return Failure(status=CANCELLED)

        if not isinstance(result, Success):
            transcript.reset_naming()
            logger.warning("Naming request failed: %s", result.status)
            return result

        name = sanitize_name(result.text)
        if not name:
            transcript.reset_naming()
            logger.warning("Naming request returned no usable name: %r", result.text)
            return Failure(status="empty name")

        try:
            self.store.ensure_directory()
            destination = self._destination(name, transcript.format.extension)
            self.store.write_transcript(destination, transcript.render(title=destination.stem))
        except StorageError as e:
            transcript.reset_naming()
            logger.error("Could not save named transcript: %s", e)
            return Failure(status=f"storage: {e}")

        transcript.mark_named(destination)
        logger.info("Transcript named: %s", destination)
        return result
