"""Engine protocol and shared types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union, runtime_checkable


@dataclass
class Success:
    """Text returned by a completed remote request."""

    text: str
    model: str | None = None
    cost_usd: float | None = None

    @property
    def ok(self) -> bool:
        return True


@dataclass
class Failure:
    """A remote request that errored, timed out, or returned no text."""

    status: str

    @property
    def ok(self) -> bool:
        return False


RemoteResult = Union[Success, Failure]

# Status of a result dropped because its session or feature went away mid-flight.
CANCELLED = "cancelled"


@dataclass
class RemoteRequest:
    """One outbound request: prompt, system directive and model id."""

    prompt: str
    system_prompt: str | None = None
    model: str | None = None


@runtime_checkable
class Engine(Protocol):
    """Protocol that all engine backends must implement.

    Remote errors are returned as ``Failure``, never raised.
    """

    @property
    def name(self) -> str: ...

    async def send(
        self,
        message: str,
        *,
        system_prompt: str | None = None,
        context: str | None = None,
        model: str | None = None,
    ) -> RemoteResult:
        """Send a message to the engine and return the result."""
        ...

    async def health_check(self) -> bool:
        """Check if the engine is available. Returns True if healthy."""
        ...


async def dispatch(engine: Engine, request: RemoteRequest) -> RemoteResult:
    """Send a ``RemoteRequest`` through ``engine``."""
    return await engine.send(
        request.prompt,
        system_prompt=request.system_prompt,
        model=request.model,
    )
