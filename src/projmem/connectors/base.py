"""Chat host protocol and shared types."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from projmem.sessions import ChatSession


# A fixed directive string, or a provider called once per outgoing request.
Directive = Union[str, Callable[[], str], None]

# Called with the session after each completed assistant turn.
TurnCallback = Callable[["ChatSession"], object]


def resolve_directive(directive: Directive) -> str | None:
    """The directive text to send right now."""
    if callable(directive):
        return directive()
    return directive


@runtime_checkable
class ChatHost(Protocol):
    """What the memory feature needs from the chat runtime it plugs into."""

    directive: Directive
    post_response_hooks: list[TurnCallback]

    def notify(self, message: str) -> None:
        """Show a message to the user."""
        ...
