"""System directive assembly from the project summary and description."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from projmem.memory.store import DocumentStore


class DirectiveComposer:
    """Builds the directive sent with every request. Reads the store on each call."""

    def __init__(self, store: DocumentStore, template: str) -> None:
        self.store = store
        self.template = template

    def compose(self) -> str:
        summary = self.store.read_summary()
        description = self.store.read_description()
        try:
            return self.template.format(summary=summary, description=description)
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(
                f"Malformed directive template ({type(e).__name__}: {e}); "
                "only {summary} and {description} placeholders are allowed"
            ) from e

    __call__ = compose
