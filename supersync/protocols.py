"""
Protocol definitions for the capabilities a host injects into the sync engine.

The engine never talks to a file system, settings store or UI directly. It
depends on these interfaces, which keeps the evaluation logic testable with
plain in-memory fakes.

Usage:
    from supersync.protocols import DocumentStore, LinkResolver

    async def touch(store: DocumentStore, document_id: str) -> None:
        await store.process(document_id, lambda content: content)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional, Protocol, runtime_checkable

from supersync.properties import PropertyValue

if TYPE_CHECKING:
    from supersync.config import SyncSettings
    from supersync.notifications import SyncSignal


@runtime_checkable
class LinkResolver(Protocol):
    """Protocol for turning link text into a document identity."""

    async def resolve(self, link_text: str, from_document_id: str) -> Optional[str]:
        """Resolve link text relative to a document. Returns None if unresolved."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for reading and atomically rewriting documents."""

    async def read_metadata(self, document_id: str) -> dict[str, PropertyValue]:
        """Return the document's frontmatter properties in file order."""
        ...

    async def read_content(self, document_id: str) -> str:
        """Return the document's raw text."""
        ...

    async def process(self, document_id: str, transform: Callable[[str], str]) -> str:
        """Apply transform to the current content and store the result.

        Returns the new content.
        """
        ...

    def basename(self, document_id: str) -> str:
        """Return the display name used when linking to the document."""
        ...


@runtime_checkable
class Notifier(Protocol):
    """Protocol for the user-facing notification surface."""

    def notify(self, signal: SyncSignal) -> None:
        """Show a signal. Must not block."""
        ...


@runtime_checkable
class ConfirmationProvider(Protocol):
    """Protocol for asking the user to approve an update."""

    async def confirm(self, signal: SyncSignal) -> Optional[bool]:
        """Return True to proceed, False to decline, None when dismissed."""
        ...


@runtime_checkable
class SettingsProvider(Protocol):
    """Protocol for reading persisted settings."""

    def get_settings(self) -> SyncSettings:
        """Return the current settings."""
        ...


class StaticConfirmation:
    """Confirmation provider that always gives the same answer."""

    def __init__(self, answer: Optional[bool] = True):
        self.answer = answer
        self.prompts: list[SyncSignal] = []

    async def confirm(self, signal: SyncSignal) -> Optional[bool]:
        self.prompts.append(signal)
        return self.answer


__all__ = [
    "LinkResolver",
    "DocumentStore",
    "Notifier",
    "ConfirmationProvider",
    "SettingsProvider",
    "StaticConfirmation",
]
