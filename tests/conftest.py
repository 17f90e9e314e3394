"""
Shared pytest fixtures for the supersync test suite.

Provides an in-memory host (documents, resolver) so orchestrator tests run
without touching the file system, plus a temporary on-disk vault for the
FileVault and CLI tests.
"""

import os
from pathlib import Path, PurePosixPath
from typing import Callable, Optional

import pytest

from supersync.config import StaticSettingsProvider, SyncSettings
from supersync.exceptions import DocumentNotFoundError
from supersync.frontmatter import parse_metadata
from supersync.notifications import RecordingNotifier
from supersync.orchestrator import SyncOrchestrator
from supersync.properties import PropertyValue
from supersync.protocols import StaticConfirmation


# ============================================================================
# In-memory host
# ============================================================================


class InMemoryVault:
    """DocumentStore and LinkResolver over a dict of id -> content.

    Links resolve by exact identity or by basename, nothing else; alias
    and heading suffixes are deliberately not understood.
    """

    def __init__(self, documents: Optional[dict[str, str]] = None):
        self.documents: dict[str, str] = dict(documents or {})
        self.writes: list[tuple[str, str]] = []
        self.process_calls: list[str] = []
        self.resolve_calls: list[tuple[str, str]] = []

    def add(self, document_id: str, content: str) -> str:
        self.documents[document_id] = content
        return document_id

    def basename(self, document_id: str) -> str:
        return PurePosixPath(document_id).stem

    async def read_content(self, document_id: str) -> str:
        try:
            return self.documents[document_id]
        except KeyError:
            raise DocumentNotFoundError(document_id) from None

    async def read_metadata(self, document_id: str) -> dict[str, PropertyValue]:
        return parse_metadata(await self.read_content(document_id))

    async def process(self, document_id: str, transform: Callable[[str], str]) -> str:
        self.process_calls.append(document_id)
        content = await self.read_content(document_id)
        updated = transform(content)
        if updated != content:
            self.documents[document_id] = updated
            self.writes.append((document_id, updated))
        return updated

    async def resolve(self, link_text: str, from_document_id: str) -> Optional[str]:
        self.resolve_calls.append((link_text, from_document_id))
        if link_text in self.documents:
            return link_text
        for document_id in sorted(self.documents):
            if self.basename(document_id) == link_text:
                return document_id
        return None


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def vault():
    """Empty in-memory vault."""
    return InMemoryVault()


@pytest.fixture
def notifier():
    """Notifier that records signals."""
    return RecordingNotifier()


@pytest.fixture
def make_orchestrator(vault, notifier):
    """Factory for an orchestrator wired to the in-memory vault."""

    def _make(
        settings: Optional[SyncSettings] = None,
        confirmation=None,
    ) -> SyncOrchestrator:
        return SyncOrchestrator(
            store=vault,
            resolver=vault,
            notifier=notifier,
            settings=StaticSettingsProvider(settings or SyncSettings()),
            confirmation=confirmation if confirmation is not None else StaticConfirmation(True),
        )

    return _make


@pytest.fixture
def disk_vault(tmp_path: Path) -> Path:
    """Temporary vault directory with a notes/ folder."""
    (tmp_path / "notes").mkdir()
    return tmp_path


@pytest.fixture(autouse=True)
def clean_supersync_env():
    """Keep SUPERSYNC_* environment overrides from leaking between tests."""
    saved = {k: v for k, v in os.environ.items() if k.startswith("SUPERSYNC_")}
    for key in saved:
        del os.environ[key]
    yield
    for key in [k for k in os.environ if k.startswith("SUPERSYNC_")]:
        del os.environ[key]
    os.environ.update(saved)
