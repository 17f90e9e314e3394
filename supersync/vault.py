"""
File-system vault: a host for the sync engine backed by a folder of Markdown files.

Document identities are vault-relative POSIX paths (``notes/B.md``). The
vault implements DocumentStore and LinkResolver, and offers a polling
``watch()`` that stands in for a host's change notifications.

Usage:
    vault = FileVault("~/notes")
    orchestrator = SyncOrchestrator(vault, vault, notifier, settings)
    async for document_id in vault.watch(interval=1.0):
        await orchestrator.handle_change(document_id)
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
import tempfile
import weakref
from pathlib import Path, PurePosixPath
from typing import AsyncIterator, Callable, Optional

from supersync.exceptions import DocumentError, DocumentNotFoundError, DocumentWriteError
from supersync.frontmatter import parse_metadata
from supersync.links import split_link_text
from supersync.logging_config import log_function
from supersync.properties import PropertyValue

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".md"


class FileVault:
    """A directory of Markdown documents.

    Hidden files and folders (``.obsidian``, ``.trash``, ...) are not part
    of the vault.
    """

    def __init__(self, root: str | Path, extension: str = DEFAULT_EXTENSION):
        self.root = Path(root).expanduser().resolve()
        self.extension = extension
        self._write_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    def document_id(self, path: str | Path) -> str:
        """Return the identity of a file path inside the vault."""
        full = Path(path)
        if not full.is_absolute():
            full = self.root / full
        try:
            relative = full.resolve().relative_to(self.root)
        except ValueError:
            raise DocumentNotFoundError(str(path)) from None
        return relative.as_posix()

    def path_for(self, document_id: str) -> Path:
        normalized = posixpath.normpath(document_id)
        if normalized.startswith("..") or posixpath.isabs(normalized):
            raise DocumentNotFoundError(document_id)
        return self.root / normalized

    def basename(self, document_id: str) -> str:
        name = PurePosixPath(document_id).name
        if name.lower().endswith(self.extension):
            return name[: -len(self.extension)]
        return name

    def list_documents(self) -> list[str]:
        """All document identities, sorted."""
        documents = []
        for path in self.root.rglob(f"*{self.extension}"):
            relative = path.relative_to(self.root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if path.is_file():
                documents.append(relative.as_posix())
        return sorted(documents)

    # ------------------------------------------------------------------
    # DocumentStore
    # ------------------------------------------------------------------

    async def read_content(self, document_id: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read, document_id)

    async def read_metadata(self, document_id: str) -> dict[str, PropertyValue]:
        return parse_metadata(await self.read_content(document_id))

    @log_function(level="DEBUG")
    async def process(self, document_id: str, transform: Callable[[str], str]) -> str:
        """Read, transform and write a document as one step.

        Concurrent calls for the same document are serialized. Nothing is
        written when the transform returns the content unchanged.
        """
        lock = self._write_locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._write_locks[document_id] = lock
        loop = asyncio.get_running_loop()
        async with lock:
            content = await loop.run_in_executor(None, self._read, document_id)
            updated = transform(content)
            if updated != content:
                await loop.run_in_executor(None, self._write, document_id, updated)
                logger.debug(f"Wrote {document_id} ({len(updated)} chars)")
        return updated

    def _read(self, document_id: str) -> str:
        path = self.path_for(document_id)
        try:
            with open(path, encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError:
            raise DocumentNotFoundError(document_id) from None
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentError(f"Failed to read {document_id}: {e}", {"document_id": document_id}) from e

    def _write(self, document_id: str, content: str) -> None:
        path = self.path_for(document_id)
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".supersync-", dir=path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                    f.write(content)
                if path.exists():
                    os.chmod(tmp_name, path.stat().st_mode)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise DocumentWriteError(document_id, str(e)) from e

    # ------------------------------------------------------------------
    # LinkResolver
    # ------------------------------------------------------------------

    async def resolve(self, link_text: str, from_document_id: str) -> Optional[str]:
        """Resolve link text the way wiki-style editors do.

        Alias and heading/block suffixes are dropped. A bare ``#heading``
        link points at the linking document itself. Path-like links are
        tried relative to the vault root and then to the linking document's
        folder; otherwise the file name is matched anywhere, preferring the
        linking document's folder, then the shallowest path. Exact case
        wins over a case-insensitive match.
        """
        path, subpath, _alias = split_link_text(link_text)
        if not path:
            return from_document_id if subpath else None
        loop = asyncio.get_running_loop()
        documents = await loop.run_in_executor(None, self.list_documents)
        return self._resolve_in(path, from_document_id, documents)

    def _resolve_in(self, path: str, from_document_id: str, documents: list[str]) -> Optional[str]:
        candidate = path if path.lower().endswith(self.extension) else path + self.extension
        source_dir = posixpath.dirname(from_document_id)

        if "/" in candidate:
            for option in (
                posixpath.normpath(candidate.lstrip("/")),
                posixpath.normpath(posixpath.join(source_dir, candidate)),
            ):
                found = _match_exact(option, documents)
                if found:
                    return found

        for fold in (False, True):
            matches = [d for d in documents if _path_endswith(d, candidate, fold)]
            if matches:
                return min(
                    matches,
                    key=lambda d: (posixpath.dirname(d) != source_dir, d.count("/"), d),
                )
        return None

    # ------------------------------------------------------------------
    # Change notifications
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, int]:
        """Modification times of every document, by identity."""
        times = {}
        for document_id in self.list_documents():
            try:
                times[document_id] = self.path_for(document_id).stat().st_mtime_ns
            except FileNotFoundError:
                continue
        return times

    async def watch(
        self,
        interval: float = 1.0,
        stop: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        """Yield identities of documents created or modified since the last poll.

        Runs until stop is set. Documents existing when watching starts are
        not reported until they change.
        """
        loop = asyncio.get_running_loop()
        previous = await loop.run_in_executor(None, self.snapshot)
        while stop is None or not stop.is_set():
            if stop is None:
                await asyncio.sleep(interval)
            else:
                try:
                    await asyncio.wait_for(stop.wait(), timeout=interval)
                    break
                except asyncio.TimeoutError:
                    pass
            current = await loop.run_in_executor(None, self.snapshot)
            for document_id in sorted(current):
                if previous.get(document_id) != current[document_id]:
                    yield document_id
            previous = current


def _match_exact(option: str, documents: list[str]) -> Optional[str]:
    if option in documents:
        return option
    folded = option.casefold()
    for document_id in documents:
        if document_id.casefold() == folded:
            return document_id
    return None


def _path_endswith(document_id: str, candidate: str, fold: bool) -> bool:
    if fold:
        document_id, candidate = document_id.casefold(), candidate.casefold()
    return document_id == candidate or document_id.endswith("/" + candidate)


__all__ = ["FileVault", "DEFAULT_EXTENSION"]
