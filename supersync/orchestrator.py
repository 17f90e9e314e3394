"""
Sync orchestrator: keeps ``superseded_by``/``status`` in step with ``supersedes``.

Each change notification runs one independent evaluation:

    TRIGGERED -> PARSING -> RESOLVING -> CHECKING_CONFLICT
        -> SKIP | BLOCKED | AWAITING_CONFIRMATION | APPLYING -> IDLE

The triggering document is only ever read. The single write goes to the
target, sets both tracked keys in one ``process`` call, and happens after a
re-read and re-check of the target under a per-target lock.
"""

from __future__ import annotations

import asyncio
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from supersync.config import SyncSettings
from supersync.conflicts import ReverseState, ReverseStateKind, check_reverse_state
from supersync.exceptions import (
    ConfigurationError,
    ConflictingReverseRelationError,
    SupersyncError,
    UnresolvedTargetError,
    UserDeclinedConfirmationError,
)
from supersync.frontmatter import merge_properties
from supersync.links import extract_link, format_link
from supersync.logging_config import LogContext, get_logger
from supersync.notifications import SyncSignal
from supersync.protocols import (
    ConfirmationProvider,
    DocumentStore,
    LinkResolver,
    Notifier,
    SettingsProvider,
)

logger = get_logger(__name__)

SUPERSEDES_KEY = "supersedes"
SUPERSEDED_BY_KEY = "superseded_by"
STATUS_KEY = "status"
SUPERSEDED_STATUS = "superseded"


class SyncState(Enum):
    """States an evaluation passes through."""

    IDLE = "idle"
    TRIGGERED = "triggered"
    PARSING = "parsing"
    RESOLVING = "resolving"
    CHECKING_CONFLICT = "checking_conflict"
    SKIP = "skip"
    BLOCKED = "blocked"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    APPLYING = "applying"


class SyncOutcome(Enum):
    """How an evaluation ended."""

    DISABLED = "disabled"
    SKIPPED_NO_LINK = "skipped_no_link"
    SKIPPED_SELF_REFERENCE = "skipped_self_reference"
    SKIPPED_ALREADY_SYNCED = "skipped_already_synced"
    TARGET_NOT_FOUND = "target_not_found"
    BLOCKED = "blocked"
    DECLINED = "declined"
    APPLIED = "applied"
    ERROR = "error"


@dataclass
class SyncResult:
    """Record of one evaluation, returned by handle_change()."""

    document_id: str
    outcome: Optional[SyncOutcome] = None
    link_text: Optional[str] = None
    target_id: Optional[str] = None
    conflicting_id: Optional[str] = None
    error: Optional[str] = None
    states: list[SyncState] = field(default_factory=list)

    @property
    def wrote(self) -> bool:
        return self.outcome is SyncOutcome.APPLIED

    @property
    def terminal_state(self) -> Optional[SyncState]:
        """Last state before returning to IDLE."""
        for state in reversed(self.states):
            if state is not SyncState.IDLE:
                return state
        return None

    def enter(self, state: SyncState) -> None:
        self.states.append(state)
        logger.debug("State transition", state=state.value)


class SyncOrchestrator:
    """Reacts to document changes by maintaining the reverse relation.

    Args:
        store: Reads documents and performs the single write
        resolver: Resolves link text to document identities
        notifier: Receives user-facing signals
        settings: Read once at the start of every evaluation
        confirmation: Asked before writing when confirm_before_update is on
    """

    def __init__(
        self,
        store: DocumentStore,
        resolver: LinkResolver,
        notifier: Notifier,
        settings: SettingsProvider,
        confirmation: Optional[ConfirmationProvider] = None,
    ):
        self._store = store
        self._resolver = resolver
        self._notifier = notifier
        self._settings = settings
        self._confirmation = confirmation
        self._target_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    async def handle_change(self, document_id: str) -> SyncResult:
        """Evaluate one changed document from scratch.

        Never raises: every outcome, including host failures and unexpected
        errors, is reported through the returned SyncResult.
        """
        result = SyncResult(document_id=document_id)
        with LogContext(document_id=document_id):
            try:
                await self._evaluate(result)
            except UnresolvedTargetError as e:
                self._emit(SyncSignal.target_not_found(e.link_text))
                result.outcome = SyncOutcome.TARGET_NOT_FOUND
            except ConflictingReverseRelationError as e:
                result.enter(SyncState.BLOCKED)
                result.conflicting_id = e.other_id
                self._emit(
                    SyncSignal.conflict_detected(
                        self._store.basename(e.target_id),
                        self._store.basename(e.other_id),
                    )
                )
                result.outcome = SyncOutcome.BLOCKED
            except UserDeclinedConfirmationError:
                logger.info("Update declined by user")
                result.outcome = SyncOutcome.DECLINED
            except SupersyncError as e:
                logger.error("Sync evaluation failed", error=str(e))
                result.error = str(e)
                result.outcome = SyncOutcome.ERROR
            except Exception as e:
                # Any other failure ends only this evaluation
                logger.error("Unexpected error in sync evaluation", exc_info=True, error=str(e))
                result.error = f"{type(e).__name__}: {e}"
                result.outcome = SyncOutcome.ERROR
            result.enter(SyncState.IDLE)
        logger.debug(
            "Evaluation finished",
            document_id=document_id,
            outcome=result.outcome.value if result.outcome else None,
        )
        return result

    async def handle_changes(self, document_ids: Iterable[str]) -> list[SyncResult]:
        """Run several evaluations concurrently on the current event loop."""
        return list(await asyncio.gather(*(self.handle_change(d) for d in document_ids)))

    async def _evaluate(self, result: SyncResult) -> None:
        source_id = result.document_id

        result.enter(SyncState.TRIGGERED)
        loop = asyncio.get_running_loop()
        settings = await loop.run_in_executor(None, self._settings.get_settings)
        if not settings.enabled:
            result.outcome = SyncOutcome.DISABLED
            return

        result.enter(SyncState.PARSING)
        source_metadata = await self._store.read_metadata(source_id)
        link_text = extract_link(source_metadata.get(SUPERSEDES_KEY))
        if link_text is None:
            result.enter(SyncState.SKIP)
            result.outcome = SyncOutcome.SKIPPED_NO_LINK
            return
        result.link_text = link_text

        result.enter(SyncState.RESOLVING)
        target_id = await self._resolver.resolve(link_text, source_id)
        if target_id is None:
            raise UnresolvedTargetError(link_text, source_id)
        result.target_id = target_id
        if target_id == source_id:
            logger.warning("Document supersedes itself, ignoring", link_text=link_text)
            result.enter(SyncState.SKIP)
            result.outcome = SyncOutcome.SKIPPED_SELF_REFERENCE
            return

        with LogContext(target_id=target_id):
            result.enter(SyncState.CHECKING_CONFLICT)
            state = await self._reverse_state(source_id, target_id)
            if self._settle(result, state):
                return

            if settings.confirm_before_update:
                await self._await_confirmation(result, settings)

            await self._apply(result)

    async def _reverse_state(self, source_id: str, target_id: str) -> ReverseState:
        target_metadata = await self._store.read_metadata(target_id)
        return await check_reverse_state(
            target_metadata.get(SUPERSEDED_BY_KEY), source_id, target_id, self._resolver
        )

    def _settle(self, result: SyncResult, state: ReverseState) -> bool:
        """Handle non-absent reverse states. Returns True when evaluation is done."""
        if state.kind is ReverseStateKind.MATCHES_SOURCE:
            result.enter(SyncState.SKIP)
            result.outcome = SyncOutcome.SKIPPED_ALREADY_SYNCED
            return True
        if state.kind is ReverseStateKind.CONFLICTS_WITH:
            raise ConflictingReverseRelationError(
                result.target_id, state.document_id, result.document_id
            )
        return False

    async def _await_confirmation(self, result: SyncResult, settings: SyncSettings) -> None:
        result.enter(SyncState.AWAITING_CONFIRMATION)
        if self._confirmation is None:
            raise ConfigurationError(
                "orchestrator", "confirm_before_update is on but no confirmation provider is set"
            )
        prompt = SyncSignal.confirmation_prompt(
            self._store.basename(result.target_id),
            self._store.basename(result.document_id),
        )
        # None means the prompt was dismissed, which counts as a decline
        if await self._confirmation.confirm(prompt) is not True:
            raise UserDeclinedConfirmationError(result.target_id, result.document_id)

    async def _apply(self, result: SyncResult) -> None:
        source_id = result.document_id
        target_id = result.target_id
        source_name = self._store.basename(source_id)
        desired = {
            SUPERSEDED_BY_KEY: format_link(source_name),
            STATUS_KEY: SUPERSEDED_STATUS,
        }

        async with self._lock_for(target_id):
            result.enter(SyncState.APPLYING)
            # Re-check under the lock; the target may have changed since.
            state = await self._reverse_state(source_id, target_id)
            if self._settle(result, state):
                return
            await self._store.process(target_id, lambda content: merge_properties(content, desired))

        logger.info("Reverse relation written", source=source_name)
        self._emit(SyncSignal.update_applied(self._store.basename(target_id), source_name))
        result.outcome = SyncOutcome.APPLIED

    def _lock_for(self, target_id: str) -> asyncio.Lock:
        lock = self._target_locks.get(target_id)
        if lock is None:
            lock = asyncio.Lock()
            self._target_locks[target_id] = lock
        return lock

    def _emit(self, signal: SyncSignal) -> None:
        try:
            self._notifier.notify(signal)
        except Exception as e:
            logger.warning("Notifier failed", error=str(e), signal=signal.kind.value)


__all__ = [
    "SUPERSEDES_KEY",
    "SUPERSEDED_BY_KEY",
    "STATUS_KEY",
    "SUPERSEDED_STATUS",
    "SyncState",
    "SyncOutcome",
    "SyncResult",
    "SyncOrchestrator",
]
