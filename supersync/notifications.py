"""
User-facing signals emitted by the sync engine, and notifiers that show them.

Signals are fire-and-forget: notifiers must not raise into the evaluation
that emitted them and must not wait on the user.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TextIO

from supersync.logging_config import get_logger

PREFIX = "Bidirectional"


class SignalKind(Enum):
    """Kinds of notification the engine emits."""

    TARGET_NOT_FOUND = "target_not_found"
    CONFLICT_DETECTED = "conflict_detected"
    UPDATE_APPLIED = "update_applied"
    CONFIRMATION_PROMPT = "confirmation_prompt"


@dataclass(frozen=True)
class SyncSignal:
    """A notification about one evaluation.

    Names are display names (basenames), not identities.
    """

    kind: SignalKind
    message: str
    target: Optional[str] = None
    source: Optional[str] = None
    other: Optional[str] = None
    link_text: Optional[str] = None

    @classmethod
    def target_not_found(cls, link_text: str) -> SyncSignal:
        return cls(
            SignalKind.TARGET_NOT_FOUND,
            f'{PREFIX}: "{link_text}" not found in vault',
            link_text=link_text,
        )

    @classmethod
    def conflict_detected(cls, target: str, other: str) -> SyncSignal:
        return cls(
            SignalKind.CONFLICT_DETECTED,
            f'{PREFIX}: "{target}" is already superseded by "{other}", not updating',
            target=target,
            other=other,
        )

    @classmethod
    def update_applied(cls, target: str, source: str) -> SyncSignal:
        return cls(
            SignalKind.UPDATE_APPLIED,
            f'{PREFIX}: Updated "{target}" as superseded by "{source}"',
            target=target,
            source=source,
        )

    @classmethod
    def confirmation_prompt(cls, target: str, source: str) -> SyncSignal:
        return cls(
            SignalKind.CONFIRMATION_PROMPT,
            f'Mark "{target}" as superseded by "{source}"?',
            target=target,
            source=source,
        )

    def to_dict(self) -> dict[str, Optional[str]]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "target": self.target,
            "source": self.source,
            "other": self.other,
            "link_text": self.link_text,
        }


class LoggingNotifier:
    """Writes signals to the structured log."""

    def __init__(self, name: str = "supersync.notifications"):
        self._logger = get_logger(name)

    def notify(self, signal: SyncSignal) -> None:
        fields = {k: v for k, v in signal.to_dict().items() if v is not None and k != "message"}
        if signal.kind is SignalKind.CONFLICT_DETECTED:
            self._logger.warning(signal.message, **fields)
        else:
            self._logger.info(signal.message, **fields)


class ConsoleNotifier:
    """Prints signal messages, one per line."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    def notify(self, signal: SyncSignal) -> None:
        stream = self._stream or sys.stderr
        print(signal.message, file=stream)


@dataclass
class RecordingNotifier:
    """Keeps every signal in memory, in emission order."""

    signals: list[SyncSignal] = field(default_factory=list)

    def notify(self, signal: SyncSignal) -> None:
        self.signals.append(signal)

    def of_kind(self, kind: SignalKind) -> list[SyncSignal]:
        return [s for s in self.signals if s.kind is kind]

    def clear(self) -> None:
        self.signals.clear()


__all__ = [
    "SignalKind",
    "SyncSignal",
    "LoggingNotifier",
    "ConsoleNotifier",
    "RecordingNotifier",
]
