"""
Custom exception types for supersync.

This module defines the exception hierarchy used throughout the package.
Using specific exception types enables:
- Targeted except blocks inside a single sync evaluation
- Error messages that name the documents involved
- Cleaner separation between evaluation outcomes and host failures
"""

from __future__ import annotations

from typing import Any


class SupersyncError(Exception):
    """Base exception for all supersync errors.

    All custom exceptions in supersync inherit from this class so that
    host integrations can catch everything with a single handler.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


# ============================================================================
# Evaluation Errors
# ============================================================================
# Raised by pipeline stages and caught by the orchestrator within the same
# evaluation. None of them escape handle_change().


class SyncEvaluationError(SupersyncError):
    """Base exception for conditions that end a sync evaluation early."""

    pass


class UnresolvedTargetError(SyncEvaluationError):
    """Raised when a forward link does not resolve to any document."""

    def __init__(self, link_text: str, source_id: str):
        super().__init__(
            f"Link target not found: {link_text}",
            {"link_text": link_text, "source_id": source_id},
        )
        self.link_text = link_text
        self.source_id = source_id


class ConflictingReverseRelationError(SyncEvaluationError):
    """Raised when the target is already superseded by a different document."""

    def __init__(self, target_id: str, other_id: str, source_id: str):
        super().__init__(
            f"{target_id} is already superseded by {other_id}",
            {"target_id": target_id, "other_id": other_id, "source_id": source_id},
        )
        self.target_id = target_id
        self.other_id = other_id
        self.source_id = source_id


class UserDeclinedConfirmationError(SyncEvaluationError):
    """Raised when the user declines or dismisses the confirmation prompt."""

    def __init__(self, target_id: str, source_id: str):
        super().__init__(
            f"Update of {target_id} declined",
            {"target_id": target_id, "source_id": source_id},
        )
        self.target_id = target_id
        self.source_id = source_id


# ============================================================================
# Host / Storage Errors
# ============================================================================


class DocumentError(SupersyncError):
    """Base exception for document store failures."""

    pass


class DocumentNotFoundError(DocumentError):
    """Raised when a document identity does not exist in the store."""

    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}", {"document_id": document_id})
        self.document_id = document_id


class DocumentWriteError(DocumentError):
    """Raised when writing a document's content fails."""

    def __init__(self, document_id: str, reason: str):
        super().__init__(
            f"Failed to write {document_id}: {reason}",
            {"document_id": document_id, "reason": reason},
        )
        self.document_id = document_id
        self.reason = reason


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(SupersyncError):
    """Raised when settings are missing or invalid."""

    def __init__(self, component: str, reason: str):
        super().__init__(
            f"Configuration error in {component}: {reason}",
            {"component": component, "reason": reason},
        )
        self.component = component
        self.reason = reason


__all__ = [
    "SupersyncError",
    "SyncEvaluationError",
    "UnresolvedTargetError",
    "ConflictingReverseRelationError",
    "UserDeclinedConfirmationError",
    "DocumentError",
    "DocumentNotFoundError",
    "DocumentWriteError",
    "ConfigurationError",
]
