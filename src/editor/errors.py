"""Error hierarchy for the pattern synchronisation engine.

Internal helpers never raise these for recoverable conditions; they are
reserved for the outermost entry points of :class:`editor.session.PatternSession`.
"""
from __future__ import annotations


class PatternSyncError(Exception):
    """Base error for synchronisation failures."""


class DocumentTypeError(PatternSyncError, TypeError):
    """Raised when a document handed to the engine is not a string."""


class BlockNotFoundError(PatternSyncError, KeyError):
    """Raised when a caller addresses a block id the session does not know."""


__all__ = ["PatternSyncError", "DocumentTypeError", "BlockNotFoundError"]
