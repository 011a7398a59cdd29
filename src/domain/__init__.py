"""Domain package exposing pattern-document models and persistence helpers."""
from .models import (
    ANALYSIS_TAG_PREFIX,
    BYPASS_MARKER,
    Block,
    DocumentSettings,
    LayoutPosition,
    ParameterReading,
    SessionSnapshot,
    analysis_tag,
)
from .persistence import SessionFileAdapter, SessionSerializer, SnapshotFormatError

__all__ = [
    "ANALYSIS_TAG_PREFIX",
    "BYPASS_MARKER",
    "Block",
    "DocumentSettings",
    "LayoutPosition",
    "ParameterReading",
    "SessionSnapshot",
    "analysis_tag",
    "SessionFileAdapter",
    "SessionSerializer",
    "SnapshotFormatError",
]
