"""Text/block synchronisation engine for pattern documents."""

from .config import SyncConfig
from .errors import BlockNotFoundError, DocumentTypeError, PatternSyncError
from .mutator import REMOVE, mutate
from .parameters import PARAMETERS, ParameterSpec, format_number, get_spec
from .provenance import Emission, Provenance, ProvenanceTracker
from .scheduler import CommitKind, CommitScheduler
from .segmenter import SegmentedDocument, segment
from .serializer import serialize
from .session import ParameterEdit, PatternSession
from .sniffer import current_value, has_parameter, is_dynamic, read_model

__all__ = [
    "BlockNotFoundError",
    "CommitKind",
    "CommitScheduler",
    "DocumentTypeError",
    "Emission",
    "PARAMETERS",
    "ParameterEdit",
    "ParameterSpec",
    "PatternSession",
    "PatternSyncError",
    "Provenance",
    "ProvenanceTracker",
    "REMOVE",
    "SegmentedDocument",
    "SyncConfig",
    "current_value",
    "format_number",
    "get_spec",
    "has_parameter",
    "is_dynamic",
    "mutate",
    "read_model",
    "segment",
    "serialize",
]
