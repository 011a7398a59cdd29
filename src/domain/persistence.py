"""Persistence helpers for reading and writing session snapshots.

A snapshot file carries the pattern document plus the block state the
document cannot express (ids, layout, bypass and solo flags, key). The
per-block read-model is re-derived from block text when a session is
restored, so it is never written and is discarded if a file contains it.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from .models import SessionSnapshot

SNAPSHOT_FORMAT = 1
DOCUMENT_SUFFIX = ".strudel"


class SnapshotFormatError(ValueError):
    """Raised when a snapshot payload cannot be read by this version."""


class SessionSerializer:
    """Serialize :class:`SessionSnapshot` instances to/from JSON-compatible dicts."""

    @staticmethod
    def to_dict(snapshot: SessionSnapshot) -> Dict[str, Any]:
        payload = snapshot.model_dump(mode="json", exclude={"blocks": {"__all__": {"readings"}}})
        return {"format": SNAPSHOT_FORMAT, **payload}

    @staticmethod
    def from_dict(payload: Dict[str, Any]) -> SessionSnapshot:
        """Rehydrate a snapshot, rejecting payloads written by a newer format."""

        if not isinstance(payload, dict):
            raise SnapshotFormatError(f"Snapshot payload must be an object, got {type(payload).__name__}")
        data = dict(payload)
        version = data.pop("format", SNAPSHOT_FORMAT)
        if not isinstance(version, int) or version > SNAPSHOT_FORMAT:
            raise SnapshotFormatError(f"Unsupported snapshot format: {version!r}")
        data["blocks"] = [
            {key: value for key, value in block.items() if key != "readings"} if isinstance(block, dict) else block
            for block in data.get("blocks", [])
        ]
        return SessionSnapshot.model_validate(data)


class SessionFileAdapter:
    """Filesystem adapter that keeps snapshots and exported documents under one base path."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = Path(base_path)

    def save(self, snapshot: SessionSnapshot, filename: str) -> Path:
        destination = self._resolve(filename)
        destination.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(SessionSerializer.to_dict(snapshot), indent=2, ensure_ascii=False)
        destination.write_text(data + "\n", encoding="utf-8")
        return destination

    def load(self, filename: str) -> SessionSnapshot:
        source = self._resolve(filename)
        try:
            payload = json.loads(source.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise SnapshotFormatError(f"{source} is not a snapshot file: {exc}") from exc
        return SessionSerializer.from_dict(payload)

    def export_document(self, snapshot: SessionSnapshot, filename: str | None = None) -> Path:
        """Write only the pattern document, ready to paste into a live-coding editor.

        Without ``filename`` the document lands beside the snapshots as
        ``session.strudel``.
        """

        destination = self._resolve(filename or f"session{DOCUMENT_SUFFIX}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(snapshot.document, encoding="utf-8")
        return destination

    def _resolve(self, filename: str) -> Path:
        base = self.base_path.resolve()
        target = (base / filename).resolve()
        if target != base and base not in target.parents:
            raise ValueError(f"{filename!r} points outside {self.base_path}")
        return target


__all__ = [
    "DOCUMENT_SUFFIX",
    "SNAPSHOT_FORMAT",
    "SessionFileAdapter",
    "SessionSerializer",
    "SnapshotFormatError",
]
