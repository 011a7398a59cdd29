"""CLI helper that prints the block view of a pattern document."""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Sequence

from domain.models import Block
from domain.persistence import SessionFileAdapter
from editor.config import SyncConfig
from editor.session import PatternSession
from notation.mini_notation import drum_rows


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Segment a pattern document and report its blocks, parameters and step grids.",
    )
    parser.add_argument(
        "document",
        type=Path,
        help="Path to the pattern document (plain text).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit the block list as JSON instead of a readable summary.",
    )
    parser.add_argument(
        "--slots",
        type=int,
        default=16,
        help="Number of grid slots used for step previews.",
    )
    parser.add_argument(
        "--bypass",
        action="append",
        default=[],
        metavar="INDEX",
        type=int,
        help="Bypass the block at INDEX (zero-based) and print the re-serialized document.",
    )
    parser.add_argument(
        "--no-tags",
        action="store_true",
        help="Leave analysis and bus-routing tags out of re-serialized output.",
    )
    parser.add_argument(
        "--snapshot",
        type=Path,
        help="Also save a session snapshot JSON to this path.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log engine decisions at DEBUG level.",
    )
    return parser.parse_args(argv)


def _grid(steps) -> str:
    return "".join("x" if hit else "." for hit in steps)


def describe_block(block: Block, position: int, slots: int) -> Dict[str, Any]:
    """Return a JSON-ready summary of one block."""

    return {
        "position": position,
        "id": block.id,
        "name": block.display_name,
        "kind": block.kind,
        "sound": block.sound,
        "pattern": block.pattern,
        "bypassed": block.bypassed,
        "parameters": {
            name: {"value": reading.value, "dynamic": reading.dynamic}
            for name, reading in block.readings.items()
            if reading.present
        },
        "grid": {row.sound: _grid(row.steps) for row in drum_rows(block.pattern, slots)},
    }


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
    )
    document_path = args.document.expanduser().resolve()
    if not document_path.exists():
        raise SystemExit(f"Document '{document_path}' does not exist.")
    if args.slots <= 0:
        raise SystemExit("--slots must be positive.")

    config = SyncConfig(grid_slots=args.slots, inject_tags=not args.no_tags)
    session = PatternSession(document_path.read_text(encoding="utf-8"), config=config)
    blocks = session.blocks
    summaries = [describe_block(block, position, args.slots) for position, block in enumerate(blocks)]

    if args.json:
        print(json.dumps({"tempo": session.settings.tempo_bpm, "blocks": summaries}, indent=2, ensure_ascii=False))
    else:
        tempo = session.settings.tempo_bpm
        print(f"Blocks: {len(blocks)} | Tempo: {tempo if tempo else 'unset'} bpm")
        for summary in summaries:
            state = " (bypassed)" if summary["bypassed"] else ""
            print(f"[{summary['position']}] {summary['name'] or summary['id']} <{summary['kind']}>{state}")
            for name, reading in summary["parameters"].items():
                marker = " ~" if reading["dynamic"] else ""
                print(f"    {name} = {reading['value']}{marker}")
            for sound, grid in summary["grid"].items():
                print(f"    {sound:>6} |{grid}|")

    for index in args.bypass:
        if not 0 <= index < len(blocks):
            raise SystemExit(f"--bypass index {index} is out of range (0..{len(blocks) - 1}).")
        session.toggle_bypass(blocks[index].id)
    if args.bypass:
        print(session.document, end="")

    if args.snapshot is not None:
        destination = args.snapshot.expanduser().resolve()
        SessionFileAdapter(destination.parent).save(session.snapshot(), destination.name)
        print(f"Saved snapshot to {destination}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
