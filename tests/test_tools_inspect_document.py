import json
from pathlib import Path

import pytest

from tools import inspect_document


def write_document(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "night.strudel"
    path.write_text(text, encoding="utf-8")
    return path


def test_cli_prints_block_summary(tmp_path: Path, sample_document, capsys: pytest.CaptureFixture[str]):
    path = write_document(tmp_path, sample_document)

    assert inspect_document.main([str(path)]) == 0

    out = capsys.readouterr().out
    assert "Blocks: 3 | Tempo: 120 bpm" in out
    assert "[0] Drums <drums>" in out
    assert "lpf = 1100.0 ~" in out
    assert "bd |x" in out


def test_cli_json_output(tmp_path: Path, sample_document, capsys: pytest.CaptureFixture[str]):
    path = write_document(tmp_path, sample_document)

    inspect_document.main([str(path), "--json", "--slots", "8"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["tempo"] == 120
    assert [block["name"] for block in payload["blocks"]] == ["Drums", "Bass", "Lead"]
    assert payload["blocks"][0]["grid"]["hh"] == "xxxxxxxx"
    assert payload["blocks"][1]["parameters"]["lpf"]["dynamic"] is True


def test_cli_bypass_and_snapshot(tmp_path: Path, sample_document, capsys: pytest.CaptureFixture[str]):
    path = write_document(tmp_path, sample_document)
    snapshot = tmp_path / "out" / "session.json"

    inspect_document.main([str(path), "--json", "--bypass", "1", "--no-tags", "--snapshot", str(snapshot)])

    out = capsys.readouterr().out
    assert '// [muted] $: note("<c2 f2>").s("sawtooth")' in out
    assert snapshot.exists()
    saved = json.loads(snapshot.read_text(encoding="utf-8"))
    assert saved["blocks"][1]["bypassed"] is True


def test_cli_rejects_missing_file_and_bad_index(tmp_path: Path, sample_document):
    with pytest.raises(SystemExit):
        inspect_document.main([str(tmp_path / "missing.strudel")])

    path = write_document(tmp_path, sample_document)
    with pytest.raises(SystemExit):
        inspect_document.main([str(path), "--bypass", "9"])
