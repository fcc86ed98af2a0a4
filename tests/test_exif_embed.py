from __future__ import annotations

from pathlib import Path
import subprocess
from typing import Any

import pytest

from floatdng.write.exif_embed import ExiftoolEmbedder, strip_exif_marker


def test_strip_exif_marker() -> None:
    assert strip_exif_marker(b"Exif\x00\x00MM\x00*") == b"MM\x00*"
    assert strip_exif_marker(b"MM\x00*") == b"MM\x00*"


def test_embed_without_exiftool(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr("floatdng.write.exif_embed.shutil.which", lambda name: None)
    assert ExiftoolEmbedder().embed(tmp_path / "a.dng", b"MM\x00*") is False


def test_embed_runs_exiftool(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: dict[str, Any] = {}

    def fake_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        blob_path = Path(cmd[cmd.index("-TagsFromFile") + 1])
        seen["cmd"] = cmd
        seen["blob_path"] = blob_path
        seen["blob"] = blob_path.read_bytes()
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr("floatdng.write.exif_embed.subprocess.run", fake_run)
    target = tmp_path / "a.dng"
    ok = ExiftoolEmbedder(exiftool_path="/opt/bin/exiftool").embed(target, b"Exif\x00\x00MM\x00*")

    assert ok is True
    assert seen["cmd"][0] == "/opt/bin/exiftool"
    assert "-exif:all" in seen["cmd"]
    assert "-overwrite_original" in seen["cmd"]
    assert seen["cmd"][-1] == str(target)
    assert seen["blob"] == b"MM\x00*"
    assert not seen["blob_path"].exists()


def test_embed_reports_exiftool_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="Error: bad file")

    monkeypatch.setattr("floatdng.write.exif_embed.subprocess.run", fake_run)
    assert ExiftoolEmbedder(exiftool_path="exiftool").embed(tmp_path / "a.dng", b"MM\x00*") is False


def test_embed_empty_blob(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr("floatdng.write.exif_embed.shutil.which", lambda name: "/usr/bin/exiftool")
    assert ExiftoolEmbedder().embed(tmp_path / "a.dng", b"Exif\x00\x00") is False
