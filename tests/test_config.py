from __future__ import annotations

from pathlib import Path

import pytest

from floatdng.config import WriterConfig, default_config, load_config


def test_load_config_reads_writer_section(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(
        """
log_level: DEBUG
log_file: ./logs/floatdng.log
writer:
  adobe_coeff_factor: 20000
  rational_tolerance: 0.001
  strict_bayer_codes: true
  embed_exif: false
  exiftool_path: /opt/bin/exiftool
""",
        encoding="utf-8",
    )

    cfg = load_config(cfg_file)
    assert cfg.log_level == "DEBUG"
    assert cfg.log_file == (tmp_path / "logs" / "floatdng.log").resolve()
    assert cfg.log_file.parent.exists()
    assert cfg.writer.adobe_coeff_factor == 20000
    assert cfg.writer.rational_tolerance == 0.001
    assert cfg.writer.max_denominator == 1000000
    assert cfg.writer.strict_bayer_codes is True
    assert cfg.writer.embed_exif is False
    assert cfg.writer.exiftool_path == "/opt/bin/exiftool"


def test_load_config_empty_file_uses_defaults(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("", encoding="utf-8")
    cfg = load_config(cfg_file)
    assert cfg.writer == WriterConfig()
    assert cfg.log_file is None
    assert cfg == default_config()


def test_load_config_rejects_bad_values(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("writer:\n  rational_tolerance: 0\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(cfg_file)

    cfg_file.write_text("writer:\n  max_denominator: 0\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(cfg_file)
