from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from floatdng.color.calibration import ADOBE_COEFF_FACTOR
from floatdng.utils.rational import DEFAULT_MAX_DENOMINATOR, DEFAULT_TOLERANCE


@dataclass
class WriterConfig:
    adobe_coeff_factor: int = ADOBE_COEFF_FACTOR
    rational_tolerance: float = DEFAULT_TOLERANCE
    max_denominator: int = DEFAULT_MAX_DENOMINATOR
    strict_bayer_codes: bool = False
    embed_exif: bool = True
    exiftool_path: str | None = None


@dataclass
class AppConfig:
    writer: WriterConfig = field(default_factory=WriterConfig)
    log_level: str = "INFO"
    log_file: Path | None = None


def _expand_path(value: str | None, base: Path) -> Path | None:
    if value in (None, ""):
        return None
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base / path).resolve()
    return path


def _positive_int(raw: dict[str, Any], key: str, default: int) -> int:
    value = int(raw.get(key, default))
    if value < 1:
        raise ValueError(f"writer.{key} must be >= 1, got {value}")
    return value


def default_config() -> AppConfig:
    return AppConfig()


def load_config(path: str | Path) -> AppConfig:
    try:
        import yaml  # type: ignore
    except Exception as exc:
        raise RuntimeError("PyYAML is required for config loading. Install with: pip install PyYAML") from exc

    cfg_path = Path(path).expanduser().resolve()
    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"config root must be a mapping: {cfg_path}")

    base = cfg_path.parent
    writer_raw = raw.get("writer", {}) or {}

    tolerance = float(writer_raw.get("rational_tolerance", DEFAULT_TOLERANCE))
    if tolerance <= 0.0:
        raise ValueError(f"writer.rational_tolerance must be positive, got {tolerance}")

    exiftool_path = writer_raw.get("exiftool_path")
    writer = WriterConfig(
        adobe_coeff_factor=_positive_int(writer_raw, "adobe_coeff_factor", ADOBE_COEFF_FACTOR),
        rational_tolerance=tolerance,
        max_denominator=_positive_int(writer_raw, "max_denominator", DEFAULT_MAX_DENOMINATOR),
        strict_bayer_codes=bool(writer_raw.get("strict_bayer_codes", False)),
        embed_exif=bool(writer_raw.get("embed_exif", True)),
        exiftool_path=str(exiftool_path) if exiftool_path else None,
    )

    app = AppConfig(
        writer=writer,
        log_level=str(raw.get("log_level", "INFO")),
        log_file=_expand_path(raw.get("log_file"), base),
    )

    if app.log_file is not None:
        app.log_file.parent.mkdir(parents=True, exist_ok=True)
    return app
