from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

import numpy as np

from floatdng.config import AppConfig, default_config, load_config
from floatdng.utils.logging_utils import configure_logging
from floatdng.write import (
    CalibrationData,
    ExposureInfo,
    ImageFrame,
    XTransMosaic,
    bayer_from_name,
    read_header_summary,
    write_dng,
)
from floatdng.write.tags import Tag, TagType, bits_to_float32


logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="floatdng")
    sub = parser.add_subparsers(dest="command", required=True)

    write = sub.add_parser("write", help="Write a 2-D float32 .npy raw plane as a DNG")
    write.add_argument("input", help="Input .npy array, shape HxW")
    write.add_argument("output", help="Output .dng path")
    write.add_argument("--pattern", default="RGGB", help="Bayer pattern: RGGB, GBRG, GRBG or BGGR")
    write.add_argument("--xtrans", default=None, help="Optional .npy 6x6 mosaic layout (overrides --pattern)")
    write.add_argument("--white-level", type=float, default=1.0, help="White level of the float samples")
    write.add_argument("--wb", type=float, nargs=3, default=None, metavar=("R", "G", "B"), help="White-balance coefficients")
    write.add_argument("--camera-make", default=None, help="Camera make for the known matrix table")
    write.add_argument("--camera-model", default=None, help="Camera model for the known matrix table")
    write.add_argument("--exposure-time", type=float, default=None, help="Exposure time in seconds")
    write.add_argument("--f-number", type=float, default=None, help="Aperture f-number")
    write.add_argument("--focal-length", type=float, default=None, help="Focal length in mm")
    write.add_argument("--iso", type=float, default=None, help="ISO speed")
    write.add_argument("--exif", default=None, help="Optional EXIF blob to embed after writing")
    write.add_argument("--config", default=None, help="Optional YAML config")
    write.add_argument("--json", action="store_true", help="Emit machine-readable JSON")

    inspect = sub.add_parser("inspect", help="List the first image directory of a DNG")
    inspect.add_argument("input", help="DNG path")
    inspect.add_argument("--json", action="store_true", help="Emit machine-readable JSON")

    verify = sub.add_parser("verify", help="Read a DNG back with tifffile and report geometry")
    verify.add_argument("input", help="DNG path")
    verify.add_argument("--json", action="store_true", help="Emit machine-readable JSON")

    return parser


def _load_app_config(path: str | None) -> AppConfig:
    config = load_config(path) if path else default_config()
    configure_logging(config.log_level, config.log_file)
    return config


def _cmd_write(args: argparse.Namespace) -> int:
    config = _load_app_config(args.config)

    pixels = np.load(Path(args.input).expanduser())
    frame = ImageFrame(pixels=pixels)

    if args.xtrans:
        mosaic = XTransMosaic.from_layout(np.load(Path(args.xtrans).expanduser()))
    else:
        mosaic = bayer_from_name(args.pattern)

    wb = tuple(args.wb) if args.wb else (1.0, 1.0, 1.0)
    calibration = CalibrationData.for_camera(
        args.camera_make,
        args.camera_model,
        white_level=args.white_level,
        wb_coeffs=wb,
    )
    if (args.camera_make or args.camera_model) and not calibration.has_camera_matrix:
        logger.warning("no known matrix for %s %s, using generic XYZ->sRGB", args.camera_make, args.camera_model)

    exposure = ExposureInfo(
        exposure_time_s=args.exposure_time,
        f_number=args.f_number,
        focal_length_mm=args.focal_length,
        iso=args.iso,
    )
    exif_blob = Path(args.exif).expanduser().read_bytes() if args.exif else None

    output = Path(args.output).expanduser().resolve()
    result = write_dng(
        output,
        frame,
        mosaic,
        calibration,
        exposure=exposure,
        exif_blob=exif_blob,
        config=config.writer,
    )

    payload = {
        "output": str(result.path),
        "status": result.status.value,
        "width": frame.width,
        "height": frame.height,
        "bytes": result.header_bytes + result.pixel_bytes,
        "exif_embedded": result.exif_embedded,
        "message": result.message,
    }
    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        print(f"{payload['status']}: {payload['output']} ({frame.width}x{frame.height}, {payload['bytes']} bytes)")
        if result.message:
            print(f"  {result.message}")
    return 0 if result.ok else 1


def _tag_name(tag_id: int) -> str:
    try:
        return Tag(tag_id).name
    except ValueError:
        return str(tag_id)


def _cmd_inspect(args: argparse.Namespace) -> int:
    configure_logging("INFO")
    summary = read_header_summary(Path(args.input).expanduser())

    rows = []
    for tag_id, (tag_type, count, values) in summary.items():
        row = {
            "id": tag_id,
            "name": _tag_name(tag_id),
            "type": tag_type.name,
            "count": count,
            "values": list(values),
        }
        if tag_id == Tag.WHITE_LEVEL and tag_type is TagType.LONG and count == 1:
            row["as_float"] = bits_to_float32(values[0])
        rows.append(row)

    if args.json:
        print(json.dumps({"input": str(args.input), "tags": rows}, indent=2))
        return 0

    print(f"File: {args.input}")
    for row in rows:
        shown = row["values"] if len(row["values"]) <= 8 else [*row["values"][:8], "..."]
        extra = f" (float {row['as_float']})" if "as_float" in row else ""
        print(f"  {row['id']:>5} {row['name']:<28} {row['type']:<9} x{row['count']:<3} {shown}{extra}")
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    configure_logging("INFO")
    try:
        import tifffile  # type: ignore
    except Exception as exc:
        raise RuntimeError("tifffile is required for verify. Install with: pip install '.[io]'") from exc

    path = Path(args.input).expanduser()
    with tifffile.TiffFile(str(path)) as tif:
        page = tif.pages[0]
        data = page.asarray()
        payload = {
            "input": str(path),
            "width": int(page.imagewidth),
            "height": int(page.imagelength),
            "bits_per_sample": int(page.bitspersample),
            "sample_format": int(page.sampleformat),
            "photometric": int(page.photometric),
            "min": float(np.nanmin(data)),
            "max": float(np.nanmax(data)),
        }

    if args.json:
        print(json.dumps(payload, indent=2))
        return 0

    print(f"File: {payload['input']}")
    print(f"  size: {payload['width']}x{payload['height']}")
    print(f"  bits per sample: {payload['bits_per_sample']} (sample format {payload['sample_format']})")
    print(f"  photometric: {payload['photometric']}")
    print(f"  range: {payload['min']:.6g} .. {payload['max']:.6g}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "write":
            return _cmd_write(args)
        if args.command == "inspect":
            return _cmd_inspect(args)
        if args.command == "verify":
            return _cmd_verify(args)

        parser.error(f"unknown command: {args.command}")
        return 2
    except Exception as exc:
        logger.exception("fatal error")
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
