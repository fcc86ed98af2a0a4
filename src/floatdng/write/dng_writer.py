from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

import numpy as np

from floatdng.color.calibration import encode_as_shot_neutral, select_color_matrix
from floatdng.config import WriterConfig
from floatdng.errors import InvalidCalibrationError, InvalidExposureError, InvalidGeometryError
from floatdng.utils.rational import approximate_rational

from .base import DngWriteResult, WriteStatus
from .exif_embed import ExifEmbedder, ExiftoolEmbedder
from .mosaic import MosaicDescriptor, encode_mosaic
from .tags import DirectoryTag, Tag, TagRegistry, TagType, decode_values, float32_bits, make_tag, parse_directory
from .types import CalibrationData, ExposureInfo, ImageFrame


logger = logging.getLogger(__name__)

HEADER_SIZE = 584
IFD_OFFSET = 10

# Fixed slots for payloads that do not fit a directory value field.
EXPOSURE_TIME_OFFSET = 360
F_NUMBER_OFFSET = 368
FOCAL_LENGTH_OFFSET = 376
CFA_PATTERN_OFFSET = 400
COLOR_MATRIX_OFFSET = 480
AS_SHOT_NEUTRAL_OFFSET = 556

BYTES_PER_SAMPLE = 4
PHOTOMETRIC_CFA = 32803
SAMPLE_FORMAT_IEEE_FLOAT = 3
ILLUMINANT_D65 = 21
DNG_VERSION = (1, 2, 0, 0)
DNG_BACKWARD_VERSION = (1, 1, 0, 0)


def _dimension_tag(tag: Tag, value: int) -> DirectoryTag:
    if value <= 0xFFFF:
        return make_tag(tag, TagType.SHORT, [value])
    return make_tag(tag, TagType.LONG, [value])


def _rational_tag(tag: Tag, value: float, offset: int, config: WriterConfig) -> DirectoryTag:
    try:
        num, den = approximate_rational(
            value,
            tolerance=config.rational_tolerance,
            max_denominator=config.max_denominator,
        )
    except ValueError as exc:
        raise InvalidExposureError(f"{tag.name}: {exc}") from exc
    return make_tag(tag, TagType.RATIONAL, [num, den], offset=offset)


def _add_exposure_tags(registry: TagRegistry, exposure: ExposureInfo, config: WriterConfig) -> None:
    if exposure.exposure_time_s is not None:
        registry.add(_rational_tag(Tag.EXPOSURE_TIME, exposure.exposure_time_s, EXPOSURE_TIME_OFFSET, config))
    if exposure.f_number is not None:
        registry.add(_rational_tag(Tag.F_NUMBER, exposure.f_number, F_NUMBER_OFFSET, config))
    if exposure.iso is not None:
        registry.add(make_tag(Tag.ISO_SPEED_RATINGS, TagType.SHORT, [int(round(exposure.iso))]))
    if exposure.focal_length_mm is not None:
        registry.add(_rational_tag(Tag.FOCAL_LENGTH, exposure.focal_length_mm, FOCAL_LENGTH_OFFSET, config))


def build_dng_header(
    width: int,
    height: int,
    mosaic: MosaicDescriptor,
    calibration: CalibrationData,
    exposure: ExposureInfo | None = None,
    config: WriterConfig | None = None,
) -> bytes:
    """Assemble the 584-byte TIFF/DNG header for a single float32 CFA strip.

    The pixel strip always starts right after the header. Calibration and
    geometry are validated here, before anything touches the filesystem.
    """
    cfg = config or WriterConfig()
    if width < 1 or height < 1:
        raise InvalidGeometryError(f"width and height must be positive, got {width}x{height}")
    strip_bytes = width * height * BYTES_PER_SAMPLE
    if strip_bytes > 0xFFFFFFFF:
        raise InvalidGeometryError(f"strip of {strip_bytes} bytes does not fit a LONG byte count")
    if not np.isfinite(calibration.white_level):
        raise InvalidCalibrationError(f"white level must be finite, got {calibration.white_level}")
    if abs(calibration.white_level) > np.finfo(np.float32).max:
        raise InvalidCalibrationError(f"white level {calibration.white_level} exceeds the float32 range")

    cfa = encode_mosaic(mosaic, strict=cfg.strict_bayer_codes)
    color_matrix = select_color_matrix(calibration.xyz_to_camera, coeff_factor=cfg.adobe_coeff_factor)
    neutral = encode_as_shot_neutral(calibration.wb_coeffs)

    registry = TagRegistry(header_size=HEADER_SIZE, ifd_offset=IFD_OFFSET)
    registry.add(make_tag(Tag.NEW_SUBFILE_TYPE, TagType.LONG, [0]))
    registry.add(_dimension_tag(Tag.IMAGE_WIDTH, width))
    registry.add(_dimension_tag(Tag.IMAGE_LENGTH, height))
    registry.add(make_tag(Tag.BITS_PER_SAMPLE, TagType.SHORT, [32]))
    registry.add(make_tag(Tag.COMPRESSION, TagType.SHORT, [1]))
    registry.add(make_tag(Tag.PHOTOMETRIC_INTERPRETATION, TagType.SHORT, [PHOTOMETRIC_CFA]))
    registry.add(make_tag(Tag.STRIP_OFFSETS, TagType.LONG, [HEADER_SIZE]))
    registry.add(make_tag(Tag.ORIENTATION, TagType.SHORT, [1]))
    registry.add(make_tag(Tag.SAMPLES_PER_PIXEL, TagType.SHORT, [1]))
    registry.add(_dimension_tag(Tag.ROWS_PER_STRIP, height))
    registry.add(make_tag(Tag.STRIP_BYTE_COUNTS, TagType.LONG, [strip_bytes]))
    registry.add(make_tag(Tag.PLANAR_CONFIGURATION, TagType.SHORT, [1]))
    registry.add(make_tag(Tag.SAMPLE_FORMAT, TagType.SHORT, [SAMPLE_FORMAT_IEEE_FLOAT]))
    registry.add(make_tag(Tag.CFA_REPEAT_PATTERN_DIM, TagType.SHORT, cfa.repeat_dim))
    registry.add(make_tag(Tag.CFA_PATTERN, TagType.BYTE, cfa.pattern, offset=CFA_PATTERN_OFFSET))
    if exposure is not None and not exposure.is_empty:
        _add_exposure_tags(registry, exposure, cfg)
    registry.add(make_tag(Tag.DNG_VERSION, TagType.BYTE, DNG_VERSION))
    registry.add(make_tag(Tag.DNG_BACKWARD_VERSION, TagType.BYTE, DNG_BACKWARD_VERSION))
    registry.add(make_tag(Tag.WHITE_LEVEL, TagType.LONG, [float32_bits(calibration.white_level)]))
    registry.add(
        make_tag(
            Tag.COLOR_MATRIX_1,
            TagType.SRATIONAL,
            [v for pair in color_matrix for v in pair],
            offset=COLOR_MATRIX_OFFSET,
        )
    )
    registry.add(
        make_tag(
            Tag.AS_SHOT_NEUTRAL,
            TagType.RATIONAL,
            [v for pair in neutral for v in pair],
            offset=AS_SHOT_NEUTRAL_OFFSET,
        )
    )
    registry.add(make_tag(Tag.CALIBRATION_ILLUMINANT_1, TagType.SHORT, [ILLUMINANT_D65]))

    header = registry.render()
    logger.debug("built DNG header: %dx%d, %d tags, cfa %s", width, height, len(registry), cfa.repeat_dim)
    return header


def _pack_pixels(frame: ImageFrame) -> bytes:
    return np.ascontiguousarray(frame.pixels).astype(">f4", copy=False).tobytes()


def _write_stream(f: BinaryIO, path: Path, header: bytes, payload: bytes) -> DngWriteResult:
    try:
        header_written = f.write(header) or 0
    except OSError as exc:
        logger.error("[dng_write] failed to write image header to %s: %s", path, exc)
        return DngWriteResult(path=path, status=WriteStatus.SHORT_HEADER, message=str(exc))
    if header_written != len(header):
        message = f"wrote {header_written} of {len(header)} header bytes"
        logger.error("[dng_write] failed to write image header to %s: %s", path, message)
        return DngWriteResult(
            path=path, status=WriteStatus.SHORT_HEADER, header_bytes=header_written, message=message
        )

    try:
        pixel_written = f.write(payload) or 0
        f.flush()
    except OSError as exc:
        logger.error("[dng_write] error writing image data to %s: %s", path, exc)
        return DngWriteResult(
            path=path, status=WriteStatus.SHORT_PIXELS, header_bytes=header_written, message=str(exc)
        )
    if pixel_written != len(payload):
        expected = len(payload) // BYTES_PER_SAMPLE
        message = f"wrote {pixel_written // BYTES_PER_SAMPLE} of {expected} samples"
        logger.error("[dng_write] error writing image data to %s: %s", path, message)
        return DngWriteResult(
            path=path,
            status=WriteStatus.SHORT_PIXELS,
            header_bytes=header_written,
            pixel_bytes=pixel_written,
            message=message,
        )

    return DngWriteResult(
        path=path, status=WriteStatus.OK, header_bytes=header_written, pixel_bytes=pixel_written
    )


def write_dng(
    path: str | Path,
    frame: ImageFrame,
    mosaic: MosaicDescriptor,
    calibration: CalibrationData,
    exposure: ExposureInfo | None = None,
    exif_blob: bytes | None = None,
    config: WriterConfig | None = None,
    embedder: ExifEmbedder | None = None,
) -> DngWriteResult:
    """Write ``frame`` as an uncompressed floating-point DNG.

    Invalid input raises before the destination is opened. I/O problems are
    logged and returned in the result; a partial file is left in place. The
    EXIF blob, if any, is spliced in only after the file is closed.
    """
    cfg = config or WriterConfig()
    out = Path(path)
    header = build_dng_header(frame.width, frame.height, mosaic, calibration, exposure=exposure, config=cfg)
    payload = _pack_pixels(frame)

    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        f = out.open("wb")
    except OSError as exc:
        logger.error("[dng_write] cannot open %s for writing: %s", out, exc)
        return DngWriteResult(path=out, status=WriteStatus.OPEN_FAILED, message=str(exc))

    try:
        with f:
            result = _write_stream(f, out, header, payload)
    except OSError as exc:
        logger.error("[dng_write] error closing %s: %s", out, exc)
        result = DngWriteResult(
            path=out, status=WriteStatus.SHORT_PIXELS, header_bytes=len(header), message=str(exc)
        )

    if not result.ok:
        return result

    if exif_blob and cfg.embed_exif:
        active = embedder if embedder is not None else ExiftoolEmbedder(cfg.exiftool_path)
        result.exif_embedded = active.embed(out, exif_blob)
        if not result.exif_embedded:
            logger.warning("[dng_write] EXIF metadata not embedded in %s", out)

    logger.info("wrote %s (%dx%d, %d bytes)", out, frame.width, frame.height, result.header_bytes + result.pixel_bytes)
    return result


def read_header_summary(path: str | Path) -> dict[int, tuple[TagType, int, tuple[int, ...]]]:
    """Map tag id to ``(type, count, values)`` for the first IFD of ``path``."""
    data = Path(path).read_bytes()
    endian, tags = parse_directory(data)
    return {t.tag_id: (t.tag_type, t.count, decode_values(t, endian)) for t in tags}
