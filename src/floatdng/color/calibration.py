from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from floatdng.errors import InvalidCalibrationError


logger = logging.getLogger(__name__)

ADOBE_COEFF_FACTOR = 10000

# Generic XYZ -> sRGB (D65), used when no camera matrix is known.
GENERIC_XYZ_TO_SRGB_D65 = np.array(
    [
        [3240454, -1537138, -498531],
        [-969266, 1876010, 41556],
        [55643, -204025, 1057225],
    ],
    dtype=np.int64,
)
GENERIC_DENOMINATOR = 1000000
NEUTRAL_DENOMINATOR = 1000000

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_UINT32_MAX = 2**32 - 1


def absent_matrix() -> np.ndarray:
    """XYZ->camera placeholder; a NaN first element marks "no camera matrix"."""
    return np.full((3, 3), np.nan, dtype=np.float32)


def has_camera_matrix(xyz_to_camera: np.ndarray | Sequence[Sequence[float]]) -> bool:
    arr = np.asarray(xyz_to_camera, dtype=np.float32)
    return not bool(np.isnan(arr.flat[0]))


def _round_half_away(values: np.ndarray) -> np.ndarray:
    return np.sign(values) * np.floor(np.abs(values) + np.float32(0.5))


def _coerce_matrix(xyz_to_camera: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
    arr = np.asarray(xyz_to_camera, dtype=np.float32)
    if arr.shape == (4, 3):
        # fourth row is a second green; only the first three rows are stored
        arr = arr[:3]
    elif arr.shape != (3, 3):
        raise InvalidCalibrationError(f"expected 3x3 or 4x3 XYZ->camera matrix, got shape {arr.shape}")
    return arr


def select_color_matrix(
    xyz_to_camera: np.ndarray | Sequence[Sequence[float]],
    coeff_factor: int = ADOBE_COEFF_FACTOR,
) -> list[tuple[int, int]]:
    """Return ColorMatrix1 as nine row-major ``(num, den)`` pairs.

    A camera matrix is scaled by ``coeff_factor`` and rounded, with the factor
    as shared denominator. A matrix whose first element is NaN selects the
    generic XYZ->sRGB matrix over 1000000 instead.
    """
    arr = _coerce_matrix(xyz_to_camera)
    if not has_camera_matrix(arr):
        logger.debug("no camera matrix, using generic XYZ->sRGB D65")
        nums = GENERIC_XYZ_TO_SRGB_D65.flatten().tolist()
        return [(int(n), GENERIC_DENOMINATOR) for n in nums]

    if coeff_factor < 1:
        raise InvalidCalibrationError(f"coefficient factor must be positive, got {coeff_factor}")
    if not np.isfinite(arr).all():
        raise InvalidCalibrationError("camera matrix contains non-finite values")

    scaled = _round_half_away(arr * np.float32(coeff_factor))
    nums = [int(v) for v in scaled.flatten()]
    if any(n < _INT32_MIN or n > _INT32_MAX for n in nums):
        raise InvalidCalibrationError("scaled camera matrix does not fit signed 32-bit rationals")
    return [(n, int(coeff_factor)) for n in nums]


def validate_wb_coeffs(wb_coeffs: Sequence[float]) -> tuple[float, float, float]:
    values = [float(v) for v in wb_coeffs]
    if len(values) < 3:
        raise InvalidCalibrationError(f"expected 3 white-balance coefficients, got {len(values)}")
    r, g, b = values[:3]
    for name, v in (("red", r), ("green", g), ("blue", b)):
        if not np.isfinite(v) or v <= 0.0:
            raise InvalidCalibrationError(f"{name} white-balance coefficient must be positive and finite, got {v}")
    return r, g, b


def encode_as_shot_neutral(wb_coeffs: Sequence[float]) -> list[tuple[int, int]]:
    """AsShotNeutral as three rationals over 1000000, normalized to green."""
    wb = np.array(validate_wb_coeffs(wb_coeffs), dtype=np.float32)
    den = np.float32(NEUTRAL_DENOMINATOR)
    neutral = _round_half_away((den * wb[1]) / wb)
    if not np.isfinite(neutral).all() or neutral.min() < 1 or neutral.max() > _UINT32_MAX:
        raise InvalidCalibrationError(
            f"white-balance ratios {tuple(float(v) for v in wb)} do not fit unsigned 32-bit AsShotNeutral rationals"
        )
    return [(int(v), NEUTRAL_DENOMINATOR) for v in neutral]
