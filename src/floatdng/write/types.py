from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Sequence

import numpy as np

from floatdng.color.calibration import absent_matrix, has_camera_matrix
from floatdng.color.camera_matrices import lookup_xyz_to_camera
from floatdng.errors import InvalidExposureError, InvalidGeometryError


@dataclass
class ImageFrame:
    """Single-channel raw plane, shape (height, width), float32."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        arr = np.asarray(self.pixels, dtype=np.float32)
        if arr.ndim != 2:
            raise InvalidGeometryError(f"expected HxW raw plane, got shape {arr.shape}")
        if arr.shape[0] < 1 or arr.shape[1] < 1:
            raise InvalidGeometryError(f"image must have positive width and height, got {arr.shape}")
        self.pixels = arr

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def from_buffer(cls, buffer: Sequence[float] | np.ndarray, width: int, height: int) -> ImageFrame:
        if width < 1 or height < 1:
            raise InvalidGeometryError(f"width and height must be positive, got {width}x{height}")
        flat = np.asarray(buffer, dtype=np.float32).reshape(-1)
        if flat.size != width * height:
            raise InvalidGeometryError(f"pixel buffer holds {flat.size} samples, expected {width * height}")
        return cls(pixels=flat.reshape(height, width))


@dataclass
class CalibrationData:
    white_level: float = 1.0
    wb_coeffs: tuple[float, float, float] = (1.0, 1.0, 1.0)
    xyz_to_camera: np.ndarray = field(default_factory=absent_matrix)

    @property
    def has_camera_matrix(self) -> bool:
        return has_camera_matrix(self.xyz_to_camera)

    @classmethod
    def for_camera(
        cls,
        make: str | None,
        model: str | None,
        white_level: float = 1.0,
        wb_coeffs: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> CalibrationData:
        matrix = lookup_xyz_to_camera(make, model)
        return cls(
            white_level=white_level,
            wb_coeffs=wb_coeffs,
            xyz_to_camera=absent_matrix() if matrix is None else matrix.astype(np.float32),
        )


@dataclass
class ExposureInfo:
    exposure_time_s: float | None = None
    f_number: float | None = None
    focal_length_mm: float | None = None
    iso: float | None = None

    def __post_init__(self) -> None:
        for name in ("exposure_time_s", "f_number", "focal_length_mm", "iso"):
            value = getattr(self, name)
            if value is None:
                continue
            if not math.isfinite(value) or value <= 0:
                raise InvalidExposureError(f"{name} must be positive and finite, got {value}")
        if self.iso is not None and round(self.iso) > 0xFFFF:
            raise InvalidExposureError(f"iso {self.iso} does not fit a SHORT field")

    @property
    def is_empty(self) -> bool:
        return all(
            v is None for v in (self.exposure_time_s, self.f_number, self.focal_length_mm, self.iso)
        )
