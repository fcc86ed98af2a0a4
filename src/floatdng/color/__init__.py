from .calibration import (
    ADOBE_COEFF_FACTOR,
    absent_matrix,
    encode_as_shot_neutral,
    has_camera_matrix,
    select_color_matrix,
)
from .camera_matrices import lookup_xyz_to_camera

__all__ = [
    "ADOBE_COEFF_FACTOR",
    "absent_matrix",
    "encode_as_shot_neutral",
    "has_camera_matrix",
    "lookup_xyz_to_camera",
    "select_color_matrix",
]
