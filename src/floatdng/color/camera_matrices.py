from __future__ import annotations

import re

import numpy as np


# dcraw/Adobe-style XYZ (D65) -> camera coefficients, scaled by 1/10000.
# adobe_coeff rows map XYZ to camera RGB, so entries are used as XYZ -> camera
# and never inverted before selection. The EOS R row set matches the
# dcraw-style coefficients listed for the 5D Mark IV sensor.
KNOWN_XYZ_TO_CAMERA: dict[str, np.ndarray] = {
    "canon eos r": np.array(
        [
            [6445, -366, -864],
            [-4436, 12204, 2513],
            [-952, 2496, 6348],
        ],
        dtype=np.float64,
    )
    / 10000.0,
}

# Brand prefixes tried when only a model name is known.
_MAKE_PREFIXES = ("canon",)


def _normalize_camera_key(make: str | None, model: str | None) -> str | None:
    text = " ".join([v for v in [make, model] if v]).strip().lower()
    if not text:
        return None
    text = re.sub(r"[^a-z0-9]+", " ", text).strip()
    return text or None


def lookup_xyz_to_camera(make: str | None, model: str | None) -> np.ndarray | None:
    key = _normalize_camera_key(make, model)
    if key is None:
        return None
    if key in KNOWN_XYZ_TO_CAMERA:
        return KNOWN_XYZ_TO_CAMERA[key].copy()
    # Common shorthand (e.g., "EOS R")
    model_only = _normalize_camera_key(None, model)
    if model_only:
        for prefix in _MAKE_PREFIXES:
            candidate = f"{prefix} {model_only}"
            if candidate in KNOWN_XYZ_TO_CAMERA:
                return KNOWN_XYZ_TO_CAMERA[candidate].copy()
    return None
