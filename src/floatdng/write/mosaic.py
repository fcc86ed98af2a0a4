from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Sequence, Union

import numpy as np

from floatdng.errors import InvalidGeometryError


logger = logging.getLogger(__name__)

# Filter words as raw decoders describe a 2x2 colour filter array.
FILTERS_RGGB = 0x94949494
FILTERS_GBRG = 0x49494949
FILTERS_GRBG = 0x61616161
FILTERS_BGGR = 0x16161616
FILTERS_XTRANS = 9

# CFA colour indices: 0 red, 1 green, 2 blue.
BAYER_LAYOUTS: dict[int, bytes] = {
    FILTERS_RGGB: bytes((0, 1, 1, 2)),
    FILTERS_GBRG: bytes((1, 2, 0, 1)),
    FILTERS_GRBG: bytes((1, 0, 2, 1)),
    FILTERS_BGGR: bytes((2, 1, 1, 0)),
}
BAYER_NAMES: dict[str, int] = {
    "RGGB": FILTERS_RGGB,
    "GBRG": FILTERS_GBRG,
    "GRBG": FILTERS_GRBG,
    "BGGR": FILTERS_BGGR,
}


@dataclass(frozen=True)
class BayerMosaic:
    filters: int


@dataclass(frozen=True)
class XTransMosaic:
    """Six-by-six CFA; ``cells`` holds the 36 colour indices row-major."""

    cells: bytes

    def __post_init__(self) -> None:
        if len(self.cells) != 36:
            raise InvalidGeometryError(f"6x6 mosaic needs 36 cells, got {len(self.cells)}")

    @classmethod
    def from_layout(cls, layout: np.ndarray | Sequence[Sequence[int]]) -> XTransMosaic:
        arr = np.asarray(layout)
        if arr.shape != (6, 6):
            raise InvalidGeometryError(f"expected 6x6 mosaic layout, got shape {arr.shape}")
        if arr.min() < 0 or arr.max() > 255:
            raise InvalidGeometryError("mosaic layout entries must fit in one byte")
        return cls(cells=arr.astype(np.uint8).tobytes())


MosaicDescriptor = Union[BayerMosaic, XTransMosaic]


@dataclass(frozen=True)
class EncodedMosaic:
    repeat_dim: tuple[int, int]
    pattern: bytes


def bayer_from_name(name: str) -> BayerMosaic:
    key = name.strip().upper()
    if key not in BAYER_NAMES:
        raise InvalidGeometryError(f"unknown Bayer pattern {name!r}; expected one of {', '.join(BAYER_NAMES)}")
    return BayerMosaic(filters=BAYER_NAMES[key])


def mosaic_from_filters(
    filters: int,
    xtrans: np.ndarray | Sequence[Sequence[int]] | None = None,
) -> MosaicDescriptor:
    if filters == FILTERS_XTRANS:
        if xtrans is None:
            raise InvalidGeometryError("filter word 9 needs a 6x6 layout")
        return XTransMosaic.from_layout(xtrans)
    return BayerMosaic(filters=filters)


def encode_mosaic(mosaic: MosaicDescriptor, strict: bool = False) -> EncodedMosaic:
    """Encode CFARepeatPatternDim and CFAPattern for a mosaic.

    Unrecognized Bayer filter words encode as BGGR unless ``strict`` is set.
    """
    if isinstance(mosaic, XTransMosaic):
        return EncodedMosaic(repeat_dim=(6, 6), pattern=mosaic.cells)

    layout = BAYER_LAYOUTS.get(mosaic.filters)
    if layout is None:
        if strict:
            raise InvalidGeometryError(f"unrecognized Bayer filter word 0x{mosaic.filters:08x}")
        logger.warning("unrecognized Bayer filter word 0x%08x, writing BGGR", mosaic.filters)
        layout = BAYER_LAYOUTS[FILTERS_BGGR]
    return EncodedMosaic(repeat_dim=(2, 2), pattern=layout)
