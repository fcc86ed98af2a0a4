from .base import DngWriteResult, WriteStatus
from .dng_writer import HEADER_SIZE, build_dng_header, read_header_summary, write_dng
from .exif_embed import ExifEmbedder, ExiftoolEmbedder
from .mosaic import BayerMosaic, MosaicDescriptor, XTransMosaic, bayer_from_name, encode_mosaic, mosaic_from_filters
from .types import CalibrationData, ExposureInfo, ImageFrame

__all__ = [
    "DngWriteResult",
    "WriteStatus",
    "HEADER_SIZE",
    "build_dng_header",
    "read_header_summary",
    "write_dng",
    "ExifEmbedder",
    "ExiftoolEmbedder",
    "BayerMosaic",
    "MosaicDescriptor",
    "XTransMosaic",
    "bayer_from_name",
    "encode_mosaic",
    "mosaic_from_filters",
    "CalibrationData",
    "ExposureInfo",
    "ImageFrame",
]
