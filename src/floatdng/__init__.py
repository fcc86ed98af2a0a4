import logging

from floatdng.write import (
    BayerMosaic,
    CalibrationData,
    DngWriteResult,
    ExposureInfo,
    ImageFrame,
    WriteStatus,
    XTransMosaic,
    bayer_from_name,
    write_dng,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "BayerMosaic",
    "CalibrationData",
    "DngWriteResult",
    "ExposureInfo",
    "ImageFrame",
    "WriteStatus",
    "XTransMosaic",
    "bayer_from_name",
    "write_dng",
]
