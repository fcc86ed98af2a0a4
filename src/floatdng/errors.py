from __future__ import annotations


class DngWriteError(RuntimeError):
    pass


class InvalidCalibrationError(DngWriteError, ValueError):
    pass


class InvalidGeometryError(DngWriteError, ValueError):
    pass


class InvalidExposureError(DngWriteError, ValueError):
    pass


class TagOrderError(DngWriteError):
    pass


class TagLayoutError(DngWriteError):
    pass


class TagValueError(DngWriteError, ValueError):
    pass
