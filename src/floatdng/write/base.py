from __future__ import annotations

from dataclasses import dataclass
import enum
from pathlib import Path


class WriteStatus(str, enum.Enum):
    OK = "ok"
    OPEN_FAILED = "open_failed"
    SHORT_HEADER = "short_header"
    SHORT_PIXELS = "short_pixels"


@dataclass
class DngWriteResult:
    path: Path
    status: WriteStatus
    header_bytes: int = 0
    pixel_bytes: int = 0
    message: str = ""
    exif_embedded: bool = False

    @property
    def ok(self) -> bool:
        return self.status is WriteStatus.OK
