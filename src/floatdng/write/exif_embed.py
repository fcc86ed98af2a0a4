from __future__ import annotations

import logging
import os
from pathlib import Path
import shutil
import subprocess
import tempfile
from typing import Protocol


logger = logging.getLogger(__name__)

EXIF_MARKER = b"Exif\x00\x00"


class ExifEmbedder(Protocol):
    def embed(self, path: Path, blob: bytes) -> bool:
        ...


def strip_exif_marker(blob: bytes) -> bytes:
    if blob.startswith(EXIF_MARKER):
        return blob[len(EXIF_MARKER) :]
    return blob


class ExiftoolEmbedder:
    """Splice an EXIF blob into an already written DNG with the exiftool CLI.

    Only EXIF group tags are copied, so the image structure written by the
    DNG writer is left alone. Failures are logged and reported as ``False``.
    """

    def __init__(self, exiftool_path: str | None = None) -> None:
        self._exiftool_path = exiftool_path

    def _resolve(self) -> str | None:
        if self._exiftool_path:
            return self._exiftool_path
        return shutil.which("exiftool")

    def embed(self, path: Path, blob: bytes) -> bool:
        exiftool = self._resolve()
        if exiftool is None:
            logger.warning("exiftool not found; EXIF metadata not embedded in %s", path)
            return False

        payload = strip_exif_marker(blob)
        if not payload:
            return False

        fd, tmp_name = tempfile.mkstemp(suffix=".exif")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            proc = subprocess.run(
                [
                    exiftool,
                    "-overwrite_original",
                    "-TagsFromFile",
                    tmp_name,
                    "-exif:all",
                    str(path),
                ],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            logger.warning("exiftool could not be run for %s: %s", path, exc)
            return False
        finally:
            Path(tmp_name).unlink(missing_ok=True)

        if proc.returncode != 0:
            logger.warning("exiftool failed for %s: %s", path, proc.stderr.strip())
            return False
        return True
