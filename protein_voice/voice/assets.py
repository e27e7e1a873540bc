"""File-backed audio clips handed from the recorder to the transcriber."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

_MIME_TYPES = {
    "wav": "audio/wav",
    "m4a": "audio/mp4",
    "mp3": "audio/mpeg",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "webm": "audio/webm",
}


@dataclass
class AudioAsset:
    """A finalized recording on scratch storage.

    The asset owns its file: :meth:`release` deletes it and may be called any
    number of times.
    """

    path: Path
    sample_rate: int
    channels: int
    container: str = "wav"
    _released: bool = field(default=False, init=False, repr=False)

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES.get(self.container.lower(), f"audio/{self.container.lower()}")

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def released(self) -> bool:
        return self._released

    def read_bytes(self) -> bytes:
        if self._released:
            raise FileNotFoundError(f"Audio asset {self.path} has already been released")
        return self.path.read_bytes()

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            self.path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to delete audio asset %s", self.path, exc_info=True)


__all__ = ["AudioAsset"]
