"""PortAudio capture backend built on ``sounddevice`` and ``soundfile``.

Imported lazily by :mod:`protein_voice.voice.recorder` because ``sounddevice``
needs the PortAudio shared library at import time.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

import numpy as np
import sounddevice as sd
import soundfile as sf

from .exceptions import DeviceUnavailable, PermissionDenied

logger = logging.getLogger(__name__)

_PERMISSION_MARKERS = ("permission", "not authorized", "not permitted", "access denied")


def _is_permission_error(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _PERMISSION_MARKERS)


class SoundDeviceStream:
    """Input stream writing PCM frames straight into a WAV file."""

    def __init__(
        self,
        path: Path,
        *,
        sample_rate: int,
        channels: int,
        device: Optional[int | str] = None,
    ) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._file = sf.SoundFile(
            str(path),
            mode="w",
            samplerate=sample_rate,
            channels=channels,
            format="WAV",
            subtype="PCM_16",
        )
        try:
            self._stream = sd.InputStream(
                samplerate=sample_rate,
                channels=channels,
                dtype="float32",
                device=device,
                callback=self._on_frames,
            )
        except Exception:
            self._file.close()
            raise

    def _on_frames(self, indata: np.ndarray, frames: int, time_info, status) -> None:  # pragma: no cover - PortAudio thread
        if status:
            logger.debug("Capture status flags: %s", status)
        with self._lock:
            if not self._file.closed:
                self._file.write(indata.copy())

    def start(self) -> None:
        self._stream.start()

    def stop(self) -> None:
        try:
            self._stream.stop()
        finally:
            self._stream.close()
            with self._lock:
                self._file.close()

    def abort(self) -> None:
        try:
            self._stream.abort()
        except sd.PortAudioError:
            logger.debug("Abort on an already closed stream", exc_info=True)
        finally:
            self._stream.close()
            with self._lock:
                if not self._file.closed:
                    self._file.close()


class SoundDeviceBackend:
    """Capture backend using the default (or configured) input device."""

    def __init__(self, device: Optional[int | str] = None) -> None:
        self._device = device

    def request_permission(self) -> bool:
        # PortAudio has no permission API; the OS prompts when the stream opens.
        try:
            sd.query_devices(self._device, kind="input")
        except sd.PortAudioError as exc:
            if _is_permission_error(exc):
                return False
            raise DeviceUnavailable(f"No usable input device: {exc}") from exc
        except ValueError as exc:
            raise DeviceUnavailable(f"No usable input device: {exc}") from exc
        return True

    def open(self, path: Path, *, sample_rate: int, channels: int) -> SoundDeviceStream:
        try:
            return SoundDeviceStream(
                path,
                sample_rate=sample_rate,
                channels=channels,
                device=self._device,
            )
        except sd.PortAudioError as exc:
            if _is_permission_error(exc):
                raise PermissionDenied(str(exc)) from exc
            raise DeviceUnavailable(str(exc)) from exc


__all__ = ["SoundDeviceBackend", "SoundDeviceStream"]
