"""Microphone lifecycle: one capture stream, one audio asset at a time."""
from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional, Protocol

from .assets import AudioAsset
from .exceptions import DeviceUnavailable, NoActiveRecording, PermissionDenied, VoiceError

logger = logging.getLogger(__name__)


class CaptureStream(Protocol):
    """An open capture stream bound to a destination file."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def abort(self) -> None: ...


class CaptureBackend(Protocol):
    """Platform audio access used by :class:`Recorder`."""

    def request_permission(self) -> bool: ...

    def open(self, path: Path, *, sample_rate: int, channels: int) -> CaptureStream: ...


def default_backend() -> CaptureBackend:
    from .capture import SoundDeviceBackend

    return SoundDeviceBackend()


class Recorder:
    """Own the microphone and hand out finalized :class:`AudioAsset` objects.

    At most one capture stream is open at any time: starting a new recording
    aborts the previous one and releases the last asset it produced.
    """

    def __init__(
        self,
        scratch_dir: Path,
        *,
        backend: Optional[CaptureBackend] = None,
        sample_rate: int = 16000,
        channels: int = 1,
    ) -> None:
        self._scratch_dir = Path(scratch_dir)
        self._backend = backend
        self._sample_rate = sample_rate
        self._channels = channels
        self._stream: Optional[CaptureStream] = None
        self._path: Optional[Path] = None
        self._last_asset: Optional[AudioAsset] = None

    @property
    def is_recording(self) -> bool:
        return self._stream is not None

    @property
    def backend(self) -> CaptureBackend:
        if self._backend is None:
            self._backend = default_backend()
        return self._backend

    async def start_recording(self) -> None:
        await self.cancel()

        granted = await asyncio.to_thread(self.backend.request_permission)
        if not granted:
            raise PermissionDenied()

        self._scratch_dir.mkdir(parents=True, exist_ok=True)
        path = self._scratch_dir / f"recording-{uuid.uuid4().hex}.wav"
        try:
            stream = await asyncio.to_thread(
                self.backend.open,
                path,
                sample_rate=self._sample_rate,
                channels=self._channels,
            )
        except VoiceError:
            path.unlink(missing_ok=True)
            raise
        except Exception as exc:
            path.unlink(missing_ok=True)
            logger.exception("Failed to open capture stream")
            raise DeviceUnavailable(str(exc)) from exc

        try:
            await asyncio.to_thread(stream.start)
        except Exception as exc:
            await asyncio.to_thread(stream.abort)
            path.unlink(missing_ok=True)
            logger.exception("Failed to start capture stream")
            if isinstance(exc, VoiceError):
                raise
            raise DeviceUnavailable(str(exc)) from exc

        self._stream = stream
        self._path = path
        logger.info("Recording started", extra={"path": str(path)})

    async def stop_recording(self) -> AudioAsset:
        if self._stream is None or self._path is None:
            raise NoActiveRecording()

        stream, path = self._stream, self._path
        self._stream = None
        self._path = None
        try:
            await asyncio.to_thread(stream.stop)
        except Exception as exc:
            path.unlink(missing_ok=True)
            logger.exception("Failed to finalize recording")
            raise DeviceUnavailable(str(exc)) from exc

        asset = AudioAsset(
            path=path,
            sample_rate=self._sample_rate,
            channels=self._channels,
            container="wav",
        )
        self._last_asset = asset
        logger.info("Recording stopped", extra={"path": str(path)})
        return asset

    async def cancel(self) -> None:
        """Abort any active capture and release the last asset; idempotent."""

        stream, path = self._stream, self._path
        self._stream = None
        self._path = None
        if stream is not None:
            try:
                await asyncio.to_thread(stream.abort)
            except Exception:
                logger.warning("Capture stream did not abort cleanly", exc_info=True)
            if path is not None:
                path.unlink(missing_ok=True)
            logger.info("Recording discarded")

        if self._last_asset is not None:
            self._last_asset.release()
            self._last_asset = None


__all__ = ["CaptureBackend", "CaptureStream", "Recorder", "default_backend"]
