"""Speech-to-text over a recorded :class:`AudioAsset`."""
from __future__ import annotations

import asyncio
import logging

from ..clients import OpenAIClient
from .assets import AudioAsset
from .exceptions import BadAudio

logger = logging.getLogger(__name__)


class Transcriber:
    """Send an audio asset to the transcription endpoint.

    The asset is consumed: it is released once the call returns, whatever the
    outcome. No retries are attempted.
    """

    def __init__(self, client: OpenAIClient, *, language: str = "en") -> None:
        self._client = client
        self._language = language

    def ensure_configured(self) -> None:
        self._client.ensure_configured()

    async def transcribe(self, asset: AudioAsset) -> str:
        try:
            self._client.ensure_configured()
            try:
                audio_bytes = await asyncio.to_thread(asset.read_bytes)
            except OSError as exc:
                raise BadAudio(f"Recording could not be read: {exc}") from exc
            result = await self._client.transcribe_audio(
                filename=asset.filename,
                audio_bytes=audio_bytes,
                mime_type=asset.mime_type,
                language=self._language,
            )
        finally:
            asset.release()

        text = result.text.strip()
        if not text:
            raise BadAudio("No speech detected in recording")
        logger.info("Transcription completed", extra={"characters": len(text)})
        return text


__all__ = ["Transcriber"]
