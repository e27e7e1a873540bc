"""Caller-facing orchestration of record, transcribe and extract."""
from __future__ import annotations

import inspect
import logging
import time
from typing import Awaitable, Callable, Optional, Union

from ..clients import OpenAIClient
from ..config import Settings
from ..models.voice import VoiceInputResult
from .assets import AudioAsset
from .exceptions import InvalidTransitionError, NoActiveRecording, VoiceError
from .extractor import Extractor
from .fsm import (
    STATE_PROCESSING,
    STATE_RECORDING,
    VoiceSessionFSM,
)
from .metrics import PIPELINE_LATENCY, record_outcome
from .prompts import load_instruction
from .recorder import CaptureBackend, Recorder
from .transcriber import Transcriber

logger = logging.getLogger(__name__)

CompletionListener = Callable[[VoiceInputResult], Union[None, Awaitable[None]]]


async def interpret_asset(
    transcriber: Transcriber,
    extractor: Extractor,
    asset: AudioAsset,
) -> VoiceInputResult:
    """Transcribe ``asset`` and extract a result from its transcript.

    The asset is released on every path.
    """

    start = time.perf_counter()
    try:
        transcript = await transcriber.transcribe(asset)
        result = await extractor.extract(transcript)
    finally:
        asset.release()
        PIPELINE_LATENCY.observe(time.perf_counter() - start)
    return result


class VoiceLoggingPipeline:
    """Drive one voice logging attempt at a time.

    Failures are classified :class:`VoiceError` instances: the pipeline moves
    to ``failed``, releases the recording and re-raises. An undetermined
    protein amount is a completed run, not a failure.
    """

    def __init__(
        self,
        recorder: Recorder,
        transcriber: Transcriber,
        extractor: Extractor,
        *,
        on_complete: Optional[CompletionListener] = None,
    ) -> None:
        self._recorder = recorder
        self._transcriber = transcriber
        self._extractor = extractor
        self._on_complete = on_complete
        self._fsm = VoiceSessionFSM()
        self._asset: Optional[AudioAsset] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        backend: Optional[CaptureBackend] = None,
        on_complete: Optional[CompletionListener] = None,
    ) -> "VoiceLoggingPipeline":
        client = OpenAIClient(
            settings.openai_api_key,
            chat_model=settings.extraction_model,
            asr_model=settings.transcription_model,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
        )
        recorder = Recorder(
            settings.scratch_dir,
            backend=backend,
            sample_rate=settings.sample_rate,
            channels=settings.channels,
        )
        transcriber = Transcriber(client, language=settings.transcription_language)
        extractor = Extractor(
            client,
            instruction=load_instruction(settings.extraction_prompt_file),
            temperature=settings.extraction_temperature,
        )
        return cls(recorder, transcriber, extractor, on_complete=on_complete)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def state(self) -> str:
        return self._fsm.state

    @property
    def result(self) -> Optional[VoiceInputResult]:
        return self._fsm.result

    @property
    def error(self) -> Optional[VoiceError]:
        return self._fsm.error

    @property
    def transcriber(self) -> Transcriber:
        return self._transcriber

    @property
    def extractor(self) -> Extractor:
        return self._extractor

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------
    async def start_recording(self) -> None:
        self._transcriber.ensure_configured()

        if self._fsm.state in (STATE_RECORDING, STATE_PROCESSING):
            await self._recorder.cancel()
            if self._asset is not None:
                self._asset.release()
                self._asset = None
            self._fsm.reset()
        self._fsm.begin_recording()

        try:
            await self._recorder.start_recording()
        except VoiceError as exc:
            await self._abort(exc)
            raise

    async def stop_recording(self) -> AudioAsset:
        if self._fsm.state != STATE_RECORDING:
            raise NoActiveRecording()

        try:
            asset = await self._recorder.stop_recording()
        except VoiceError as exc:
            await self._abort(exc)
            raise

        self._asset = asset
        self._fsm.begin_processing()
        return asset

    async def process_voice_input(self) -> VoiceInputResult:
        """Transcribe and interpret the most recently stopped recording."""

        if self._fsm.state != STATE_PROCESSING or self._asset is None:
            raise InvalidTransitionError("No recording available to process")

        asset, self._asset = self._asset, None
        try:
            result = await interpret_asset(self._transcriber, self._extractor, asset)
        except VoiceError as exc:
            await self._abort(exc)
            raise

        self._fsm.complete(result)
        record_outcome("completed" if result.determined else "undetermined")
        logger.info(
            "Voice input processed",
            extra={"determined": result.determined, "confidence": result.confidence},
        )
        await self._notify(result)
        return result

    async def stop_and_process(self) -> VoiceInputResult:
        await self.stop_recording()
        return await self.process_voice_input()

    def discard(self) -> None:
        """Drop a completed result without persisting it."""

        self._fsm.finish()

    def acknowledge_persisted(self) -> VoiceInputResult:
        """Return to ``idle`` once the caller has logged the completed result."""

        return self._fsm.finish()

    async def cancel(self) -> None:
        """Abandon whatever is in progress; safe to call repeatedly."""

        await self._recorder.cancel()
        if self._asset is not None:
            self._asset.release()
            self._asset = None
        self._fsm.reset()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _abort(self, exc: VoiceError) -> None:
        logger.warning("Voice logging failed", extra={"kind": exc.kind, "detail": str(exc)})
        record_outcome(exc.kind)
        await self._recorder.cancel()
        if self._asset is not None:
            self._asset.release()
            self._asset = None
        self._fsm.fail(exc)

    async def _notify(self, result: VoiceInputResult) -> None:
        if self._on_complete is None:
            return
        outcome = self._on_complete(result)
        if inspect.isawaitable(outcome):
            await outcome


__all__ = ["CompletionListener", "VoiceLoggingPipeline", "interpret_asset"]
